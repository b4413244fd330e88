"""
Explicit state machine around an external transcription source.

    IDLE -> LISTENING -> RESULT | ERROR | STOPPED_BY_USER
    RESULT | ERROR | STOPPED_BY_USER --reset()--> IDLE

Nothing restarts listening automatically; after an error the caller has to
call start() again.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class TranscriptionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    RESULT = "result"
    ERROR = "error"
    STOPPED_BY_USER = "stopped_by_user"


ERROR_MESSAGES = {
    "no-speech": "No speech detected. Please try again.",
    "audio-capture": "No microphone found. Please ensure your microphone is connected.",
    "not-allowed": "Microphone access denied. Please allow microphone access.",
    "network": "Network error occurred. Please check your connection.",
}
DEFAULT_ERROR_MESSAGE = "An error occurred during speech recognition"


class InvalidTransitionError(RuntimeError):
    pass


class TranscriptionSession:
    def __init__(self) -> None:
        self.state = TranscriptionState.IDLE
        self.error: Optional[str] = None
        self._final_text = ""
        self._interim_text = ""

    @property
    def listening(self) -> bool:
        return self.state is TranscriptionState.LISTENING

    @property
    def transcript(self) -> str:
        """Final text so far plus the current interim piece."""
        return (self._final_text + self._interim_text).strip()

    def start(self) -> None:
        if self.listening:
            raise InvalidTransitionError("Already listening")
        self.state = TranscriptionState.LISTENING
        self.error = None
        logger.debug("Speech recognition started")

    def feed(self, piece: str, is_final: bool = True) -> None:
        if not self.listening:
            raise InvalidTransitionError(f"Cannot accept transcript while {self.state.value}")
        if is_final:
            self._final_text += piece.strip() + " "
            self._interim_text = ""
        else:
            self._interim_text = piece

    def finish(self) -> str:
        """The source ended on its own with a transcript."""
        if not self.listening:
            raise InvalidTransitionError(f"Cannot finish while {self.state.value}")
        self._interim_text = ""
        self.state = TranscriptionState.RESULT
        return self.transcript

    def fail(self, code: str) -> str:
        if not self.listening:
            raise InvalidTransitionError(f"Cannot fail while {self.state.value}")
        self.error = ERROR_MESSAGES.get(code, DEFAULT_ERROR_MESSAGE)
        self._interim_text = ""
        self.state = TranscriptionState.ERROR
        logger.warning(f"Speech recognition error: {code}")
        return self.error

    def stop(self) -> None:
        if self.listening:
            self._interim_text = ""
            self.state = TranscriptionState.STOPPED_BY_USER

    def reset(self) -> None:
        """Clear the transcript. Outside of listening this also returns to IDLE."""
        self._final_text = ""
        self._interim_text = ""
        if not self.listening:
            self.state = TranscriptionState.IDLE
            self.error = None
