import logging
from typing import Callable, List, Optional

from ..protocol import DEFAULT_TARGET_LANGUAGE, TranslationResult
from .connection import (
    ConnectError,
    Connected,
    ConnectionManager,
    Disconnected,
    TranslationErrorReceived,
    TranslationResultReceived,
)

logger = logging.getLogger(__name__)

CONNECT_FAILED_MESSAGE = "Failed to connect to server. Please ensure the backend is running."
DISCONNECTED_MESSAGE = "Disconnected from server"
NOT_CONNECTED_MESSAGE = "Not connected to server"
SEND_FAILED_MESSAGE = "Failed to send translation request"


class ClientStateStore:
    """Connection status and accumulated translations for one client.

    Results are kept in arrival order. A new error replaces the previous one.
    """

    def __init__(self, connection: ConnectionManager, on_change: Optional[Callable[[], None]] = None):
        self.connection = connection
        self.on_change = on_change
        self.connected = False
        self.last_error: Optional[str] = None
        self.results: List[TranslationResult] = []

        connection.on(Connected, self._on_connected)
        connection.on(ConnectError, self._on_connect_error)
        connection.on(Disconnected, self._on_disconnected)
        connection.on(TranslationResultReceived, self._on_result)
        connection.on(TranslationErrorReceived, self._on_translation_error)

    async def send_translation(self, text: str, target_language: str = DEFAULT_TARGET_LANGUAGE) -> bool:
        if not self.connected:
            self._set_error(NOT_CONNECTED_MESSAGE)
            return False

        try:
            await self.connection.translate(text, target_language)
        except Exception as e:
            logger.error(f"Error sending translation: {e}")
            self._set_error(SEND_FAILED_MESSAGE)
            return False

        self._set_error(None)
        return True

    def clear(self) -> None:
        self.results = []
        self._changed()

    def _on_connected(self, event: Connected) -> None:
        self.connected = True
        self.last_error = None
        self._changed()

    def _on_connect_error(self, event: ConnectError) -> None:
        logger.debug(f"Socket connection error: {event.error}")
        self.connected = False
        self.last_error = CONNECT_FAILED_MESSAGE
        self._changed()

    def _on_disconnected(self, event: Disconnected) -> None:
        self.connected = False
        self.last_error = DISCONNECTED_MESSAGE
        self._changed()

    def _on_result(self, event: TranslationResultReceived) -> None:
        self.results.append(event.result)
        self._changed()

    def _on_translation_error(self, event: TranslationErrorReceived) -> None:
        logger.debug(f"Translation error: {event.error}")
        self._set_error(event.error)

    def _set_error(self, message: Optional[str]) -> None:
        self.last_error = message
        self._changed()

    def _changed(self) -> None:
        if self.on_change:
            self.on_change()
