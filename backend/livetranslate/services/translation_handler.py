"""
Turns one inbound `translate` event into exactly one outbound event.

    Received -> Validating -> Invalid -> translation-error
                           -> Valid -> Calling backend -> Success -> translation-result
                                                       -> Failure -> translation-error
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from ..protocol import (
    DEFAULT_TARGET_LANGUAGE,
    EMPTY_TEXT_MESSAGE,
    TRANSLATION_ERROR,
    TRANSLATION_FAILED_MESSAGE,
    TRANSLATION_RESULT,
    TranslationError,
    TranslationResult,
    utc_timestamp,
)
from .translation_service import TranslationBackend, TranslationServiceError, resolve_language_name

logger = logging.getLogger(__name__)

Emit = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class ValidationError(ValueError):
    """The request was rejected before reaching the backend."""


def validate_request(payload: Dict[str, Any]) -> tuple[str, str]:
    """Return (text, target language code) or raise ValidationError.

    The text is returned verbatim; only the blank check trims it.
    """
    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(EMPTY_TEXT_MESSAGE)

    target_language = payload.get("targetLanguage")
    if not isinstance(target_language, str) or not target_language.strip():
        target_language = DEFAULT_TARGET_LANGUAGE
    return text, target_language


class TranslationRequestHandler:
    def __init__(self, backend: TranslationBackend):
        self.backend = backend

    async def handle(self, payload: Dict[str, Any], emit: Emit, channel_id: str = "-") -> None:
        try:
            text, target_language = validate_request(payload)
        except ValidationError as exc:
            logger.info(f"[{channel_id}] Rejected translate request: {exc}")
            await emit(TRANSLATION_ERROR, TranslationError(error=str(exc)).model_dump())
            return

        language_name = resolve_language_name(target_language)
        logger.info(f"[{channel_id}] Translating {len(text)} chars -> {target_language} ({language_name})")

        try:
            translated = await self.backend.translate_text(text, language_name)
            if not isinstance(translated, str) or not translated.strip():
                raise TranslationServiceError("Backend returned an empty translation")
        except TranslationServiceError as exc:
            logger.error(f"[{channel_id}] Translation failed: {exc}")
            await emit(TRANSLATION_ERROR, TranslationError(error=TRANSLATION_FAILED_MESSAGE).model_dump())
            return
        except Exception:
            logger.exception(f"[{channel_id}] Translation backend crashed")
            await emit(TRANSLATION_ERROR, TranslationError(error=TRANSLATION_FAILED_MESSAGE).model_dump())
            return

        result = TranslationResult(
            original=text,
            translated=translated.strip(),
            target_language=target_language,
            timestamp=utc_timestamp(),
        )
        await emit(TRANSLATION_RESULT, result.model_dump(by_alias=True))
