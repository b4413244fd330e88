"""
Wire protocol shared by the relay and its clients.

Every WebSocket frame is a JSON envelope:
    {"event": "<name>", "data": {...}}

Client sends:
- translate           {"text": "...", "targetLanguage": "es"}

Server sends:
- translation-result  {"original": "...", "translated": "...", "targetLanguage": "es", "timestamp": "..."}
- translation-error   {"error": "..."}
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

TRANSLATE = "translate"
TRANSLATION_RESULT = "translation-result"
TRANSLATION_ERROR = "translation-error"

DEFAULT_TARGET_LANGUAGE = "es"

EMPTY_TEXT_MESSAGE = "Text cannot be empty"
TRANSLATION_FAILED_MESSAGE = "Translation failed"


class ProtocolError(ValueError):
    """Raised when a frame is not a valid event envelope."""


class TranslationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    target_language: str = Field(DEFAULT_TARGET_LANGUAGE, alias="targetLanguage")


class TranslationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original: str
    translated: str
    target_language: str = Field(..., alias="targetLanguage")
    timestamp: str


class TranslationError(BaseModel):
    error: str


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def encode_event(event: str, data: Optional[Dict[str, Any]] = None) -> str:
    return json.dumps({"event": event, "data": data or {}}, ensure_ascii=False)


def decode_event(raw: Any) -> tuple[str, Dict[str, Any]]:
    """Parse a frame into (event name, payload).

    Accepts either the raw text frame or an already decoded dict.
    A missing or non-object payload becomes an empty dict.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolError("Frame is not valid UTF-8") from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ProtocolError("Frame is not valid JSON") from exc

    if not isinstance(raw, dict):
        raise ProtocolError("Frame must be a JSON object")

    event = raw.get("event")
    if not isinstance(event, str) or not event:
        raise ProtocolError("Frame has no event name")

    data = raw.get("data")
    if not isinstance(data, dict):
        data = {}
    return event, data
