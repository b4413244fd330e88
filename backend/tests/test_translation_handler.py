"""
Translation request handler and channel session tests.
"""

import asyncio
import re

import pytest

from livetranslate.api.realtime import ChannelSession
from livetranslate.protocol import decode_event
from livetranslate.services.translation_handler import TranslationRequestHandler, ValidationError, validate_request
from livetranslate.services.translation_service import TranslationServiceError

from fakes import FakeWebSocket, RecordingBackend


class Collector:
    def __init__(self):
        self.events = []

    async def __call__(self, event, payload):
        self.events.append((event, payload))


def handle(backend, payload):
    emit = Collector()
    asyncio.run(TranslationRequestHandler(backend).handle(payload, emit))
    return emit.events


@pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "  "}, {"text": None}, {"text": ["hello"]}])
def test_validate_request_rejects_blank_text(payload):
    with pytest.raises(ValidationError, match="Text cannot be empty"):
        validate_request(payload)


def test_validate_request_defaults():
    assert validate_request({"text": " hi "}) == (" hi ", "es")
    assert validate_request({"text": "hi", "targetLanguage": ""}) == ("hi", "es")
    assert validate_request({"text": "hi", "targetLanguage": 7}) == ("hi", "es")
    assert validate_request({"text": "hi", "targetLanguage": "de"}) == ("hi", "de")


def test_successful_request_emits_one_result():
    backend = RecordingBackend()
    events = handle(backend, {"text": "hello", "targetLanguage": "de"})

    assert len(events) == 1
    event, payload = events[0]
    assert event == "translation-result"
    assert payload["original"] == "hello"
    assert payload["translated"] == "olleh"
    assert payload["targetLanguage"] == "de"
    assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", payload["timestamp"])
    assert backend.calls == [("hello", "German")]


def test_empty_text_never_reaches_backend():
    backend = RecordingBackend()
    events = handle(backend, {"text": "   "})

    assert events == [("translation-error", {"error": "Text cannot be empty"})]
    assert backend.calls == []


@pytest.mark.parametrize(
    "error",
    [TranslationServiceError("Translation provider returned an unexpected response."), ValueError("boom"), KeyError("choices")],
)
def test_backend_failures_become_one_generic_error(error):
    backend = RecordingBackend(error=error)
    events = handle(backend, {"text": "do not echo me"})

    assert events == [("translation-error", {"error": "Translation failed"})]
    assert "do not echo me" not in str(events)


def test_cancellation_is_not_swallowed():
    backend = RecordingBackend(delays={"hello": 1.0})

    async def scenario():
        emit = Collector()
        task = asyncio.create_task(TranslationRequestHandler(backend).handle({"text": "hello"}, emit))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return emit.events

    assert asyncio.run(scenario()) == []


def test_session_emit_writes_envelope():
    ws = FakeWebSocket()
    session = ChannelSession(ws, channel_id="abc")

    assert asyncio.run(session.emit("translation-error", {"error": "x"})) is True
    assert [decode_event(raw) for raw in ws.sent] == [("translation-error", {"error": "x"})]


def test_closed_session_emit_is_noop():
    ws = FakeWebSocket()
    session = ChannelSession(ws)
    session.close()

    assert asyncio.run(session.emit("translation-result", {"original": "x"})) is False
    assert ws.sent == []


def test_failed_send_closes_session_quietly():
    ws = FakeWebSocket(fail=True)
    session = ChannelSession(ws)

    assert asyncio.run(session.emit("translation-error", {"error": "x"})) is False
    assert session.closed


def test_result_for_departed_client_is_dropped():
    backend = RecordingBackend(delays={"hello": 0.05})
    ws = FakeWebSocket()
    session = ChannelSession(ws)

    async def scenario():
        task = session.spawn(TranslationRequestHandler(backend).handle({"text": "hello"}, session.emit))
        assert session.pending == 1
        await asyncio.sleep(0)
        session.close()
        await task

    asyncio.run(scenario())

    assert backend.calls == [("hello", "Spanish")]
    assert ws.sent == []
    assert session.pending == 0
