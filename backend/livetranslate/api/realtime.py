"""
WebSocket endpoint for real-time text translation.

Client sends:
- {"event": "translate", "data": {"text": "...", "targetLanguage": "es"}}

Server sends:
- {"event": "translation-result", "data": {"original": "...", "translated": "...", "targetLanguage": "es", "timestamp": "..."}}
- {"event": "translation-error", "data": {"error": "..."}}

Each translate event is handled in its own task, so results can arrive
out of request order when backend latencies differ.
"""

import asyncio
import logging
import uuid
from typing import Any, Coroutine, Dict, Optional, Set

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from ..protocol import TRANSLATE, ProtocolError, decode_event, encode_event
from ..services.translation_handler import TranslationRequestHandler
from ..services.translation_service import TranslationBackend

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def get_translation_backend(websocket: WebSocket) -> TranslationBackend:
    return websocket.app.state.translation_service


def origin_allowed(websocket: WebSocket) -> bool:
    """CORSMiddleware skips WebSocket upgrades, so the Origin header is checked here.

    Requests without an Origin (CLI, server-to-server) are not browser
    cross-site requests and are let through.
    """
    origin = websocket.headers.get("origin")
    if origin is None:
        return True
    allowed = websocket.app.state.settings.cors_origins
    return "*" in allowed or origin.rstrip("/") in allowed


class ChannelSession:
    """One accepted client channel.

    emit() is a no-op once the channel is closed, so late translations for a
    client that already left are dropped instead of raising.
    """

    def __init__(self, websocket: WebSocket, channel_id: Optional[str] = None):
        self.websocket = websocket
        self.channel_id = channel_id or uuid.uuid4().hex[:8]
        self.closed = False
        self._send_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def emit(self, event: str, payload: Dict[str, Any]) -> bool:
        if self.closed:
            logger.debug(f"[{self.channel_id}] Dropping {event}: channel closed")
            return False
        try:
            async with self._send_lock:
                await self.websocket.send_text(encode_event(event, payload))
            return True
        except Exception as e:
            self.closed = True
            logger.debug(f"[{self.channel_id}] Send failed, dropping {event}: {e}")
            return False

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def close(self) -> None:
        self.closed = True


@router.websocket("/ws")
async def translation_channel(
    websocket: WebSocket,
    backend: TranslationBackend = Depends(get_translation_backend),
) -> None:
    if not origin_allowed(websocket):
        logger.warning(f"Rejected channel from origin {websocket.headers.get('origin')}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    session = ChannelSession(websocket)
    handler = TranslationRequestHandler(backend)
    logger.info(f"[{session.channel_id}] Client connected")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            try:
                event, data = decode_event(raw)
            except ProtocolError as exc:
                logger.debug(f"[{session.channel_id}] Ignoring frame: {exc}")
                continue

            if event == TRANSLATE:
                session.spawn(handler.handle(data, session.emit, session.channel_id))
            else:
                logger.debug(f"[{session.channel_id}] Ignoring unknown event: {event}")

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"[{session.channel_id}] Channel error: {e}")

    finally:
        session.close()
        if session.pending:
            logger.info(f"[{session.channel_id}] Client disconnected ({session.pending} translations in flight)")
        else:
            logger.info(f"[{session.channel_id}] Client disconnected")
