"""
Client side of the translation channel.

A ConnectionManager owns one logical channel to the relay. Inbound frames
are decoded into typed events and delivered to handlers registered with
on(); handlers belong to the manager, so reconnects never duplicate them.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union
from urllib.parse import urlsplit, urlunsplit

import websockets
from websockets.exceptions import ConnectionClosed
from pydantic import ValidationError

from ..config import ClientSettings
from ..protocol import (
    DEFAULT_TARGET_LANGUAGE,
    TRANSLATE,
    TRANSLATION_ERROR,
    TRANSLATION_FAILED_MESSAGE,
    TRANSLATION_RESULT,
    ProtocolError,
    TranslationRequest,
    TranslationResult,
    decode_event,
    encode_event,
)

logger = logging.getLogger(__name__)


class ConnectivityError(Exception):
    """The channel could not be established."""


class NotConnectedError(RuntimeError):
    """A send was attempted while no channel is active."""


@dataclass(frozen=True)
class Connected:
    url: str


@dataclass(frozen=True)
class ConnectError:
    error: BaseException


@dataclass(frozen=True)
class Disconnected:
    reason: str = ""


@dataclass(frozen=True)
class TranslationResultReceived:
    result: TranslationResult


@dataclass(frozen=True)
class TranslationErrorReceived:
    error: str


ClientEvent = Union[Connected, ConnectError, Disconnected, TranslationResultReceived, TranslationErrorReceived]
Handler = Callable[[Any], None]
Connector = Callable[[str], Awaitable[Any]]


def to_websocket_url(base_url: str) -> str:
    """http://host:3001 -> ws://host:3001/ws; explicit ws(s) URLs with a path are kept."""
    parts = urlsplit(base_url)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme or "ws")
    path = parts.path if parts.path not in ("", "/") else "/ws"
    return urlunsplit((scheme, parts.netloc, path, parts.query, ""))


async def _default_connector(url: str):
    return await websockets.connect(url, ping_interval=20, ping_timeout=10)


class ConnectionManager:
    def __init__(
        self,
        url: Optional[str] = None,
        *,
        reconnection: bool = True,
        reconnection_delay_ms: Optional[int] = None,
        reconnection_attempts: Optional[int] = None,
        connector: Optional[Connector] = None,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or ClientSettings()
        self.url = to_websocket_url(url or settings.socket_url)
        self.reconnection = reconnection
        self.reconnection_delay_ms = (
            settings.reconnection_delay_ms if reconnection_delay_ms is None else reconnection_delay_ms
        )
        self.reconnection_attempts = (
            settings.reconnection_attempts if reconnection_attempts is None else reconnection_attempts
        )
        self._connector = connector or _default_connector
        self._handlers: Dict[Type, List[Handler]] = {}
        self._ws = None
        self._reader_task: Optional[asyncio.Task] = None
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closing

    def on(self, event_type: Type, handler: Handler) -> None:
        """Register handler for events of event_type. Registrations accumulate."""
        self._handlers.setdefault(event_type, []).append(handler)

    def clear_handlers(self) -> None:
        self._handlers.clear()

    async def connect(self) -> None:
        """Open the channel.

        Raises:
            ConnectivityError: the transport could not be established
        """
        if self.connected:
            return
        self._closing = False
        await self._open()

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        ws = self._ws
        if ws is None or self._closing:
            raise NotConnectedError("Socket not connected")
        await ws.send(encode_event(event, payload))

    async def translate(self, text: str, target_language: str = DEFAULT_TARGET_LANGUAGE) -> None:
        request = TranslationRequest(text=text, target_language=target_language)
        await self.send(TRANSLATE, request.model_dump(by_alias=True))

    async def disconnect(self) -> None:
        """Close the channel and drop all handlers. Safe to call repeatedly."""
        self._closing = True
        self.clear_handlers()

        ws, self._ws = self._ws, None
        task, self._reader_task = self._reader_task, None

        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error while closing channel: {e}")

        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _dispatch(self, event: ClientEvent) -> None:
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Handler for {type(event).__name__} failed")

    async def _open(self) -> None:
        try:
            ws = await self._connector(self.url)
        except Exception as exc:
            logger.error(f"Connection error: {exc}")
            self._dispatch(ConnectError(exc))
            raise ConnectivityError(f"Could not connect to {self.url}: {exc}") from exc

        self._ws = ws
        self._reader_task = asyncio.create_task(self._read_loop(ws))
        logger.info(f"Connected to server: {self.url}")
        self._dispatch(Connected(self.url))

    async def _read_loop(self, ws) -> None:
        reason = "transport closed"
        try:
            async for raw in ws:
                self._handle_frame(raw)
        except ConnectionClosed as e:
            reason = f"connection closed ({e})"
        except Exception as e:
            reason = f"listener error ({e})"
            logger.error(f"Error in channel listener: {e}")
        finally:
            if self._ws is ws:
                self._ws = None

        if self._closing:
            return

        logger.info(f"Disconnected from server: {reason}")
        self._dispatch(Disconnected(reason))
        if self.reconnection:
            await self._reconnect()

    async def _reconnect(self) -> None:
        delay_s = self.reconnection_delay_ms / 1000.0
        for attempt in range(1, self.reconnection_attempts + 1):
            await asyncio.sleep(delay_s)
            if self._closing or self._ws is not None:
                return
            try:
                await self._open()
                logger.info(f"Reconnected after {attempt} attempt(s)")
                return
            except ConnectivityError:
                logger.warning(f"Reconnect attempt {attempt}/{self.reconnection_attempts} failed")

        logger.error(f"Giving up after {self.reconnection_attempts} reconnect attempts")

    def _handle_frame(self, raw: Any) -> None:
        try:
            event, data = decode_event(raw)
        except ProtocolError as e:
            logger.warning(f"Failed to parse message: {e}")
            return

        if event == TRANSLATION_RESULT:
            try:
                result = TranslationResult.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Malformed translation result: {e}")
                return
            self._dispatch(TranslationResultReceived(result))

        elif event == TRANSLATION_ERROR:
            message = data.get("error")
            if not isinstance(message, str) or not message:
                message = TRANSLATION_FAILED_MESSAGE
            self._dispatch(TranslationErrorReceived(message))

        else:
            logger.debug(f"Ignoring unknown event: {event}")
