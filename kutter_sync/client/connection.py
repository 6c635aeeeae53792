"""Long-lived channel connection with flat-delay reconnect."""
from __future__ import annotations

import asyncio
import enum
import json
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .config import RECONNECT_DELAY
from .logging_config import configure_logging

logger = configure_logging()

TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)

FrameCallback = Callable[[str], Awaitable[Any]]
Connector = Callable[[str, Dict[str, str]], Awaitable[Any]]


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


async def websocket_connector(url: str, headers: Dict[str, str]):
    return await websocket_connect(url, additional_headers=headers)


class ConnectionManager:
    """Owns one channel socket and its reconnect timer.

    ``connect`` is idempotent: the held socket is closed before a new one is
    opened, and concurrent calls are serialized, so at most one socket is
    live. A drop schedules exactly one reconnect after ``reconnect_delay``
    (flat, no backoff) until ``close`` is called.
    """

    def __init__(
        self,
        name: str,
        url: str,
        on_frame: FrameCallback,
        *,
        on_open: Optional[Callable[[], Awaitable[Any]]] = None,
        on_drop: Optional[Callable[[Optional[BaseException]], Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        connector: Optional[Connector] = None,
        reconnect_delay: float = RECONNECT_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.name = name
        self.url = url
        self.on_frame = on_frame
        self.on_open = on_open
        self.on_drop = on_drop
        self.headers = dict(headers or {})
        self.connector = connector or websocket_connector
        self.reconnect_delay = reconnect_delay
        self._sleep = sleep
        self.state = ConnectionState.DISCONNECTED
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._stopped = False

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def connect(self) -> bool:
        self._stopped = False
        self._cancel_reconnect()
        async with self._lock:
            await self._drop_socket()
            self.state = ConnectionState.CONNECTING
            logger.info("CHANNEL_CONNECTING channel=%s url=%s", self.name, self.url)
            try:
                ws = await self.connector(self.url, self.headers)
            except TRANSPORT_ERRORS as exc:
                logger.warning("CHANNEL_CONNECT_FAIL channel=%s error=%s", self.name, exc)
                self.state = ConnectionState.DISCONNECTED
                self._report_drop(exc)
                self.schedule_reconnect()
                return False
            if self._stopped:
                await self._close_socket(ws)
                return False
            self._ws = ws
            self.state = ConnectionState.OPEN
            self._reader = asyncio.create_task(self._read(ws))
            logger.info("CHANNEL_OPEN channel=%s", self.name)
        if self.on_open is not None:
            try:
                await self.on_open()
            except Exception:  # noqa: BLE001
                logger.exception("CHANNEL_ON_OPEN_FAILED channel=%s", self.name)
        return True

    async def send(self, frame: Mapping[str, Any]) -> bool:
        """Send one JSON frame; False when the channel is not open."""
        ws = self._ws
        if self.state is not ConnectionState.OPEN or ws is None:
            logger.warning("SEND_REJECTED channel=%s state=%s", self.name, self.state.value)
            return False
        try:
            await ws.send(json.dumps(frame))
        except (ConnectionClosed, OSError) as exc:
            logger.warning("SEND_FAIL channel=%s error=%s", self.name, exc)
            return False
        logger.debug("FRAME_SENT channel=%s action=%s", self.name, frame.get("action"))
        return True

    async def close(self) -> None:
        self._stopped = True
        self._cancel_reconnect()
        async with self._lock:
            await self._drop_socket()
            self.state = ConnectionState.CLOSED
        logger.info("CHANNEL_CLOSED channel=%s", self.name)

    def schedule_reconnect(self) -> bool:
        if self._stopped or self.reconnect_pending:
            return False
        logger.info("RECONNECT_SCHEDULED channel=%s delay=%.1fs", self.name, self.reconnect_delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())
        return True

    async def _reconnect_after_delay(self) -> None:
        await self._sleep(self.reconnect_delay)
        self._reconnect_task = None
        if not self._stopped:
            await self.connect()

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._reconnect_task = None

    async def _read(self, ws) -> None:
        error: Optional[BaseException] = None
        try:
            async for raw in ws:
                await self.on_frame(raw)
        except (ConnectionClosed, OSError) as exc:
            error = exc
        if ws is not self._ws or self._stopped:
            return
        logger.warning("CHANNEL_DROPPED channel=%s error=%s", self.name, error)
        self._ws = None
        self._reader = None
        self.state = ConnectionState.DISCONNECTED
        self._report_drop(error)
        self.schedule_reconnect()

    def _report_drop(self, error: Optional[BaseException]) -> None:
        if self.on_drop is None:
            return
        try:
            self.on_drop(error)
        except Exception:  # noqa: BLE001
            logger.exception("CHANNEL_ON_DROP_FAILED channel=%s", self.name)

    async def _drop_socket(self) -> None:
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader
        if ws is not None:
            await self._close_socket(ws)
        if self.state is ConnectionState.OPEN:
            self.state = ConnectionState.DISCONNECTED

    async def _close_socket(self, ws) -> None:
        try:
            await ws.close()
        except (ConnectionClosed, OSError) as exc:
            logger.debug("CHANNEL_CLOSE_ERROR channel=%s error=%s", self.name, exc)
