"""Realtime channel: one persistent WebSocket per active session.

Events from the socket (open, message, close) are delivered through a
single ``on_event`` callback as :class:`ChannelEvent` values, always on
the event loop that owns the channel.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pycourier._constants import NORMAL_CLOSURE, channel_path
from pycourier._redact import redact_for_log
from pycourier.config import CourierConfig
from pycourier.exceptions import CourierChannelError, CourierMalformedMessageError
from pycourier.models.messages import ChannelMessage, ping_message

_logger = logging.getLogger(__name__)


class ConnectionState(enum.StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


class ChannelEventKind(enum.StrEnum):
    OPEN = "open"
    MESSAGE = "message"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChannelEvent:
    """Something that happened on the channel.

    ``message`` is set for ``MESSAGE`` events; ``close_code`` and
    ``intentional`` for ``CLOSED`` events.
    """

    kind: ChannelEventKind
    driver_id: str
    message: ChannelMessage | None = None
    close_code: int | None = None
    intentional: bool = False


class WebSocketLike(Protocol):
    """The subset of :class:`aiohttp.ClientWebSocketResponse` the channel uses."""

    @property
    def close_code(self) -> int | None: ...

    async def send_str(self, data: str) -> None: ...

    async def receive(self) -> Any: ...

    async def close(self, *, code: int = ..., message: bytes = ...) -> bool: ...


Connector = Callable[[str], Awaitable[WebSocketLike]]


class RealtimeChannel:
    """Owns connect, reconnect and framing for the driver's realtime socket.

    Transport failures never escape the public surface: they move the
    channel to ``DISCONNECTED`` and, while a session is active, schedule
    a single reconnect attempt after ``config.reconnect_delay`` seconds.
    """

    def __init__(
        self,
        config: CourierConfig,
        *,
        on_event: Callable[[ChannelEvent], None],
        http_session: aiohttp.ClientSession | None = None,
        connector: Connector | None = None,
    ) -> None:
        if connector is None:
            if http_session is None:
                raise ValueError("RealtimeChannel needs an http_session or a connector")
            connector = http_session.ws_connect
        self._config = config
        self._on_event = on_event
        self._connector = connector
        self._state = ConnectionState.DISCONNECTED
        self._driver_id: str | None = None
        self._ws: WebSocketLike | None = None
        self._reader: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._generation = 0
        # True between connect() and an intentional close().
        self._active = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == ConnectionState.OPEN

    @property
    def driver_id(self) -> str | None:
        return self._driver_id

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def url_for(self, driver_id: str) -> str:
        return f"{self._config.channel_base_url}{channel_path(driver_id)}"

    def _emit(self, event: ChannelEvent) -> None:
        try:
            self._on_event(event)
        except Exception:
            _logger.warning("Channel event handler failed for %s", event.kind, exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, driver_id: str) -> None:
        """Open the channel for *driver_id*.

        Any existing socket is closed with normal closure first. Failure
        to connect is not raised; it goes through the reconnect policy.
        """
        self._cancel_reconnect()
        await self._drop_socket(reason=b"Reconnect")

        self._active = True
        self._driver_id = driver_id
        self._generation += 1
        generation = self._generation
        self._state = ConnectionState.CONNECTING
        url = self.url_for(driver_id)
        _logger.debug("Realtime channel connecting url=%s", url)

        try:
            ws = await self._connector(url)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            if generation != self._generation:
                return
            _logger.warning("Realtime channel connect failed: %s", exc)
            self._state = ConnectionState.DISCONNECTED
            self._schedule_reconnect()
            return

        if generation != self._generation or not self._active:
            # Superseded or closed while the handshake was in flight.
            with contextlib.suppress(Exception):
                await ws.close(code=NORMAL_CLOSURE, message=b"Superseded")
            return

        self._ws = ws
        self._state = ConnectionState.OPEN
        _logger.info("Realtime channel open for driver %s", driver_id)
        self._reader = asyncio.get_running_loop().create_task(self._read_loop(ws, generation))
        try:
            await self.send_json(ping_message())
        except CourierChannelError:
            return
        self._emit(ChannelEvent(ChannelEventKind.OPEN, driver_id))

    async def close(self) -> None:
        """Intentionally close the channel (normal closure, no reconnect).

        Safe to call when already closed.
        """
        self._active = False
        self._cancel_reconnect()
        had_socket = self._ws is not None
        await self._drop_socket(reason=b"Client disconnect")
        self._state = ConnectionState.DISCONNECTED
        if had_socket and self._driver_id is not None:
            _logger.info("Realtime channel closed for driver %s", self._driver_id)
            self._emit(
                ChannelEvent(
                    ChannelEventKind.CLOSED,
                    self._driver_id,
                    close_code=NORMAL_CLOSURE,
                    intentional=True,
                )
            )

    async def _drop_socket(self, *, reason: bytes) -> None:
        ws, reader = self._ws, self._reader
        self._ws = None
        self._reader = None
        self._generation += 1
        if ws is None:
            return
        self._state = ConnectionState.CLOSING
        try:
            await ws.close(code=NORMAL_CLOSURE, message=reason)
        except Exception:
            _logger.debug("Error while closing realtime socket", exc_info=True)
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON frame.

        Raises
        ------
        CourierChannelError
            If the channel is not open or the write fails. A failed write
            is also treated as a transport failure.
        """
        ws = self._ws
        if ws is None or self._state != ConnectionState.OPEN:
            raise CourierChannelError("Realtime channel is not open")
        _logger.debug("Realtime send %s", redact_for_log(payload))
        try:
            await ws.send_str(json.dumps(payload, separators=(",", ":")))
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
            self._on_transport_failure(f"send failed: {exc}")
            raise CourierChannelError(f"Realtime send failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    async def _read_loop(self, ws: WebSocketLike, generation: int) -> None:
        close_code: int | None = None
        error = False
        try:
            while True:
                msg = await ws.receive()
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._handle_frame(msg.data)
                    continue
                if msg.type == aiohttp.WSMsgType.CLOSE:
                    close_code = msg.data if isinstance(msg.data, int) else ws.close_code
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _logger.warning("Realtime channel error: %s", msg.data)
                    error = True
                else:
                    close_code = ws.close_code
                break
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _logger.warning("Realtime channel receive failed: %s", exc)
            error = True

        if generation != self._generation:
            return
        self._ws = None
        self._reader = None
        self._on_closed(close_code, error=error)

    def _handle_frame(self, frame: str | bytes) -> None:
        """Parse one inbound frame and dispatch it; malformed frames are dropped."""
        try:
            message = ChannelMessage.from_frame(frame)
        except CourierMalformedMessageError as exc:
            _logger.warning("Dropping malformed realtime frame: %s (%r)", exc, exc.frame[:64])
            return
        _logger.debug("Realtime message type=%s order_id=%s", message.type, message.order_id)
        self._emit(ChannelEvent(ChannelEventKind.MESSAGE, self._driver_id or "", message=message))

    def _on_transport_failure(self, reason: str) -> None:
        _logger.warning("Realtime channel transport failure: %s", reason)
        ws = self._ws
        self._ws = None
        reader = self._reader
        self._reader = None
        self._generation += 1
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if ws is not None:
            asyncio.get_running_loop().create_task(self._close_quietly(ws))
        self._on_closed(None, error=True)

    @staticmethod
    async def _close_quietly(ws: WebSocketLike) -> None:
        with contextlib.suppress(Exception):
            await ws.close()

    def _on_closed(self, code: int | None, *, error: bool = False) -> None:
        """Handle a close or error that the client did not ask for."""
        self._state = ConnectionState.DISCONNECTED
        _logger.info("Realtime channel closed code=%s error=%s", code, error)
        self._emit(ChannelEvent(ChannelEventKind.CLOSED, self._driver_id or "", close_code=code))
        if error or code != NORMAL_CLOSURE:
            self._schedule_reconnect()

    # ------------------------------------------------------------------
    # Reconnect policy
    # ------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if not self._active or not self._config.reconnect_enabled or self._driver_id is None:
            return
        if self._reconnect_handle is not None:
            return
        delay = self._config.reconnect_delay
        _logger.debug("Realtime reconnect scheduled in %.1fs", delay)
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if not self._active or self._driver_id is None:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self.connect(self._driver_id))

    def _cancel_reconnect(self) -> None:
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            handle.cancel()
