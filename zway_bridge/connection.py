"""Connection manager for the bridge's single outbound WebSocket.

This module owns the transport handle and the connection state. It handles:
- Opening the connection on demand (no timer-driven retries)
- The connect guard that keeps at most one attempt in flight
- Ordered transmission of outbound envelopes
- Routing transport events (open, message, close, error)

Everything else reaches the transport only through `ConnectionManager`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import BridgeClientError
from .protocol import MessageType, encode_envelope
from .transport.ws_client import BridgeWsClient, BridgeWsMessageType

_LOGGER = logging.getLogger(__name__)

CLOSE_TIMEOUT = 2.0


@dataclass(slots=True)
class ConnectionState:
    """Connection flags, mutated only by `ConnectionManager`."""

    connecting: bool = False
    connected: bool = False


class ConnectionManager:
    """Own one outbound WebSocket connection and its lifecycle.

    Usage:
        manager = ConnectionManager("ws://192.168.1.20:8080/zway")
        manager.on_open(send_full_state)
        manager.on_message(router.route)
        manager.ensure_connected()
        manager.send(MessageType.DEVICE_CHANGE, snapshot)
        await manager.stop()

    A connection attempt sets ``connecting`` before the transport is opened.
    The flag is released immediately when the attempt fails or the transport
    reports an error, and ``reconnect_debounce`` seconds after a successful
    open so that a burst of triggers does not dial twice.
    """

    def __init__(
        self,
        address: str,
        *,
        reconnect_debounce: float = 0.1,
        ping_interval: int | None = 20,
        connect_timeout: float = 15.0,
        verbose: bool = False,
    ) -> None:
        """Initialize the manager.

        Args:
            address: WebSocket server address
            reconnect_debounce: Delay before releasing the connect guard after
                a successful open (seconds)
            ping_interval: Keepalive ping interval (seconds, None disables)
            connect_timeout: Opening handshake timeout (seconds)
            verbose: Log every inbound and outbound frame
        """
        self.address = address

        self._reconnect_debounce = reconnect_debounce
        self._ping_interval = ping_interval
        self._connect_timeout = connect_timeout
        self._verbose = verbose

        self._state = ConnectionState()
        self._ws: BridgeWsClient | None = None
        self._generation = 0
        self._stopped = False

        self._connect_task: asyncio.Task[None] | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._closing: set[asyncio.Task[None]] = set()
        self._release_timer: asyncio.TimerHandle | None = None

        self._open_callback: Callable[[], None] | None = None
        self._message_callback: Callable[[str], None] | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection flags (read-only for callers)."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.connected

    @property
    def is_connecting(self) -> bool:
        return self._state.connecting

    def on_open(self, callback: Callable[[], None]) -> None:
        """Register callback invoked after every successful open."""
        self._open_callback = callback

    def on_message(self, callback: Callable[[str], None]) -> None:
        """Register callback receiving each inbound text frame."""
        self._message_callback = callback

    def start(self) -> None:
        """Allow connection attempts again after `stop()`."""
        self._stopped = False

    def ensure_connected(self) -> bool:
        """Start a connection attempt unless connected or one is in flight.

        Never blocks: the attempt runs as a task on the running loop.

        Returns:
            True if already connected, False otherwise
        """
        if self._stopped:
            return False
        if self._state.connected:
            return True
        if self._state.connecting:
            _LOGGER.debug("[%s] Connection attempt already in flight", self.address)
            return False

        loop = asyncio.get_running_loop()
        self._state.connecting = True
        self._generation += 1
        self._connect_task = loop.create_task(self._connect(self._generation))
        return False

    async def wait_connected(self) -> bool:
        """Wait for the current connection attempt to resolve.

        Returns:
            True if the connection is open afterwards
        """
        task = self._connect_task
        if task is not None and not task.done():
            await asyncio.wait({task})
        return self._state.connected

    def send(self, msg_type: MessageType | str, data: Any) -> bool:
        """Queue an envelope for transmission.

        When not connected a connection attempt is started and the message is
        dropped; sends are best-effort.

        Returns:
            True if the message was queued, False if it was dropped
        """
        if not self._state.connected:
            self.ensure_connected()

        if not self._state.connected or self._outbox is None:
            _LOGGER.debug(
                "[%s] Not connected, dropping %s message",
                self.address,
                MessageType(msg_type).value,
            )
            return False

        self._outbox.put_nowait(encode_envelope(msg_type, data))
        return True

    async def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued message has been handed to the transport.

        Returns:
            False if the timeout expired with messages still queued
        """
        outbox = self._outbox
        if outbox is None:
            return True
        try:
            await asyncio.wait_for(outbox.join(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def stop(self) -> None:
        """Flush pending messages, close the connection and cancel any attempt.

        Safe to call repeatedly or before any connection was made.
        """
        if self._stopped:
            return

        _LOGGER.info("[%s] Stopping connection", self.address)
        self._stopped = True

        if not await self.flush(CLOSE_TIMEOUT):
            _LOGGER.warning("[%s] Pending messages not sent before stop", self.address)

        self._generation += 1

        self._cancel_release_timer()

        for task in (self._connect_task, self._listen_task, self._writer_task):
            await self._cancel_task(task)
        self._connect_task = None
        self._listen_task = None
        self._writer_task = None

        ws = self._ws
        self._ws = None
        if ws is not None:
            await self._close_client(ws)
        if self._closing:
            await asyncio.wait(set(self._closing))

        self._discard_outbox()
        self._state.connected = False
        self._state.connecting = False

    # -------------------------------------------------------------------------
    # Internal: Connection Attempt
    # -------------------------------------------------------------------------

    async def _connect(self, generation: int) -> None:
        """Open the transport; runs as the single in-flight attempt."""
        _LOGGER.info("[%s] Connecting", self.address)
        client = BridgeWsClient()

        try:
            await client.connect(
                self.address,
                ping_interval=self._ping_interval,
                timeout=self._connect_timeout,
            )
        except BridgeClientError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self.address, err)
            self._release_after_failure(generation)
            return
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected connection error: %s", self.address, err)
            self._release_after_failure(generation)
            return

        if generation != self._generation:
            # stop() ran while the handshake was in progress
            await self._close_client(client)
            return

        self._handle_open(client, generation)

    def _release_after_failure(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._state.connected = False
        self._state.connecting = False

    def _release_guard(self, generation: int) -> None:
        self._release_timer = None
        if generation == self._generation:
            self._state.connecting = False

    def _cancel_release_timer(self) -> None:
        if self._release_timer is not None:
            self._release_timer.cancel()
            self._release_timer = None

    # -------------------------------------------------------------------------
    # Internal: Transport Events
    # -------------------------------------------------------------------------

    def _handle_open(self, client: BridgeWsClient, generation: int) -> None:
        loop = asyncio.get_running_loop()

        self._ws = client
        self._state.connected = True
        self._outbox = asyncio.Queue()
        self._writer_task = loop.create_task(
            self._drain_outbox(client, self._outbox, generation)
        )
        self._listen_task = loop.create_task(self._listen(client, generation))

        self._cancel_release_timer()
        self._release_timer = loop.call_later(
            self._reconnect_debounce, self._release_guard, generation
        )

        _LOGGER.info("[%s] Connected", self.address)

        if self._open_callback:
            try:
                self._open_callback()
            except Exception as err:
                _LOGGER.exception("[%s] Open callback error: %s", self.address, err)

    def _handle_message(self, data: str) -> None:
        if self._verbose:
            _LOGGER.debug("[%s] Received: %s", self.address, data)
        if self._message_callback:
            try:
                self._message_callback(data)
            except Exception as err:
                _LOGGER.exception("[%s] Message callback error: %s", self.address, err)

    def _handle_close(self, generation: int) -> None:
        if generation != self._generation:
            return
        _LOGGER.info("[%s] Connection closed", self.address)
        self._state.connected = False
        self._teardown()

    def _handle_error(self, generation: int, detail: Any) -> None:
        if generation != self._generation:
            return
        _LOGGER.warning("[%s] Connection error: %s", self.address, detail)
        self._state.connected = False
        self._state.connecting = False
        self._cancel_release_timer()
        self._teardown()

    def _teardown(self) -> None:
        """Release the per-connection tasks and handle after close or error."""
        current = asyncio.current_task()
        for task in (self._writer_task, self._listen_task):
            if task is not None and task is not current:
                task.cancel()
        self._writer_task = None
        self._listen_task = None

        self._discard_outbox()
        self._outbox = None

        ws = self._ws
        self._ws = None
        if ws is not None:
            closing = asyncio.get_running_loop().create_task(self._close_client(ws))
            self._closing.add(closing)
            closing.add_done_callback(self._closing.discard)

    async def _listen(self, client: BridgeWsClient, generation: int) -> None:
        """Forward transport events until the connection ends."""
        try:
            async for msg in client:
                if generation != self._generation:
                    return

                if msg.type is BridgeWsMessageType.TEXT:
                    self._handle_message(msg.data or "")
                elif msg.type is BridgeWsMessageType.CLOSED:
                    self._handle_close(generation)
                    return
                elif msg.type is BridgeWsMessageType.ERROR:
                    self._handle_error(generation, "transport reported an error")
                    return

        except asyncio.CancelledError:
            raise
        except BridgeClientError as err:
            self._handle_error(generation, err)
            return
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected listener error: %s", self.address, err)
            self._handle_error(generation, err)
            return

        # Iteration ended without a close frame
        self._handle_close(generation)

    async def _drain_outbox(
        self, client: BridgeWsClient, outbox: asyncio.Queue[str], generation: int
    ) -> None:
        """Transmit queued frames in submission order."""
        while True:
            frame = await outbox.get()
            try:
                if self._verbose:
                    _LOGGER.debug("[%s] Sending: %s", self.address, frame)
                await client.send_text(frame)
            except BridgeClientError as err:
                _LOGGER.warning("[%s] Failed to send message: %s", self.address, err)
                self._handle_error(generation, err)
                return
            finally:
                outbox.task_done()

    # -------------------------------------------------------------------------
    # Internal: Helpers
    # -------------------------------------------------------------------------

    def _discard_outbox(self) -> None:
        outbox = self._outbox
        if outbox is None:
            return
        dropped = 0
        while not outbox.empty():
            outbox.get_nowait()
            outbox.task_done()
            dropped += 1
        if dropped:
            _LOGGER.debug("[%s] Dropped %d unsent messages", self.address, dropped)

    async def _close_client(self, client: BridgeWsClient) -> None:
        try:
            await asyncio.wait_for(client.close(), timeout=CLOSE_TIMEOUT)
        except TimeoutError:
            _LOGGER.warning("[%s] WebSocket close timed out", self.address)

    @staticmethod
    async def _cancel_task(task: asyncio.Task[None] | None) -> None:
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
