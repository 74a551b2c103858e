"""
Resilient FTX Websocket Connection

Features:
- Fixed-delay reconnect, retried until terminate()
- Subscriptions replayed in registration order after every reconnect
- Sends issued during a reconnect wait for it instead of failing
- Optional login on every (re)connect when API credentials are set
- Application-level ping with stale round-trip detection
- Data frames delivered to listeners keyed by topic

All state is mutated from the event loop thread only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Set

from ftxws.core.config import ConnectionSettings
from ftxws.core.exceptions import MissingConfigError, NotConnectedError, TransportError
from ftxws.realtime.auth import Authenticator
from ftxws.realtime.liveness import PING, LivenessMonitor
from ftxws.realtime.router import FrameKind, Listener, MessageRouter, TopicEmitter
from ftxws.realtime.subscriptions import SubscriptionRegistry, topic_key
from ftxws.realtime.transport import WebSocketTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[..., WebSocketTransport]
StatusListener = Callable[["ConnectionState"], None]


class ConnectionState(Enum):
    """Connection lifecycle states."""

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    AUTHENTICATING = auto()
    AUTHENTICATED = auto()
    RECONNECTING = auto()
    TERMINATED = auto()


@dataclass(frozen=True)
class ConnectionStatus:
    """Read-only snapshot of a connection."""

    state: ConnectionState
    connected: bool
    authenticated: bool
    reconnecting: bool
    last_message_at: Optional[float]
    last_ping_at: Optional[float]
    last_pong_at: Optional[float]
    subscriptions: int
    messages_received: int
    reconnect_count: int
    malformed_frames: int
    stale_drops: int


class Connection:
    """
    Single websocket connection to the venue.

    Usage:
        conn = Connection(ConnectionSettings(key="...", secret="..."))
        await conn.connect()
        conn.on("BTC-PERP::ticker", print)
        await conn.subscribe("ticker", "BTC-PERP")
    """

    def __init__(
        self,
        settings: Optional[ConnectionSettings] = None,
        *,
        transport_factory: TransportFactory = WebSocketTransport,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize connection.

        Args:
            settings: Endpoint, credentials and timing settings
            transport_factory: Builds the transport for each (re)connect
            clock: Time source in seconds for liveness timestamps
        """
        self.settings = settings or ConnectionSettings()
        self._transport_factory = transport_factory
        self._clock = clock

        self._authenticator: Optional[Authenticator] = None
        if self.settings.has_credentials:
            self._authenticator = Authenticator(
                self.settings.key,
                self.settings.secret_value(),
                self.settings.subaccount,
            )

        self._state = ConnectionState.DISCONNECTED
        self._connected = False
        self._authenticated = False
        self._reconnecting = False

        self._transport: Optional[WebSocketTransport] = None
        self._connect_lock = asyncio.Lock()
        self._ready = asyncio.Event()
        self._reconnected = asyncio.Event()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

        self.last_message_at: Optional[float] = None

        self.subscriptions = SubscriptionRegistry()
        self._emitter = TopicEmitter()
        self._router = MessageRouter(self.subscriptions, self._emitter)
        self._status_listeners: List[StatusListener] = []

        self.liveness = LivenessMonitor(
            self._send_ping,
            self._drop_stale,
            interval=self.settings.ping_interval,
            stale_timeout=self.settings.stale_timeout,
            pong_window=self.settings.pong_window,
            clock=clock,
        )

        self._stats = {
            "messages_received": 0,
            "reconnect_count": 0,
            "malformed_frames": 0,
            "stale_drops": 0,
        }

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def authenticated(self) -> bool:
        """True once a login was sent; the venue never confirms it."""
        return self._authenticated

    @property
    def reconnecting(self) -> bool:
        return self._reconnecting

    @property
    def stats(self) -> Dict[str, Any]:
        return self._stats.copy()

    @property
    def status(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self._state,
            connected=self._connected,
            authenticated=self._authenticated,
            reconnecting=self._reconnecting,
            last_message_at=self.last_message_at,
            last_ping_at=self.liveness.last_ping_at,
            last_pong_at=self.liveness.last_pong_at,
            subscriptions=len(self.subscriptions),
            **self._stats,
        )

    async def wait_ready(self) -> None:
        """Block until the transport of the current cycle is open."""
        await self._ready.wait()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on(self, topic: str, listener: Listener) -> None:
        """Register ``listener`` for data on ``topic`` (``channel`` or ``market::channel``)."""
        self._emitter.on(topic, listener)

    def off(self, topic: str, listener: Listener) -> bool:
        return self._emitter.off(topic, listener)

    def on_status(self, listener: StatusListener) -> None:
        """Register ``listener`` for every state change."""
        if listener not in self._status_listeners:
            self._status_listeners.append(listener)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug("[FTX] State %s -> %s", self._state.name, state.name)
        self._state = state
        for listener in list(self._status_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("[FTX] Status listener error")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Open the websocket, then log in when credentials are configured.

        Raises:
            TransportError: the websocket could not be opened
        """
        if self._connected:
            return

        async with self._connect_lock:
            if self._connected:
                return

            old, self._transport = self._transport, None
            if old is not None and not old.closed:
                await old.terminate()

            self._set_state(ConnectionState.CONNECTING)
            transport = self._transport_factory(
                self.settings.url,
                on_open=self._handle_open,
                on_message=self._handle_message,
                on_error=self._handle_error,
                on_close=self._handle_close,
                open_timeout=self.settings.open_timeout,
                close_timeout=self.settings.close_timeout,
            )
            self._transport = transport
            try:
                await transport.open()
            except TransportError:
                if self._transport is not transport:
                    # terminate() detached it while the handshake was in flight
                    logger.info("[FTX] Connect aborted by terminate")
                    return
                self._transport = None
                self._set_state(
                    ConnectionState.RECONNECTING
                    if self._reconnecting
                    else ConnectionState.DISCONNECTED
                )
                raise

        if self._authenticator is not None:
            await self.authenticate()

        # connect() after terminate(): topics kept across the gap
        if not self._reconnecting and len(self.subscriptions):
            await self.subscriptions.replay_all(self.send_message)

    async def authenticate(self) -> None:
        """
        Send a login frame.

        Fire-and-forget: the venue sends no ack, so ``authenticated`` only
        means the login went out.
        """
        if self._authenticator is None:
            raise MissingConfigError("API key and secret are required to authenticate")

        if not self._connected:
            # connect() logs in itself
            await self.connect()
            return

        self._set_state(ConnectionState.AUTHENTICATING)
        await self.send_message(self._authenticator.login_payload())
        self._authenticated = True
        self._set_state(ConnectionState.AUTHENTICATED)

    async def terminate(self) -> None:
        """
        Close the websocket and stop reconnecting.

        Subscriptions are kept and re-sent by a later connect().
        Senders waiting on a reconnect fail with NotConnectedError.
        """
        logger.info("[FTX] TERMINATED WS CON")

        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        self.liveness.stop()
        self.liveness.reset()
        transport, self._transport = self._transport, None

        self._connected = False
        self._authenticated = False
        self._reconnecting = False
        self._ready.clear()
        self._reconnected.set()
        self._set_state(ConnectionState.TERMINATED)

        if transport is not None:
            await transport.terminate()

    def _start_reconnect(self) -> None:
        # synchronous so a send right after the close already sees
        # reconnecting=True and waits instead of failing
        self._reconnecting = True
        self._stats["reconnect_count"] += 1
        self.liveness.reset()

        self._reconnected = asyncio.Event()
        self._ready.clear()
        self._set_state(ConnectionState.RECONNECTING)
        self._reconnect_task = asyncio.create_task(self._reconnect(self._reconnected))

    async def _reconnect(self, reconnected: asyncio.Event) -> None:
        while True:
            await asyncio.sleep(self.settings.reconnect_delay)
            logger.info("[FTX] RECONNECTING...")
            try:
                await self.connect()
                break
            except TransportError as e:
                logger.warning("[FTX] Reconnect failed, retrying: %s", e)

        reconnected.set()
        self._ready.set()

        # queued senders cannot run before this returns: sends on an open
        # connection never suspend
        await self.subscriptions.replay_all(self.send_message)
        self._reconnecting = False

    def _drop_stale(self) -> None:
        transport = self._transport
        if transport is None:
            return
        self._stats["stale_drops"] += 1
        task = asyncio.create_task(transport.terminate())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    def _handle_open(self, transport: WebSocketTransport) -> None:
        if transport is not self._transport:
            return
        logger.info("[FTX] Connected to %s", transport.url)
        self._connected = True
        self._set_state(ConnectionState.CONNECTED)
        self._ready.set()
        self.liveness.start()

    def _handle_message(self, transport: WebSocketTransport, text: str) -> None:
        if transport is not self._transport:
            return
        self.last_message_at = self._clock()
        self._stats["messages_received"] += 1

        if self.liveness.handle_frame(text):
            return

        if self._router.route(text) is FrameKind.MALFORMED:
            self._stats["malformed_frames"] += 1

    def _handle_error(self, transport: WebSocketTransport, error: BaseException) -> None:
        logger.warning("[FTX] WS ERROR %s", error)

    def _handle_close(self, transport: WebSocketTransport) -> None:
        if transport is not self._transport:
            return
        logger.info("[FTX] CLOSED CON")
        self._transport = None
        self._connected = False
        self._authenticated = False
        self.liveness.stop()

        self._start_reconnect()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _wait_connected(self) -> None:
        while not self._connected:
            if not self._reconnecting:
                raise NotConnectedError(state=self._state.name)
            await self._reconnected.wait()

    async def send_message(self, payload: Dict[str, Any]) -> None:
        """
        Write one JSON frame.

        Waits for an in-flight reconnect to finish before writing.

        Raises:
            NotConnectedError: neither connected nor reconnecting
        """
        await self._wait_connected()
        self._transport.send(json.dumps(payload))

    async def _send_ping(self) -> None:
        await self.send_message(PING)

    async def subscribe(
        self, channel: str, market: Optional[str] = None
    ) -> Optional[asyncio.Future]:
        """
        Subscribe to ``channel`` (optionally for one ``market``).

        Returns:
            Future resolved when the venue acks the subscription, or None
            when the topic is already subscribed

        Raises:
            NotConnectedError: neither connected nor reconnecting
        """
        await self._wait_connected()

        sub = self.subscriptions.register(channel, market)
        if sub is None:
            logger.error(
                "[FTX] refusing to channel subscribe twice: %s",
                topic_key(market, channel),
            )
            return None

        await self.send_message(sub.to_wire())
        return sub.done
