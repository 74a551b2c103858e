"""
ftxws test configuration
- In-memory transport standing in for the websocket
- Controllable clock for liveness timing
- FTX_* environment isolation
"""

import json

import pytest

from ftxws.core.config import ConnectionSettings
from ftxws.core.exceptions import TransportError
from ftxws.realtime.connection import Connection


class FakeTransport:
    """Records outbound frames and lets tests inject transport events."""

    def __init__(
        self,
        url,
        *,
        factory,
        on_open,
        on_message,
        on_error,
        on_close,
        open_timeout=10.0,
        close_timeout=2.0,
    ):
        self.url = url
        self.factory = factory
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sent = []
        self.opened = False
        self.closed = False

    async def open(self):
        if self.factory.open_gate is not None:
            await self.factory.open_gate.wait()
        if self.closed:
            raise TransportError("terminated while opening", url=self.url)
        if self.factory.fail_next > 0:
            self.factory.fail_next -= 1
            self.closed = True
            raise TransportError("connection refused", url=self.url)
        self.opened = True
        self.on_open(self)

    def send(self, text):
        if not self.closed:
            self.sent.append(text)

    async def terminate(self):
        if self.closed:
            return
        self.closed = True
        if self.opened:
            self.on_close(self)

    # -- test helpers --------------------------------------------------

    def receive(self, payload):
        """Deliver an inbound frame (dicts are JSON-encoded)."""
        text = payload if isinstance(payload, str) else json.dumps(payload)
        self.on_message(self, text)

    def drop(self):
        """Simulate the server closing the connection."""
        self.closed = True
        self.on_close(self)

    def frames(self):
        return [json.loads(text) for text in self.sent]


class FakeTransportFactory:
    """Transport factory recording every transport it builds."""

    def __init__(self):
        self.transports = []
        self.fail_next = 0
        # when set, open() suspends until the event fires
        self.open_gate = None

    def __call__(self, url, **kwargs):
        transport = FakeTransport(url, factory=self, **kwargs)
        self.transports.append(transport)
        return transport

    @property
    def current(self):
        return self.transports[-1]


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def isolate_ftx_env(monkeypatch, tmp_path):
    """Keep real credentials and .env files out of tests."""
    for name in ("FTX_API_KEY", "FTX_API_SECRET", "FTX_SUBACCOUNT", "FTX_WS_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    # ping_interval is long so background ticks never fire; tests tick by hand
    return ConnectionSettings(reconnect_delay=0.01, ping_interval=3600.0)


@pytest.fixture
def make_connection(transport_factory, clock, settings):
    """Build a Connection wired to the fake transport and clock."""

    def _make(**overrides):
        conn_settings = ConnectionSettings(**{**settings.model_dump(), **overrides})
        return Connection(conn_settings, transport_factory=transport_factory, clock=clock)

    return _make
