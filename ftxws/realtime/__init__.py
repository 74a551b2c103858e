"""
Real-time websocket client

Connection lifecycle for the venue's websocket API:
- Fixed-delay reconnect with subscription replay
- Application-level ping / stale pong detection
- Optional HMAC login on every (re)connect
- Topic-keyed listeners for update/partial frames
"""

from ftxws.realtime.auth import Authenticator, sign_login
from ftxws.realtime.connection import Connection, ConnectionState, ConnectionStatus
from ftxws.realtime.liveness import LivenessMonitor
from ftxws.realtime.router import FrameKind, MessageRouter, TopicEmitter
from ftxws.realtime.subscriptions import Subscription, SubscriptionRegistry, topic_key
from ftxws.realtime.transport import WebSocketTransport

__all__ = [
    "Authenticator",
    "sign_login",
    "Connection",
    "ConnectionState",
    "ConnectionStatus",
    "LivenessMonitor",
    "FrameKind",
    "MessageRouter",
    "TopicEmitter",
    "Subscription",
    "SubscriptionRegistry",
    "topic_key",
    "WebSocketTransport",
]
