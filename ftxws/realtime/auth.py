"""
Websocket login payloads.

The venue never acknowledges a login, so callers send the payload and
assume the session is authenticated.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Any, Callable, Dict, Optional

LOGIN_SUFFIX = "websocket_login"


def now_ms() -> int:
    return int(time.time() * 1000)


def sign_login(secret: str, timestamp_ms: int) -> str:
    """HMAC-SHA256 hex digest of ``<timestamp_ms>websocket_login``."""
    return hmac.new(
        secret.encode("utf-8"),
        f"{timestamp_ms}{LOGIN_SUFFIX}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class Authenticator:
    """Builds time-stamped login operations from a key/secret pair."""

    def __init__(
        self,
        key: str,
        secret: str,
        subaccount: Optional[str] = None,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self.key = key
        self._secret = secret
        self.subaccount = subaccount
        self._clock_ms = clock_ms

    def login_payload(self, timestamp_ms: Optional[int] = None) -> Dict[str, Any]:
        ts = self._clock_ms() if timestamp_ms is None else timestamp_ms
        args: Dict[str, Any] = {
            "key": self.key,
            "sign": sign_login(self._secret, ts),
            "time": ts,
        }
        if self.subaccount:
            args["subaccount"] = self.subaccount
        return {"op": "login", "args": args}

    def __repr__(self) -> str:
        return f"Authenticator(key=<MASKED>, subaccount={self.subaccount})"
