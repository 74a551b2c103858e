"""
Inbound message routing.

Frames are classified by their ``type`` field: ``subscribed`` acks go to
the subscription registry, ``update``/``partial`` data goes to listeners
of the frame's topic key, anything else is logged and ignored.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from enum import Enum, auto
from typing import Any, Callable, Dict, List

from ftxws.core.exceptions import MalformedMessageError
from ftxws.realtime.subscriptions import SubscriptionRegistry, topic_key

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]

DATA_TYPES = ("update", "partial")


class FrameKind(Enum):
    """Outcome of routing one inbound frame."""

    SUBSCRIBED = auto()
    UPDATE = auto()
    UNHANDLED = auto()
    MALFORMED = auto()


class TopicEmitter:
    """Listeners keyed by topic, called in registration order."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._pending: set = set()

    def on(self, topic: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(topic, [])
        if listener not in listeners:
            listeners.append(listener)

    def off(self, topic: str, listener: Listener) -> bool:
        listeners = self._listeners.get(topic, [])
        if listener not in listeners:
            return False
        listeners.remove(listener)
        if not listeners:
            del self._listeners[topic]
        return True

    def listener_count(self, topic: str) -> int:
        return len(self._listeners.get(topic, ()))

    def topics(self) -> List[str]:
        return list(self._listeners)

    def emit(self, topic: str, data: Any) -> int:
        """
        Deliver ``data`` to every listener of ``topic``.

        A failing listener is logged and does not stop delivery to the
        rest. Coroutine results are scheduled on the running loop.

        Returns:
            Number of listeners called
        """
        delivered = 0
        for listener in list(self._listeners.get(topic, ())):
            delivered += 1
            try:
                result = listener(data)
            except Exception:
                logger.exception("[FTX] Listener error on %s", topic)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._listener_done)
        return delivered

    def _listener_done(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("[FTX] Async listener error: %s", task.exception())


def decode_frame(text: str) -> Dict[str, Any]:
    """
    Parse one inbound text frame.

    Raises:
        MalformedMessageError: not JSON, or not a JSON object
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Invalid JSON: {e}", raw=text, cause=e) from e
    if not isinstance(payload, dict):
        raise MalformedMessageError("Frame is not a JSON object", raw=text)
    return payload


class MessageRouter:
    """Dispatches decoded frames to the registry or to topic listeners."""

    def __init__(self, registry: SubscriptionRegistry, emitter: TopicEmitter):
        self.registry = registry
        self.emitter = emitter

    def route(self, text: str) -> FrameKind:
        try:
            payload = decode_frame(text)
        except MalformedMessageError as e:
            logger.error("[FTX] venue sent bad json: %s", e.details.get("raw", ""))
            return FrameKind.MALFORMED

        frame_type = payload.get("type")

        if frame_type == "subscribed":
            matched = self.registry.acknowledge(payload.get("channel"), payload.get("market"))
            if not matched:
                logger.warning(
                    "[FTX] ack for untracked subscription %s",
                    topic_key(payload.get("market"), payload.get("channel") or ""),
                )
            return FrameKind.SUBSCRIBED

        if frame_type in DATA_TYPES:
            key = topic_key(payload.get("market"), payload.get("channel") or "")
            self.emitter.emit(key, payload.get("data"))
            return FrameKind.UPDATE

        logger.info("[FTX] unhandled WS event %s", payload)
        return FrameKind.UNHANDLED
