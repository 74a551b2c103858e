"""
Subscription Registry

Tracks the topics a connection wants, one entry per (market, channel)
pair, in registration order. Entries are never removed; they are re-sent
after every reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


def topic_key(market: Optional[str], channel: str) -> str:
    """Routable topic name: ``channel`` or ``market::channel``."""
    if not market:
        return channel
    return f"{market}::{channel}"


@dataclass
class Subscription:
    """
    One tracked topic.

    ``done`` is created once at registration and resolves on the first
    ``subscribed`` ack, whether that ack answers the initial request or a
    replay.
    """

    channel: str
    market: Optional[str]
    done: asyncio.Future = field(repr=False)
    acknowledged: bool = False

    @property
    def key(self) -> str:
        return topic_key(self.market, self.channel)

    def matches(self, channel: Optional[str], market: Optional[str]) -> bool:
        return self.channel == channel and self.market == market

    def to_wire(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"op": "subscribe", "channel": self.channel}
        if self.market:
            message["market"] = self.market
        return message


class SubscriptionRegistry:
    """Ordered, de-duplicated set of subscriptions keyed by topic."""

    def __init__(self):
        self._subscriptions: Dict[str, Subscription] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._subscriptions

    def keys(self) -> List[str]:
        return list(self._subscriptions)

    def get(self, key: str) -> Optional[Subscription]:
        return self._subscriptions.get(key)

    def register(self, channel: str, market: Optional[str] = None) -> Optional[Subscription]:
        """
        Track a new topic.

        Returns:
            The new Subscription, or None when the topic is already tracked
        """
        market = market or None
        key = topic_key(market, channel)
        if key in self._subscriptions:
            return None

        sub = Subscription(
            channel=channel,
            market=market,
            done=asyncio.get_running_loop().create_future(),
        )
        self._subscriptions[key] = sub
        return sub

    async def replay_all(self, send: Callable[[Dict[str, Any]], Awaitable[None]]) -> int:
        """
        Re-send every subscription in registration order.

        Returns:
            Number of subscriptions re-sent
        """
        count = 0
        for sub in self:
            sub.acknowledged = False
            await send(sub.to_wire())
            count += 1
        if count:
            logger.info("[FTX] Replayed %d subscription(s)", count)
        return count

    def acknowledge(self, channel: Optional[str], market: Optional[str] = None) -> int:
        """
        Mark every entry equal to (market, channel) as acknowledged.

        Returns:
            Number of entries matched
        """
        market = market or None
        matched = 0
        for sub in self._subscriptions.values():
            if not sub.matches(channel, market):
                continue
            matched += 1
            sub.acknowledged = True
            if not sub.done.done():
                sub.done.set_result(None)
        return matched
