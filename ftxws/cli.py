"""
Stream topics from the venue websocket to stdout.

Credentials (for private channels such as ``fills``) come from
FTX_API_KEY / FTX_API_SECRET / FTX_SUBACCOUNT or a .env file.

Examples:
    ftxws-stream --channel ticker --market BTC-PERP
    ftxws-stream --channel fills --channel orders
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from ftxws.core.config import ConnectionSettings, load_settings
from ftxws.core.exceptions import FTXWSError
from ftxws.core.structured_logging import configure_logging, get_logger
from ftxws.realtime.connection import Connection
from ftxws.realtime.subscriptions import topic_key

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ftxws-stream",
        description="Subscribe to websocket channels and print every update as a JSON line",
    )
    parser.add_argument(
        "--channel",
        action="append",
        required=True,
        help="Channel to subscribe to (repeatable)",
    )
    parser.add_argument("--market", default=None, help="Market, e.g. BTC-PERP")
    parser.add_argument("--endpoint", default=None, help="Websocket endpoint override")
    parser.add_argument("--config", type=Path, default=None, help="JSON settings file")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    return parser


def _printer(topic: str):
    def _print(data) -> None:
        sys.stdout.write(json.dumps({"topic": topic, "data": data}, default=str) + "\n")
        sys.stdout.flush()

    return _print


async def stream(settings: ConnectionSettings, channels: List[str], market: Optional[str]) -> None:
    """Connect, subscribe to each channel and run until cancelled."""
    conn = Connection(settings)
    await conn.connect()
    try:
        for channel in channels:
            topic = topic_key(market, channel)
            conn.on(topic, _printer(topic))
            await conn.subscribe(channel, market)
        await asyncio.Event().wait()
    finally:
        await conn.terminate()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, json_format=args.json_logs)

    try:
        settings = load_settings(args.config, overrides={"endpoint": args.endpoint})
    except FTXWSError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    logger.info("Streaming %s from %s", args.channel, settings.url)
    try:
        asyncio.run(stream(settings, args.channel, args.market))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except FTXWSError as e:
        logger.error("Stream failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
