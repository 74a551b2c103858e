"""
Websocket Transport

Thin adapter over ``websockets`` that turns a client connection into
open / message / error / close callbacks. Outbound frames go through a
FIFO queue drained by a writer task, so ``send`` never suspends and
frames reach the wire in call order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from ftxws.core.exceptions import TransportError, wrap_exception

logger = logging.getLogger(__name__)

OpenHandler = Callable[["WebSocketTransport"], None]
MessageHandler = Callable[["WebSocketTransport", str], None]
ErrorHandler = Callable[["WebSocketTransport", BaseException], None]
CloseHandler = Callable[["WebSocketTransport"], None]


class WebSocketTransport:
    """
    One websocket connection, opened at most once.

    Callbacks receive the transport itself so an owner can ignore
    events coming from a transport it has already replaced.
    """

    def __init__(
        self,
        url: str,
        *,
        on_open: OpenHandler,
        on_message: MessageHandler,
        on_error: ErrorHandler,
        on_close: CloseHandler,
        open_timeout: float = 10.0,
        close_timeout: float = 2.0,
    ):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout

        self._ws: Any = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._reader: Optional[asyncio.Task] = None
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """
        Open the websocket and start the reader/writer tasks.

        Raises:
            TransportError: the connection could not be established, or
                terminate() was called before it was
        """
        if self._ws is not None or self._closed:
            raise TransportError("Transport already opened", url=self.url)

        logger.info("[FTX] Opening websocket %s", self.url)
        try:
            self._ws = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                close_timeout=self.close_timeout,
                ping_interval=None,  # liveness is handled at application level
                ping_timeout=None,
            )
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as e:
            self._closed = True
            raise wrap_exception(
                e, TransportError, f"Failed to open {self.url}: {e}", url=self.url
            ) from e

        if self._closed:
            # terminate() ran during the handshake
            await self._close_quietly()
            raise TransportError("Transport terminated while opening", url=self.url)

        self._writer = asyncio.create_task(self._write_loop())
        self._reader = asyncio.create_task(self._read_loop())
        self.on_open(self)

    def send(self, text: str) -> None:
        """Queue a text frame for the writer task."""
        if self._closed:
            logger.warning("[FTX] Dropping frame on closed transport: %s", text[:100])
            return
        self._outbox.put_nowait(text)

    async def terminate(self) -> None:
        """
        Close the websocket. The close callback fires from the reader task.

        Before the handshake completes this only marks the transport
        closed; open() then closes the new socket and raises.
        """
        if self._closed:
            return
        if self._ws is None:
            self._closed = True
            return
        await self._close_quietly()

    async def _close_quietly(self) -> None:
        try:
            await self._ws.close()
        except Exception as e:
            logger.debug("[FTX] Error closing websocket: %s", e)

    async def _read_loop(self) -> None:
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                self.on_message(self, message)
        except ConnectionClosed as e:
            logger.info("[FTX] Websocket closed: %s", e)
        except Exception as e:
            self.on_error(self, e)
        finally:
            self._closed = True
            if self._writer is not None:
                self._writer.cancel()
            self.on_close(self)

    async def _write_loop(self) -> None:
        while True:
            text = await self._outbox.get()
            try:
                await self._ws.send(text)
            except ConnectionClosed:
                return
            except Exception as e:
                self.on_error(self, e)
