"""
api/connection.py
=================
Outbound side of one WebSocket connection.

Clock threads produce position updates while the socket lives on the
server's event loop.  :class:`WebSocketLink` bridges the two: ``send`` may
be called from any thread and only enqueues the encoded frame; a single
writer task on the event loop drains the queue in order.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

from fastapi import WebSocket, WebSocketDisconnect

import config
from protocol.codec import encode_outbound
from protocol.errors import TransportFailure
from protocol.message import OutboundMessage

log = logging.getLogger("connection")

_CLOSE = None


class WebSocketLink:
    """Thread-safe, fire-and-forget sender bound to one WebSocket.

    Parameters
    ----------
    websocket : WebSocket
        Accepted FastAPI/Starlette WebSocket.
    loop : asyncio.AbstractEventLoop
        The loop the socket belongs to.
    on_failure : callable or None
        Called once (on the loop) if a frame cannot be written.
    max_pending : int or None
        Frames allowed to wait for the writer; a client that falls this
        far behind is treated as gone.  Defaults to
        ``config.OUTBOUND_QUEUE_LIMIT``.
    """

    def __init__(
        self,
        websocket: WebSocket,
        loop: asyncio.AbstractEventLoop,
        on_failure: Optional[Callable[[], None]] = None,
        max_pending: Optional[int] = None,
    ) -> None:
        self._ws = websocket
        self._loop = loop
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._slots = threading.BoundedSemaphore(
            max_pending or config.OUTBOUND_QUEUE_LIMIT
        )
        self._closed = threading.Event()
        self.on_failure = on_failure

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, message: OutboundMessage) -> None:
        """Queue one message for delivery.

        Raises:
            TransportFailure: If the link is closed, its loop has stopped or
                the client has stopped draining its queue.
        """
        if self._closed.is_set():
            raise TransportFailure("connection closed")
        frame = encode_outbound(message)
        if not self._slots.acquire(blocking=False):
            log.warning("outbound queue full, closing link")
            self.close()
            raise TransportFailure("outbound queue full")
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, frame)
        except RuntimeError as exc:
            self._closed.set()
            raise TransportFailure(f"event loop unavailable: {exc}") from exc

    def close(self) -> None:
        """Stop accepting messages and let the writer drain and exit."""
        if self._closed.is_set():
            return
        self._closed.set()
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSE)
        except RuntimeError as exc:
            log.debug("close after loop shutdown: %s", exc)

    async def pump(self) -> None:
        """Writer task: send queued frames until closed or the socket fails."""
        while True:
            frame = await self._queue.get()
            if frame is _CLOSE:
                return
            self._slots.release()
            try:
                await self._ws.send_text(frame)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                log.warning("write failed, closing link: %s", exc)
                self._closed.set()
                if self.on_failure is not None:
                    self.on_failure()
                return
