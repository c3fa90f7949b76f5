"""Bounded single-producer/single-consumer channel of lines."""

import asyncio
import contextlib
from collections.abc import AsyncIterator

from .cancel import CancelToken
from .errors import Cancelled


class LineChannel:
    """Hands lines from a tail to its delivery, in order.

    The channel holds at most ``capacity`` lines. A producer that gets ahead
    of its consumer blocks in :meth:`send`, which is the only flow control
    between the two.
    """

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: asyncio.Queue[bytes] = asyncio.Queue(maxsize=capacity)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def send(self, line: bytes, token: CancelToken) -> bool:
        """
        Enqueue a line, waiting for room if the channel is full.

        Returns:
            True once the line is queued, False if ``token`` fired first.
            A line that lost the race is not queued.
        """
        if self.closed:
            raise RuntimeError("send on closed channel")
        try:
            await token.guard(self._queue.put(line))
        except Cancelled:
            return False
        return True

    def close(self) -> None:
        """Mark the end of the stream. Queued lines are still delivered."""
        self._closed.set()

    async def receive(self) -> bytes | None:
        """Return the next line, or None once closed and drained."""
        while True:
            if not self._queue.empty():
                return self._queue.get_nowait()
            if self.closed:
                return None

            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                done, _ = await asyncio.wait(
                    {getter, closer}, return_when=asyncio.FIRST_COMPLETED
                )
            except asyncio.CancelledError:
                getter.cancel()
                raise
            finally:
                closer.cancel()

            if getter in done:
                return getter.result()
            # Closed while waiting; a cancelled get never consumes a line.
            getter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await getter

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while (line := await self.receive()) is not None:
            yield line
