"""Delivery of tailed lines to a streaming HTTP client as SSE frames."""

import asyncio
import html
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field

from .cancel import CancelToken
from .channel import LineChannel

log = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL = 2.0
DEFAULT_MAX_PENDING = 64 * 1024


@dataclass
class FrameFormatter:
    """Turns a line into one ``data:`` frame of an event stream.

    Without wrappers the line is sent as is. With either wrapper set the
    output is markup, so the line is HTML-escaped before it is wrapped.
    """

    left: str = ""
    right: str = ""

    @property
    def wraps(self) -> bool:
        return bool(self.left or self.right)

    def payload(self, line: bytes) -> str:
        text = line.decode("utf-8", errors="replace")
        if not self.wraps:
            return text
        return f"{self.left}{html.escape(text)}{self.right}"

    def format(self, line: bytes) -> bytes:
        return f"data: {self.payload(line)}\n\n".encode("utf-8")


@dataclass
class FrameBuffer:
    """Formatted frames waiting for the next flush."""

    frames: list[bytes] = field(default_factory=list)
    size: int = 0

    def append(self, frame: bytes) -> None:
        self.frames.append(frame)
        self.size += len(frame)

    def drain(self) -> bytes:
        """Return every pending frame as one chunk and empty the buffer."""
        chunk = b"".join(self.frames)
        self.frames = []
        self.size = 0
        return chunk

    def __len__(self) -> int:
        return len(self.frames)


class StreamDelivery:
    """Coalesces lines into periodic flushes to a push-style sink."""

    def __init__(
        self,
        channel: LineChannel,
        token: CancelToken,
        *,
        left: str = "",
        right: str = "",
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        """
        Initialize the delivery.

        Args:
            channel: Lines to deliver, in order
            token: Cancellation shared with whatever feeds ``channel``
            left: Markup placed before each line
            right: Markup placed after each line
            flush_interval: Seconds between flushes of buffered frames
            max_pending: Buffered bytes that force a flush before the next tick
        """
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        if max_pending < 1:
            raise ValueError("max_pending must be positive")
        self.channel = channel
        self.token = token
        self.formatter = FrameFormatter(left, right)
        self.flush_interval = flush_interval
        self.max_pending = max_pending
        self.buffer = FrameBuffer()
        self.flushes = 0
        self.frames = 0

    def _flush(self) -> bytes:
        self.flushes += 1
        return self.buffer.drain()

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Yield coalesced chunks of frames; each chunk is one network flush.

        Frames are buffered as lines arrive and handed out whenever the flush
        tick finds the buffer non-empty, or sooner once ``max_pending`` bytes
        are waiting. The stream ends when the channel is closed or the token
        fires, after one last flush of what is already
        buffered. Lines still in the channel at cancellation are left there.
        """
        loop = asyncio.get_running_loop()
        receiver: asyncio.Future | None = None
        stopper = asyncio.ensure_future(self.token.wait())
        next_tick = loop.time() + self.flush_interval
        try:
            while True:
                if receiver is None:
                    receiver = asyncio.ensure_future(self.channel.receive())
                timeout = max(0.0, next_tick - loop.time())
                done, _ = await asyncio.wait(
                    {receiver, stopper},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if receiver in done:
                    line = receiver.result()
                    receiver = None
                    if line is None:
                        break
                    self.buffer.append(self.formatter.format(line))
                    self.frames += 1
                if stopper in done:
                    break

                if self.buffer.size >= self.max_pending:
                    yield self._flush()
                    continue

                now = loop.time()
                if now >= next_tick:
                    while next_tick <= now:
                        next_tick += self.flush_interval
                    if self.buffer:
                        yield self._flush()
        finally:
            stopper.cancel()
            if receiver is not None:
                receiver.cancel()

        if self.buffer:
            yield self._flush()

    async def deliver(self, sink: Callable[[bytes], Awaitable[None]]) -> None:
        """
        Write every flush to ``sink`` until the stream ends.

        A failing write means the client is gone: delivery stops, fires the
        token so the producer stops too, and returns without retrying.
        """
        chunks = self.stream()
        try:
            async for chunk in chunks:
                try:
                    await sink(chunk)
                except Exception as e:
                    log.warning("delivery: sink write failed, stopping: %s", e)
                    self.token.cancel()
                    return
        finally:
            await chunks.aclose()
