"""Per-request tail sessions wiring a source to its delivery."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from .cancel import CancelToken
from .channel import LineChannel
from .delivery import DEFAULT_FLUSH_INTERVAL, DEFAULT_MAX_PENDING, StreamDelivery
from .sources.file import DEFAULT_BUFFER_SIZE, TailSource

log = logging.getLogger(__name__)


@dataclass
class TailSettings:
    """Tuning shared by every tail a server starts."""

    poll_interval: float = 1.0
    max_poll_interval: float | None = None
    flush_interval: float = DEFAULT_FLUSH_INTERVAL
    max_pending: int = DEFAULT_MAX_PENDING
    buffer_size: int = DEFAULT_BUFFER_SIZE
    channel_capacity: int = 1


class TailRegistry:
    """Tokens of the tails currently streaming, so shutdown can stop them."""

    def __init__(self) -> None:
        self._tokens: set[CancelToken] = set()

    def register(self, token: CancelToken) -> None:
        self._tokens.add(token)

    def discard(self, token: CancelToken) -> None:
        self._tokens.discard(token)

    def cancel_all(self) -> int:
        """Fire every registered token. Returns how many were fired."""
        tokens = list(self._tokens)
        self._tokens.clear()
        for token in tokens:
            token.cancel()
        if tokens:
            log.info("Cancelled %d in-flight tail(s)", len(tokens))
        return len(tokens)

    def __len__(self) -> int:
        return len(self._tokens)


class TailSession:
    """One streaming request: a tail task feeding a coalescing delivery."""

    def __init__(
        self,
        source: TailSource,
        *,
        left: str = "",
        right: str = "",
        settings: TailSettings | None = None,
        token: CancelToken | None = None,
        registry: TailRegistry | None = None,
    ):
        self.settings = settings or TailSettings()
        self.source = source
        self.token = token or CancelToken()
        self.registry = registry
        self.channel = LineChannel(self.settings.channel_capacity)
        self.delivery = StreamDelivery(
            self.channel,
            self.token,
            left=left,
            right=right,
            flush_interval=self.settings.flush_interval,
            max_pending=self.settings.max_pending,
        )
        self._producer: asyncio.Task[None] | None = None

    @classmethod
    async def open(
        cls,
        path: str | Path,
        *,
        follow: bool = True,
        settings: TailSettings | None = None,
        **kwargs,
    ) -> "TailSession":
        """Open ``path`` for tailing. Raises OSError if it cannot be opened."""
        settings = settings or TailSettings()
        handle = await aiofiles.open(path, mode="rb")
        source = TailSource(
            handle,
            path=str(path),
            follow=follow,
            poll_interval=settings.poll_interval,
            max_poll_interval=settings.max_poll_interval,
            buffer_size=settings.buffer_size,
        )
        return cls(source, settings=settings, **kwargs)

    async def stream(self) -> AsyncIterator[bytes]:
        """Start the tail and yield flushed chunks of SSE frames."""
        if self.registry is not None:
            self.registry.register(self.token)
        self._producer = asyncio.create_task(self.source.run(self.channel, self.token))
        try:
            async for chunk in self.delivery.stream():
                yield chunk
        finally:
            self.token.cancel()
            if self.registry is not None:
                self.registry.discard(self.token)
            log.info(
                "session %s: %d frames in %d flushes",
                self.source.name,
                self.delivery.frames,
                self.delivery.flushes,
            )
            # A disconnect may cancel us again here; the producer still stops.
            await asyncio.shield(self._producer)

    async def close(self) -> None:
        """Release the file if the stream never started, else stop it."""
        self.token.cancel()
        if self._producer is None:
            await self.source.close()
