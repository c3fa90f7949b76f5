"""File-based line source with tail -f functionality."""

import logging
import os
import random
from dataclasses import dataclass

from aiofiles.threadpool.binary import AsyncBufferedReader

from ..backoff import Backoff
from ..cancel import CancelToken
from ..channel import LineChannel
from ..errors import FileTruncated
from .base import LineSource

log = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 16 * 1024


@dataclass
class TailState:
    """Read position of one tail. Only the source's read loop mutates it."""

    path: str
    offset: int = 0
    partial: bytes = b""
    interval: float = 1.0
    # The last line was cut at max_line, so a newline right after it is not a record.
    split: bool = False


@dataclass
class TailStats:
    """Counters reported when a tail finishes."""

    reads: int = 0
    bytes_read: int = 0
    lines: int = 0


class TailSource(LineSource):
    """Follow a file that another process appends to (like tail -f)."""

    def __init__(
        self,
        handle: AsyncBufferedReader,
        *,
        path: str | None = None,
        follow: bool = True,
        poll_interval: float = 1.0,
        max_poll_interval: float | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        max_line: int | None = None,
        rng: random.Random | None = None,
        backoff: Backoff | None = None,
    ):
        """
        Initialize a tail over an open binary file handle.

        Args:
            handle: Async binary handle (``aiofiles.open(path, "rb")``); the
                source owns it and closes it when it stops
            path: Name used in logs (defaults to the handle's name)
            follow: Keep waiting for appended data at end of file; when False
                the source stops at the first empty read
            poll_interval: Baseline wait in seconds after an empty read
            max_poll_interval: Cap for the grown wait (None = unbounded)
            buffer_size: Bytes requested per read
            max_line: Longest fragment carried without a newline before it is
                emitted as a line of its own (default 4 * buffer_size)
            rng: Random source for the backoff jitter
            backoff: Prebuilt backoff, overriding the three options above
        """
        if buffer_size < 1:
            raise ValueError("buffer_size must be positive")
        name = path if path is not None else str(getattr(handle, "name", "<handle>"))
        super().__init__(name=name)
        self._handle = handle
        self.follow = follow
        self.buffer_size = buffer_size
        self.max_line = max_line or 4 * buffer_size
        self.backoff = backoff or Backoff(poll_interval, max_poll_interval, rng)
        self.state = TailState(path=name, interval=self.backoff.base)
        self.stats = TailStats()
        self._token: CancelToken | None = None
        self._running = False
        self._closed = False

    async def run(self, channel: LineChannel, token: CancelToken) -> None:
        """
        Read the file and send every complete line to ``channel``.

        Returns when ``token`` fires, when :meth:`close` is called, at end of
        file if not following, or on a read error. In every case the file
        handle and the channel are closed exactly once. Errors end the
        stream; they are logged, not raised.
        """
        self._token = token.child()
        self._running = True
        log.info("tail %s: started", self.name)
        try:
            await self._follow(channel, self._token)
        except FileTruncated as e:
            log.warning("tail %s: %s, stopping", self.name, e)
        except (OSError, ValueError) as e:
            log.error("tail %s: read failed at offset %d: %s", self.name, self.state.offset, e)
        finally:
            self._running = False
            await self._release()
            channel.close()
            log.info(
                "tail %s: finished after %d reads, %d bytes, %d lines",
                self.name,
                self.stats.reads,
                self.stats.bytes_read,
                self.stats.lines,
            )

    async def _follow(self, channel: LineChannel, token: CancelToken) -> None:
        state = self.state
        while not token.cancelled:
            chunk = await self._read_at(state.offset)
            log.debug(
                "tail %s: read offset=%d partial=%d n=%d",
                self.name,
                state.offset,
                len(state.partial),
                len(chunk),
            )

            if not chunk:
                if not self.follow:
                    # Nothing more is coming: a trailing fragment is a record.
                    if state.partial and await channel.send(state.partial, token):
                        self.stats.lines += 1
                        state.partial = b""
                    return
                self._check_truncated()
                state.interval = self.backoff.next()
                if not await token.sleep(state.interval):
                    return
                continue

            # The file is active again
            self.backoff.reset()
            state.interval = self.backoff.base
            state.offset += len(chunk)
            self.stats.bytes_read += len(chunk)

            data = state.partial + chunk
            if state.split and data.startswith(b"\n"):
                data = data[1:]
            state.split = False

            *lines, rest = data.split(b"\n")
            state.partial = b""
            if len(rest) >= self.max_line:
                lines.append(rest)
                rest = b""
                state.split = True
            for line in lines:
                if not await channel.send(line, token):
                    return
                self.stats.lines += 1
            state.partial = rest

    async def _read_at(self, offset: int) -> bytes:
        """Positioned read of up to ``buffer_size`` bytes."""
        await self._handle.seek(offset)
        chunk = await self._handle.read(self.buffer_size)
        self.stats.reads += 1
        return chunk

    def _check_truncated(self) -> None:
        size = os.fstat(self._handle.fileno()).st_size
        if size < self.state.offset:
            raise FileTruncated(self.name, self.state.offset, size)

    async def _release(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._handle.close()

    async def close(self) -> None:
        """Stop the tail. A running read loop releases the handle itself."""
        if self._running and self._token is not None:
            self._token.cancel()
            return
        await self._release()
