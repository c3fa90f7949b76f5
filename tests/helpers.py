"""Shared helpers for the test suite."""

import asyncio
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from webtail.cancel import CancelToken
from webtail.channel import LineChannel
from webtail.sources.file import TailSource


class FixedRandom(random.Random):
    """Random source whose jitter is always the same fraction."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def append(path: Path, data: bytes) -> None:
    with open(path, "ab") as f:
        f.write(data)


async def receive_n(channel: LineChannel, n: int, timeout: float = 3.0) -> list[bytes | None]:
    async def collect() -> list[bytes | None]:
        return [await channel.receive() for _ in range(n)]

    return await asyncio.wait_for(collect(), timeout)


@dataclass
class RunningTail:
    source: TailSource
    channel: LineChannel
    token: CancelToken
    task: asyncio.Task
    handle: object


@asynccontextmanager
async def running_tail(path: Path, capacity: int = 1, **kwargs):
    """Run a TailSource over ``path`` for the duration of the block."""
    handle = await aiofiles.open(path, mode="rb")
    source = TailSource(handle, path=str(path), **kwargs)
    channel = LineChannel(capacity)
    token = CancelToken()
    task = asyncio.create_task(source.run(channel, token))
    try:
        yield RunningTail(source, channel, token, task, handle)
    finally:
        token.cancel()
        await asyncio.wait_for(task, 2.0)
