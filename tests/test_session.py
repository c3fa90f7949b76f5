"""Tests for per-request sessions and the registry of live tails."""

import asyncio
from pathlib import Path

import pytest

from helpers import append
from webtail.cancel import CancelToken
from webtail.session import TailRegistry, TailSession, TailSettings

FAST = TailSettings(poll_interval=0.01, flush_interval=0.02)


@pytest.mark.asyncio()
async def test_session_streams_existing_lines_and_stops_at_eof(log_file: Path) -> None:
    log_file.write_bytes(b"a\nb\n")
    registry = TailRegistry()
    session = await TailSession.open(log_file, follow=False, settings=FAST, registry=registry)

    chunks = await asyncio.wait_for(_collect(session), 2.0)

    assert b"".join(chunks) == b"data: a\n\ndata: b\n\n"
    assert len(registry) == 0
    assert session.token.cancelled
    assert session.source.stats.lines == 2


@pytest.mark.asyncio()
async def test_following_session_ends_when_registry_cancels(log_file: Path) -> None:
    registry = TailRegistry()
    session = await TailSession.open(
        log_file, settings=FAST, left="<i>", right="</i>", registry=registry
    )
    received: list[bytes] = []

    async def consume() -> None:
        async for chunk in session.stream():
            received.append(chunk)

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0.05)
    assert len(registry) == 1

    append(log_file, b"1 < 2\n")
    while not received:
        await asyncio.sleep(0.01)

    assert registry.cancel_all() == 1
    await asyncio.wait_for(consumer, 1.0)

    assert b"".join(received) == b"data: <i>1 &lt; 2</i>\n\n"
    assert len(registry) == 0


@pytest.mark.asyncio()
async def test_close_before_streaming_releases_the_file(log_file: Path) -> None:
    session = await TailSession.open(log_file, settings=FAST)
    handle = session.source._handle

    await session.close()

    assert handle.closed
    assert session.token.cancelled


def test_registry_cancels_every_token_once() -> None:
    registry = TailRegistry()
    tokens = [CancelToken() for _ in range(3)]
    for token in tokens:
        registry.register(token)
    registry.discard(tokens[0])

    assert registry.cancel_all() == 2
    assert registry.cancel_all() == 0
    assert [t.cancelled for t in tokens] == [False, True, True]


async def _collect(session: TailSession) -> list[bytes]:
    return [chunk async for chunk in session.stream()]


@pytest.mark.asyncio()
async def test_large_backlog_is_sent_in_bounded_chunks(log_file: Path) -> None:
    line = b"0123456789" * 9 + b"\n"
    log_file.write_bytes(line * 20_000)
    settings = TailSettings(poll_interval=0.01, flush_interval=30.0, max_pending=64 * 1024)
    session = await TailSession.open(log_file, follow=False, settings=settings)

    chunks = await asyncio.wait_for(_collect(session), 20.0)

    frame = b"data: " + line[:-1] + b"\n\n"
    assert sum(len(chunk) for chunk in chunks) == len(frame) * 20_000
    assert max(len(chunk) for chunk in chunks) < 64 * 1024 + len(frame)


@pytest.mark.asyncio()
async def test_cancelled_consumer_still_logs_and_stops_the_tail(
    log_file: Path, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level("INFO", logger="webtail")
    session = await TailSession.open(log_file, settings=FAST)

    async def consume() -> None:
        async for _ in session.stream():
            pass

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0.05)
    consumer.cancel()
    with pytest.raises(asyncio.CancelledError):
        await consumer

    assert "frames in" in caplog.text
    await asyncio.wait_for(session._producer, 1.0)
    assert session.source._handle.closed
