"""Tests for the bounded line channel."""

import asyncio

import pytest

from webtail.cancel import CancelToken
from webtail.channel import LineChannel


@pytest.mark.asyncio()
async def test_lines_arrive_in_order_and_close_drains() -> None:
    channel = LineChannel(capacity=3)
    token = CancelToken()
    for line in (b"a", b"b", b"c"):
        assert await channel.send(line, token)
    channel.close()

    assert [line async for line in channel] == [b"a", b"b", b"c"]
    assert await channel.receive() is None


@pytest.mark.asyncio()
async def test_full_channel_blocks_the_sender() -> None:
    channel = LineChannel(capacity=1)
    token = CancelToken()
    await channel.send(b"first", token)

    blocked = asyncio.create_task(channel.send(b"second", token))
    await asyncio.sleep(0.02)
    assert not blocked.done()

    assert await channel.receive() == b"first"
    assert await asyncio.wait_for(blocked, 0.5) is True
    assert await channel.receive() == b"second"


@pytest.mark.asyncio()
async def test_cancelled_send_does_not_enqueue() -> None:
    channel = LineChannel(capacity=1)
    token = CancelToken()
    await channel.send(b"first", token)

    blocked = asyncio.create_task(channel.send(b"second", token))
    await asyncio.sleep(0.01)
    token.cancel()
    assert await asyncio.wait_for(blocked, 0.5) is False

    channel.close()
    assert [line async for line in channel] == [b"first"]


@pytest.mark.asyncio()
async def test_close_wakes_a_waiting_receiver() -> None:
    channel = LineChannel()
    waiting = asyncio.create_task(channel.receive())
    await asyncio.sleep(0.01)
    channel.close()
    assert await asyncio.wait_for(waiting, 0.5) is None


@pytest.mark.asyncio()
async def test_cancelled_receive_loses_nothing() -> None:
    channel = LineChannel()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(channel.receive(), 0.01)

    await channel.send(b"kept", CancelToken())
    assert await channel.receive() == b"kept"


@pytest.mark.asyncio()
async def test_send_after_close_is_an_error() -> None:
    channel = LineChannel()
    channel.close()
    with pytest.raises(RuntimeError):
        await channel.send(b"late", CancelToken())


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LineChannel(capacity=0)
