"""Cooperative cancellation shared by a tail and its delivery."""

import asyncio
import contextlib
from collections.abc import Awaitable
from typing import TypeVar

from .errors import Cancelled

T = TypeVar("T")


class CancelToken:
    """A one-shot cancellation signal.

    Every suspension point of the tailing pipeline waits on the token
    alongside its own event, so firing it stops both the producer and the
    consumer. A token is never reset.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: list["CancelToken"] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the token and every token derived from it."""
        if self._event.is_set():
            return
        self._event.set()
        for child in self._children:
            child.cancel()
        self._children.clear()

    def child(self) -> "CancelToken":
        """Derive a token that fires with this one but can also fire alone."""
        token = CancelToken()
        if self.cancelled:
            token.cancel()
        else:
            self._children.append(token)
        return token

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """
        Wait for ``delay`` seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the token fired.
        """
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def guard(self, aw: Awaitable[T]) -> T:
        """
        Await ``aw`` unless the token fires first.

        The losing side is cancelled. If both finish together the result of
        ``aw`` wins, so a completed operation is never reported as cancelled.

        Raises:
            Cancelled: the token fired before ``aw`` completed.
        """
        task = asyncio.ensure_future(aw)
        if self.cancelled:
            await _discard(task)
            raise Cancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()
        await _discard(task)
        raise Cancelled()


async def _discard(task: asyncio.Future) -> None:
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
