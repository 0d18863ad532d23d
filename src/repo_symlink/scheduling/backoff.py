"""Bounded condition polling on the asyncio event loop."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

DelayFn = Callable[[int], float]


def constant_delay(base_seconds: float) -> DelayFn:
    """Return a delay function that always waits ``base_seconds``."""

    def delay(_: int) -> float:
        return base_seconds

    return delay


def linear_delay(base_seconds: float) -> DelayFn:
    """Return a delay function growing as ``base * (1 + retries)``."""

    def delay(retries: int) -> float:
        return base_seconds * (1 + retries)

    return delay


def exponential_delay(base_seconds: float) -> DelayFn:
    """Return a delay function growing as ``base * 2 ** retries``."""

    def delay(retries: int) -> float:
        return base_seconds * 2**retries

    return delay


class ScheduledRetry:
    """Handle for one scheduled condition poll.

    The handle resolves to True when the condition held and the callback ran,
    and to False when the retry or time budget ran out first.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[[], None],
        condition: Callable[[], bool],
        delay: DelayFn,
        max_retries: int | None,
        max_elapsed: float | None,
        clock: Callable[[], float],
    ) -> None:
        self._loop = loop
        self._callback = callback
        self._condition = condition
        self._delay = delay
        self._max_retries = max_retries
        self._max_elapsed = max_elapsed
        self._clock = clock
        self._started = clock()
        self._retries = 0
        self._timer: asyncio.Handle | None = None
        self._future: asyncio.Future[bool] = loop.create_future()

    @property
    def retries(self) -> int:
        """Return how many times the condition has been evaluated."""
        return self._retries

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> None:
        """Stop polling without invoking the callback."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._future.cancel()

    async def wait(self) -> bool:
        """Wait until the poll finishes and return whether the callback ran."""
        return await self._future

    def _start(self) -> None:
        self._timer = self._loop.call_soon(self._attempt)

    def _attempt(self) -> None:
        self._timer = None
        if self._future.done():
            return
        self._retries += 1
        try:
            if self._condition():
                self._callback()
                self._future.set_result(True)
                return
        except Exception as error:
            self._future.set_exception(error)
            return
        if self._max_retries is not None and self._retries > self._max_retries:
            self._future.set_result(False)
            return
        if self._max_elapsed is not None and self._clock() - self._started > self._max_elapsed:
            self._future.set_result(False)
            return
        self._timer = self._loop.call_later(self._delay(self._retries), self._attempt)


class BackoffScheduler:
    """Schedules condition polls with caller-supplied backoff and budgets."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loop = loop
        self._clock = clock

    def schedule(
        self,
        callback: Callable[[], None],
        condition: Callable[[], bool],
        delay: DelayFn,
        max_retries: int | None = None,
        max_elapsed: float | None = None,
    ) -> ScheduledRetry:
        """Poll ``condition`` until it holds, then run ``callback`` once.

        Gives up silently when ``max_retries`` evaluations past the first or
        ``max_elapsed`` seconds are exceeded. Errors raised by the condition or
        the callback are not retried; they are re-raised from ``wait()``.
        """
        loop = self._loop or asyncio.get_running_loop()
        handle = ScheduledRetry(
            loop=loop,
            callback=callback,
            condition=condition,
            delay=delay,
            max_retries=max_retries,
            max_elapsed=max_elapsed,
            clock=self._clock,
        )
        handle._start()
        return handle
