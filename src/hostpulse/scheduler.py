"""
Adaptive Scheduler.

Runs one collector round on a fixed nominal interval and stretches the
interval exponentially while deliveries keep failing. Each collector
gets its own PollLoop, so a struggling channel never throttles another.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

MAX_BACKOFF = 60.0  # seconds
MAX_BACKOFF_EXPONENT = 4

RoundFn = Callable[[], Awaitable[Optional[bool]]]


def next_delay(interval: float, fail_count: int, cap: float = MAX_BACKOFF) -> float:
    """
    Delay before the next round.

    ``interval`` with no failures, otherwise
    ``interval * 2 ** min(fail_count, 4)`` capped at ``cap`` and never
    below ``interval``.
    """
    if fail_count <= 0:
        return interval
    backoff = interval * (2 ** min(fail_count, MAX_BACKOFF_EXPONENT))
    if backoff > cap:
        backoff = cap
    if backoff < interval:
        backoff = interval
    return backoff


class PollLoop:
    """
    Poll loop for a single collector.

    ``round_fn`` performs one sample-and-dispatch round and returns True
    when delivery succeeded, False when it failed, or None when nothing
    was dispatched (the failure count is then left alone). Exceptions
    escaping a round are logged and count as a failed delivery. The
    loop only ends when ``stop()`` is called or its task is cancelled.
    """

    def __init__(
        self,
        name: str,
        round_fn: RoundFn,
        interval: float,
        stop_event: Optional[asyncio.Event] = None,
        max_backoff: float = MAX_BACKOFF,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.name = name
        self.interval = interval
        self.max_backoff = max_backoff
        self.fail_count = 0
        self.rounds = 0

        self._round_fn = round_fn
        self._stop = stop_event or asyncio.Event()
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def current_delay(self) -> float:
        """Nominal delay implied by the current failure count."""
        return next_delay(self.interval, self.fail_count, self.max_backoff)

    # ── lifecycle ────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Run the loop as a background task."""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self.run(), name=f"poll-{self.name}")
        logger.info(f"Poll loop [{self.name}] started (interval={self.interval:.1f}s)")
        return self._task

    async def stop(self) -> None:
        """Signal the loop and wait for the in-flight round to finish."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self) -> None:
        """Run rounds until the stop event is set."""
        while not self._stop.is_set():
            started = self._clock()

            success = await self._run_round()
            self.rounds += 1
            if success is True:
                self.fail_count = 0
            elif success is False:
                self.fail_count += 1

            delay = self.current_delay
            wait = delay - (self._clock() - started)
            if self.fail_count:
                logger.debug(
                    f"Poll loop [{self.name}] failures={self.fail_count} "
                    f"next round in {max(wait, 0.0):.1f}s"
                )
            if wait <= 0:
                continue

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=wait)
            except asyncio.TimeoutError:
                pass

        logger.info(f"Poll loop [{self.name}] stopped")

    async def _run_round(self) -> Optional[bool]:
        try:
            result = await self._round_fn()
            return None if result is None else bool(result)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Poll loop [{self.name}] round failed")
            return False
