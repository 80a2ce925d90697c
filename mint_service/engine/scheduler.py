"""Periodic scheduler: run the mint routine at startup, then every interval, never overlapping."""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

from mint_service.engine.routine import AttemptOutcome, InvocationRoutine

logger = logging.getLogger(__name__)

FIXED_DELAY = "fixed_delay"
FIXED_RATE = "fixed_rate"


class Scheduler:
    """Sequential attempt loop.

    fixed_delay: the interval runs from the end of one attempt to the start of the next.
    fixed_rate: the interval runs start to start; an overrunning attempt is followed
    immediately by the next one (no catch-up burst, no overlap).
    """

    def __init__(
        self,
        routine: InvocationRoutine,
        interval_sec: float,
        mode: str = FIXED_DELAY,
        clock: Callable[[], float] = time.monotonic,
        history_size: int = 100,
        on_first_attempt: Optional[Callable[[float], None]] = None,
    ):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        if mode not in (FIXED_DELAY, FIXED_RATE):
            raise ValueError(f"unknown schedule mode: {mode!r}")
        self.routine = routine
        self.interval_sec = interval_sec
        self.mode = mode
        self._clock = clock
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._running = False
        self.outcomes: Deque[AttemptOutcome] = deque(maxlen=history_size)
        self.attempts = 0
        # called with the delay (seconds) before the second attempt
        self._on_first_attempt = on_first_attempt

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def stop(self) -> None:
        """Wake the pending sleep and end the loop. An in-flight attempt is not cancelled."""
        self._stop_event.set()

    async def run_once(self) -> Optional[AttemptOutcome]:
        """Run one attempt unless one is already in flight (then return None)."""
        if self._lock.locked():
            logger.warning("Mint attempt already in flight; skipping this tick")
            return None
        async with self._lock:
            self.attempts += 1
            try:
                outcome = await self.routine.attempt()
            except Exception as e:
                logger.exception("Mint attempt raised unexpectedly: %s", e)
                outcome = AttemptOutcome.FAILED
            self.outcomes.append(outcome)
            return outcome

    def next_delay(self, started: float, finished: float) -> float:
        """Seconds to sleep after an attempt that ran from started to finished (clock units)."""
        if self.mode == FIXED_RATE:
            return max(0.0, started + self.interval_sec - finished)
        return self.interval_sec

    async def _sleep(self, delay: float) -> bool:
        """Sleep delay seconds. Returns False if stop() was requested meanwhile."""
        if self._stop_event.is_set():
            return False
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def run(self, max_attempts: Optional[int] = None) -> None:
        """Attempt now, then every interval until stop() (or max_attempts reached)."""
        self._running = True
        done = 0
        try:
            while not self._stop_event.is_set():
                started = self._clock()
                outcome = await self.run_once()
                finished = self._clock()
                done += 1
                logger.debug(
                    "Attempt #%s finished: %s (%.1fs)",
                    self.attempts,
                    outcome.value if outcome else None,
                    finished - started,
                )
                if max_attempts is not None and done >= max_attempts:
                    break
                delay = self.next_delay(started, finished)
                if done == 1 and self._on_first_attempt is not None:
                    self._on_first_attempt(delay)
                else:
                    logger.info("Next mint attempt in %.0f seconds", delay)
                if not await self._sleep(delay):
                    break
        finally:
            self._running = False
            logger.info("Scheduler stopped after %s attempt(s)", self.attempts)
