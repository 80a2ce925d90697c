"""Scheduler tests: immediate first attempt, sequential ticks, in-flight guard, stop, anchoring modes."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from mint_service.engine.routine import AttemptOutcome, InvocationRoutine
from mint_service.engine.scheduler import FIXED_DELAY, FIXED_RATE, Scheduler
from mint_service.engine.state import StatusState

from fakes import FakeEndpoint


class _RecordingRoutine(InvocationRoutine):
    """Records invocation_count after every attempt."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.counts = [self.state.invocation_count]

    async def attempt(self) -> AttemptOutcome:
        outcome = await super().attempt()
        self.counts.append(self.state.invocation_count)
        return outcome


@pytest.mark.asyncio
async def test_scenario_skip_then_two_successes():
    endpoint = FakeEndpoint(can_invoke=[False, True, True])
    routine = _RecordingRoutine(endpoint, StatusState(), capture_holders=False)
    scheduler = Scheduler(routine, interval_sec=0.01)
    await scheduler.run(max_attempts=3)
    assert list(scheduler.outcomes) == [
        AttemptOutcome.SKIPPED,
        AttemptOutcome.SUCCESS,
        AttemptOutcome.SUCCESS,
    ]
    assert routine.counts == [0, 0, 1, 2]
    assert endpoint.calls.count("invoke") == 2


@pytest.mark.asyncio
async def test_attempts_never_overlap_and_respect_interval():
    interval = 0.1
    endpoint = FakeEndpoint(can_invoke=[True], delay=0.05)
    routine = InvocationRoutine(endpoint, StatusState(), capture_holders=False)
    scheduler = Scheduler(routine, interval_sec=interval, mode=FIXED_DELAY)
    await scheduler.run(max_attempts=3)
    assert endpoint.max_in_flight == 1
    times = endpoint.precondition_times
    assert len(times) == 3
    for prev, nxt in zip(times, times[1:]):
        assert nxt - prev >= interval - 0.005


@pytest.mark.asyncio
async def test_run_once_refuses_while_in_flight():
    endpoint = FakeEndpoint(can_invoke=[True], delay=0.05)
    routine = InvocationRoutine(endpoint, StatusState(), capture_holders=False)
    scheduler = Scheduler(routine, interval_sec=60)
    first, second = await asyncio.gather(scheduler.run_once(), scheduler.run_once())
    assert first == AttemptOutcome.SUCCESS
    assert second is None
    assert endpoint.calls.count("invoke") == 1
    assert routine.state.invocation_count == 1
    assert scheduler.in_flight is False


@pytest.mark.asyncio
async def test_first_attempt_is_immediate_and_stop_wakes_sleep():
    endpoint = FakeEndpoint(can_invoke=[False])
    routine = InvocationRoutine(endpoint, StatusState(), capture_holders=False)
    scheduler = Scheduler(routine, interval_sec=3600)
    task = asyncio.create_task(scheduler.run())
    for _ in range(100):
        if scheduler.attempts >= 1 and not scheduler.in_flight:
            break
        await asyncio.sleep(0.01)
    assert scheduler.attempts == 1
    assert scheduler.is_running is True
    scheduler.stop()
    await asyncio.wait_for(task, timeout=1.0)
    assert scheduler.is_running is False
    assert list(scheduler.outcomes) == [AttemptOutcome.SKIPPED]


@pytest.mark.asyncio
async def test_stop_before_run_does_nothing():
    routine = InvocationRoutine(FakeEndpoint(), StatusState())
    scheduler = Scheduler(routine, interval_sec=1)
    scheduler.stop()
    await scheduler.run()
    assert scheduler.attempts == 0


@pytest.mark.asyncio
async def test_routine_exception_is_counted_as_failed():
    routine = InvocationRoutine(FakeEndpoint(), StatusState())
    routine.attempt = AsyncMock(side_effect=RuntimeError("unexpected"))
    scheduler = Scheduler(routine, interval_sec=0.01)
    await scheduler.run(max_attempts=2)
    assert list(scheduler.outcomes) == [AttemptOutcome.FAILED, AttemptOutcome.FAILED]


class TestNextDelay:
    def _scheduler(self, mode: str) -> Scheduler:
        return Scheduler(InvocationRoutine(FakeEndpoint(), StatusState()), interval_sec=10, mode=mode)

    def test_fixed_delay_measures_from_completion(self):
        s = self._scheduler(FIXED_DELAY)
        assert s.next_delay(started=0.0, finished=3.0) == 10
        assert s.next_delay(started=0.0, finished=30.0) == 10

    def test_fixed_rate_subtracts_elapsed(self):
        s = self._scheduler(FIXED_RATE)
        assert s.next_delay(started=0.0, finished=3.0) == 7
        assert s.next_delay(started=0.0, finished=12.0) == 0

    def test_invalid_arguments(self):
        routine = InvocationRoutine(FakeEndpoint(), StatusState())
        with pytest.raises(ValueError):
            Scheduler(routine, interval_sec=0)
        with pytest.raises(ValueError):
            Scheduler(routine, interval_sec=1, mode="cron")


@pytest.mark.asyncio
async def test_first_attempt_callback_gets_next_delay():
    delays = []
    routine = InvocationRoutine(FakeEndpoint(can_invoke=[True]), StatusState(), capture_holders=False)
    scheduler = Scheduler(routine, interval_sec=0.01, on_first_attempt=delays.append)
    await scheduler.run(max_attempts=3)
    assert delays == [0.01]
