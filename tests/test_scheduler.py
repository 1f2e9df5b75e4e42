# reviewsync Scheduler Tests
# Tests for the periodic task with pause/resume

import asyncio

import pytest

from reviewsync.sync.scheduler import PeriodicTask


class Counter:
    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    async def __call__(self) -> None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("boom")


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            PeriodicTask(Counter(), 0)

    @pytest.mark.asyncio
    async def test_runs_after_initial_delay_then_on_interval(self):
        counter = Counter()
        task = PeriodicTask(counter, 0.05, initial_delay=0.01)
        task.start()

        await asyncio.sleep(0.03)
        assert counter.calls == 1

        await asyncio.sleep(0.1)
        assert counter.calls >= 2

        await task.stop()
        assert not task.running

    @pytest.mark.asyncio
    async def test_pause_and_resume(self):
        counter = Counter()
        task = PeriodicTask(counter, 0.5, initial_delay=0)
        task.start()
        await asyncio.sleep(0.01)

        task.pause()
        assert task.paused
        assert task.next_run_in() is None
        calls = counter.calls
        await asyncio.sleep(0.08)
        assert counter.calls == calls

        task.resume()
        await asyncio.sleep(0.01)
        assert counter.calls == calls + 1

        await task.stop()

    @pytest.mark.asyncio
    async def test_resume_uses_initial_delay(self):
        counter = Counter()
        task = PeriodicTask(counter, 10, initial_delay=0.05)
        task.start()
        task.pause()
        task.resume()

        remaining = task.next_run_in()
        assert remaining is not None and remaining <= 0.05

        await task.stop()

    @pytest.mark.asyncio
    async def test_trigger_runs_immediately(self):
        counter = Counter()
        task = PeriodicTask(counter, 10, initial_delay=10)
        task.start()

        task.trigger()
        await asyncio.sleep(0.01)

        assert counter.calls == 1
        assert task.next_run_in() > 9
        await task.stop()

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_running(self):
        counter = Counter(fail=True)
        task = PeriodicTask(counter, 0.01, initial_delay=0)
        task.start()

        await asyncio.sleep(0.05)

        assert counter.calls >= 2
        assert task.running
        await task.stop()

    @pytest.mark.asyncio
    async def test_stop_before_first_run(self):
        counter = Counter()
        task = PeriodicTask(counter, 10, initial_delay=10)
        task.start()
        await task.stop()

        assert counter.calls == 0
        assert task.runs == 0

    @pytest.mark.asyncio
    async def test_restart_after_stop(self):
        counter = Counter()
        task = PeriodicTask(counter, 10, initial_delay=10)
        task.start()
        await task.stop()

        task.initial_delay = 0.01
        task.start()
        await asyncio.sleep(0.05)
        assert counter.calls == 1

        await task.stop()
        assert not task.running

    @pytest.mark.asyncio
    async def test_pause_before_start_is_harmless(self):
        task = PeriodicTask(Counter(), 10)
        task.pause()
        task.trigger()

        assert not task.running
        assert task.next_run_in() is None
