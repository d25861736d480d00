"""Tests for the cycle scheduler and counted task executor"""

import asyncio
from datetime import timedelta

import pytest

from conftest import BlockingCapability, FakeCapability, FakeClock, RecordingReporter
from netcontroller.models import (
    ControllerStatus, FrequencyProfile, Operation, StatusEvent
)
from netcontroller.scheduler import (
    CountedTaskExecutor, CycleScheduler, CycleState, ExecutorStatus
)
from netcontroller.verifier import StatusTransitionVerifier


def seconds(value):
    return timedelta(seconds=value)


def make_scheduler(reporter, clock):
    return CycleScheduler(
        StatusTransitionVerifier(reporter),
        reporter,
        run_profile="Offline",
        network_id="edge-net",
        sleep=clock.sleep
    )


class TestCountedTaskExecutor:
    """Tests for CountedTaskExecutor"""

    @pytest.mark.asyncio
    async def test_runs_count_times(self):
        clock = FakeClock()
        calls = []

        async def action():
            calls.append(clock.now)

        executor = CountedTaskExecutor(action, seconds(0), seconds(10), 3, "test", sleep=clock.sleep)
        executions = await executor.schedule()

        assert executions == 3
        assert calls == [0, 10, 20]
        assert clock.sleeps == [10, 10, 10]
        assert executor.status == ExecutorStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_initial_delay(self):
        clock = FakeClock()

        async def action():
            pass

        executor = CountedTaskExecutor(action, seconds(5), seconds(1), 1, "test", sleep=clock.sleep)
        await executor.schedule()

        assert clock.sleeps == [5, 1]

    @pytest.mark.asyncio
    async def test_zero_count_does_nothing(self):
        clock = FakeClock()
        calls = []

        async def action():
            calls.append(1)

        executor = CountedTaskExecutor(action, seconds(0), seconds(1), 0, "test", sleep=clock.sleep)
        assert await executor.schedule() == 0
        assert calls == []

    @pytest.mark.asyncio
    async def test_cancelled_status(self):
        clock = FakeClock()

        async def action():
            if executor.executions == 2:
                task.cancel()

        executor = CountedTaskExecutor(action, seconds(0), seconds(1), None, "test", sleep=clock.sleep)
        task = asyncio.create_task(executor.schedule())
        with pytest.raises(asyncio.CancelledError):
            await task

        assert executor.status == ExecutorStatus.CANCELLED
        assert executor.executions == 3


class TestCycleScheduler:
    """Tests for CycleScheduler.run"""

    @pytest.mark.asyncio
    async def test_event_sequence(self):
        """offline=2s, online=1s, runs=2, no start delay"""
        reporter = RecordingReporter()
        clock = FakeClock()
        clock.on_sleep = lambda s: reporter.events.append(("sleep", s))
        capability = FakeCapability()
        profile = FrequencyProfile(seconds(2), seconds(1), 2)

        summary = await make_scheduler(reporter, clock).run(capability, [profile], seconds(0))

        timeline = []
        for item in reporter.events:
            if isinstance(item, StatusEvent):
                timeline.append((item.operation, item.requested_status, item.success))
            elif isinstance(item, tuple):
                timeline.append(item)

        one_cycle = [
            (Operation.SETTING_RULE, ControllerStatus.ENABLED, None),
            (Operation.RULE_SET, ControllerStatus.ENABLED, True),
            ("sleep", 2),
            (Operation.SETTING_RULE, ControllerStatus.DISABLED, None),
            (Operation.RULE_SET, ControllerStatus.DISABLED, True),
            ("sleep", 1),
        ]
        assert timeline == [("sleep", 0)] + one_cycle + one_cycle
        assert summary.cycles_completed == 2
        assert summary.profiles_completed == 1
        assert capability.status == ControllerStatus.DISABLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("runs", [0, 1, 3, 7])
    async def test_apply_called_twice_per_run(self, runs):
        reporter = RecordingReporter()
        capability = FakeCapability()
        profile = FrequencyProfile(seconds(1), seconds(1), runs)

        await make_scheduler(reporter, FakeClock()).run(capability, [profile])

        assert len(capability.set_calls) == 2 * runs
        assert capability.set_calls.count(ControllerStatus.ENABLED) == runs
        assert capability.set_calls.count(ControllerStatus.DISABLED) == runs

    @pytest.mark.asyncio
    async def test_only_first_profile_waits_start_delay(self):
        reporter = RecordingReporter()
        clock = FakeClock()
        profiles = [
            FrequencyProfile(seconds(2), seconds(3), 1),
            FrequencyProfile(seconds(4), seconds(5), 1),
        ]

        await make_scheduler(reporter, clock).run(FakeCapability(), profiles, seconds(30))

        assert clock.sleeps == [30, 2, 3, 0, 4, 5]
        assert clock.now == 30 + 2 + 3 + 4 + 5

    @pytest.mark.asyncio
    async def test_reports_test_info_per_profile(self):
        reporter = RecordingReporter()
        profiles = [
            FrequencyProfile(seconds(30), seconds(60), 1),
            FrequencyProfile(seconds(10), seconds(10), 2),
        ]

        await make_scheduler(reporter, FakeClock()).run(FakeCapability(), profiles)

        assert reporter.test_info == [
            "Network Run Profile=Offline",
            "Network Network Id=edge-net",
            "Network Frequencies=[offline:00:00:30,Online:00:01:00,Runs:1],"
            "[offline:00:00:10,Online:00:00:10,Runs:2]",
        ] * 2

    @pytest.mark.asyncio
    async def test_failed_verification_still_advances(self):
        """Enabling proceeds to the hold and to disabling regardless of outcome"""
        reporter = RecordingReporter()
        capability = FakeCapability(accept=False, effective=False)
        profile = FrequencyProfile(seconds(1), seconds(1), 2)
        scheduler = make_scheduler(reporter, FakeClock())

        summary = await scheduler.run(capability, [profile])

        assert len(capability.set_calls) == 4
        assert summary.transitions == 4
        assert summary.failed_transitions == 4
        assert all(e.success is False for e in reporter.rule_set_events())
        assert scheduler.state == CycleState.IDLE

    @pytest.mark.asyncio
    async def test_cancel_during_offline_hold(self):
        """No further RuleSet events after the cancellation point, no forced disable"""
        reporter = RecordingReporter()
        clock = FakeClock()
        capability = FakeCapability()
        profile = FrequencyProfile(seconds(2), seconds(1), 5)
        scheduler = make_scheduler(reporter, clock)

        def cancel_on_hold(s):
            if s == 2:
                task.cancel()

        clock.on_sleep = cancel_on_hold
        task = asyncio.create_task(scheduler.run(capability, [profile, profile]))

        with pytest.raises(asyncio.CancelledError):
            await task

        rule_set = reporter.rule_set_events()
        assert len(rule_set) == 1
        assert rule_set[0].requested_status == ControllerStatus.ENABLED
        assert capability.set_calls == [ControllerStatus.ENABLED]
        assert capability.status == ControllerStatus.ENABLED
        assert scheduler.summary.cancelled is True
        assert scheduler.summary.profiles_completed == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("block_set,block_query", [(True, False), (False, True)])
    async def test_cancel_during_capability_call(self, block_set, block_query):
        """Cancelling a pending apply or re-query stops the run without a RuleSet"""
        reporter = RecordingReporter()
        capability = BlockingCapability(block_set=block_set, block_query=block_query)
        scheduler = make_scheduler(reporter, FakeClock())

        task = asyncio.create_task(
            scheduler.run(capability, [FrequencyProfile(seconds(2), seconds(1), 3)])
        )
        await asyncio.wait_for(capability.blocked.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert reporter.rule_set_events() == []
        assert capability.set_calls == [ControllerStatus.ENABLED]
        assert scheduler.summary.cancelled is True
        assert scheduler.summary.cycles_completed == 0

    @pytest.mark.asyncio
    async def test_cancel_during_start_delay(self):
        reporter = RecordingReporter()
        clock = FakeClock()
        capability = FakeCapability()
        scheduler = make_scheduler(reporter, clock)
        clock.on_sleep = lambda s: task.cancel()

        task = asyncio.create_task(
            scheduler.run(capability, [FrequencyProfile(seconds(1), seconds(1), 1)], seconds(60))
        )
        with pytest.raises(asyncio.CancelledError):
            await task

        assert capability.set_calls == []
        assert reporter.events == []

    @pytest.mark.asyncio
    async def test_unbounded_runs_until_cancelled(self):
        reporter = RecordingReporter()
        clock = FakeClock()
        capability = FakeCapability()
        online_holds = []

        def count_online_holds(s):
            if s == 3:
                online_holds.append(s)
                if len(online_holds) == 10:
                    task.cancel()

        clock.on_sleep = count_online_holds
        scheduler = make_scheduler(reporter, clock)
        task = asyncio.create_task(
            scheduler.run(capability, [FrequencyProfile(seconds(2), seconds(3), None)])
        )
        with pytest.raises(asyncio.CancelledError):
            await task

        assert scheduler.summary.cycles_completed == 10
        assert len(capability.set_calls) == 20
