"""
Cycle Scheduler

Provides:
- CountedTaskExecutor: runs an async action a fixed number of times
  (or until cancelled) with a period between executions
- CycleScheduler: drives enable -> hold -> disable -> hold cycles of one
  impairment capability for each configured frequency profile

Everything runs sequentially in the calling task. Cancelling that task
aborts the remaining repetitions and profiles at whichever await it is
suspended on; no final Disabled transition is forced.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Any, Sequence

from .capabilities.base import ImpairmentCapability
from .models import ControllerStatus, FrequencyProfile, format_duration, utc_now
from .reporting import StatusReporter, build_test_info_messages
from .verifier import StatusTransitionVerifier

logger = logging.getLogger("CycleScheduler")

SleepFunc = Callable[[float], Awaitable[None]]


class ExecutorStatus(Enum):
    """Counted executor status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CycleState(Enum):
    """Position of the scheduler inside one repetition"""
    IDLE = "idle"
    ENABLING = "enabling"
    ENABLED_VERIFIED = "enabled_verified"
    DISABLING = "disabling"
    DISABLED_VERIFIED = "disabled_verified"


class CountedTaskExecutor:
    """
    Runs an action `count` times, waiting `period` after each execution

    A count of None runs until the surrounding task is cancelled.
    """

    def __init__(
        self,
        action: Callable[[], Awaitable[Any]],
        delay: timedelta,
        period: timedelta,
        count: Optional[int],
        operation_name: str,
        sleep: SleepFunc = asyncio.sleep
    ):
        self.action = action
        self.delay = delay
        self.period = period
        self.count = count
        self.operation_name = operation_name
        self._sleep = sleep

        self.status = ExecutorStatus.PENDING
        self.executions = 0
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None

    def _should_continue(self) -> bool:
        return self.count is None or self.executions < self.count

    async def schedule(self) -> int:
        """
        Run the action until the count is reached

        Returns:
            Number of completed executions
        """
        self.status = ExecutorStatus.RUNNING
        self.started_at = utc_now()
        try:
            if self.delay > timedelta(0):
                await self._sleep(self.delay.total_seconds())

            while self._should_continue():
                logger.debug(f"Starting {self.operation_name} execution {self.executions + 1}")
                await self.action()
                self.executions += 1
                await self._sleep(self.period.total_seconds())

        except asyncio.CancelledError:
            self.status = ExecutorStatus.CANCELLED
            logger.info(f"{self.operation_name} cancelled after {self.executions} executions")
            raise
        finally:
            self.finished_at = utc_now()

        self.status = ExecutorStatus.COMPLETED
        logger.info(f"{self.operation_name} finished {self.executions} executions")
        return self.executions


@dataclass
class ScheduleSummary:
    """
    Counters of one scheduler run

    Attributes:
        profiles_completed: Frequency profiles run to completion
        cycles_completed: Enable/disable repetitions completed
        transitions: Verified transitions attempted
        failed_transitions: Transitions whose verification failed
    """
    profiles_completed: int = 0
    cycles_completed: int = 0
    transitions: int = 0
    failed_transitions: int = 0
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profiles_completed": self.profiles_completed,
            "cycles_completed": self.cycles_completed,
            "transitions": self.transitions,
            "failed_transitions": self.failed_transitions,
            "cancelled": self.cancelled
        }


class CycleScheduler:
    """Runs the frequency profiles of one impairment capability"""

    OPERATION_NAME = "restrict/default"

    def __init__(
        self,
        verifier: StatusTransitionVerifier,
        reporter: StatusReporter,
        run_profile: str = "",
        network_id: str = "",
        sleep: SleepFunc = asyncio.sleep
    ):
        """
        Args:
            verifier: Apply-and-verify step
            reporter: Sink for test-info messages
            run_profile: Description of the selected run profile
            network_id: Identifier of the network under test
            sleep: Awaitable sleep, replaceable for a fake clock
        """
        self.verifier = verifier
        self.reporter = reporter
        self.run_profile = run_profile
        self.network_id = network_id
        self._sleep = sleep

        self.state = CycleState.IDLE
        self.summary = ScheduleSummary()

    async def _transition(self, capability: ImpairmentCapability, status: ControllerStatus) -> bool:
        success = await self.verifier.apply_and_verify(capability, status)
        self.summary.transitions += 1
        if not success:
            self.summary.failed_transitions += 1
        return success

    async def _cycle(self, capability: ImpairmentCapability, profile: FrequencyProfile) -> None:
        """One enable -> hold -> disable repetition; the executor holds online afterwards"""
        self.state = CycleState.ENABLING
        await self._transition(capability, ControllerStatus.ENABLED)
        # Verification failures are recorded, the cycle still advances
        self.state = CycleState.ENABLED_VERIFIED
        await self._sleep(profile.offline_duration.total_seconds())

        self.state = CycleState.DISABLING
        await self._transition(capability, ControllerStatus.DISABLED)
        self.state = CycleState.DISABLED_VERIFIED
        self.summary.cycles_completed += 1

    async def _report_test_info(self, profiles: Sequence[FrequencyProfile]) -> None:
        messages = build_test_info_messages(
            self.run_profile, self.network_id, [p.describe() for p in profiles]
        )
        for message in messages:
            await self.reporter.report_test_info(message)

    async def run(
        self,
        capability: ImpairmentCapability,
        profiles: Sequence[FrequencyProfile],
        start_delay: timedelta = timedelta(0)
    ) -> ScheduleSummary:
        """
        Run every frequency profile in order

        Only the first profile waits `start_delay`; the following ones start
        right after the previous profile's last online hold.

        Args:
            capability: Impairment to cycle
            profiles: Ordered frequency profiles
            start_delay: Delay before the first profile

        Returns:
            ScheduleSummary of the run

        Raises:
            asyncio.CancelledError: If the run is cancelled
        """
        self.summary = ScheduleSummary()
        delay = start_delay

        try:
            for profile in profiles:
                runs = "unbounded" if profile.runs_count is None else profile.runs_count
                logger.info(
                    f"Schedule task for type {capability.variant.value} to start after "
                    f"{format_duration(delay)} Offline frequency {format_duration(profile.offline_duration)} "
                    f"Online frequency {format_duration(profile.online_duration)} Run times {runs}"
                )

                await self._sleep(delay.total_seconds())
                await self._report_test_info(profiles)

                executor = CountedTaskExecutor(
                    lambda: self._cycle(capability, profile),
                    timedelta(0),
                    profile.online_duration,
                    profile.runs_count,
                    self.OPERATION_NAME,
                    sleep=self._sleep
                )
                await executor.schedule()
                self.summary.profiles_completed += 1

                # Only the first profile waits for the start delay
                delay = timedelta(0)

        except asyncio.CancelledError:
            self.summary.cancelled = True
            logger.info(f"Scheduling of {capability.variant.value} cancelled in state {self.state.value}")
            raise
        finally:
            self.state = CycleState.IDLE

        logger.info(f"Scheduling of {capability.variant.value} finished: {self.summary.to_dict()}")
        return self.summary
