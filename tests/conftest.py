"""
Pytest configuration file

Adds the project root to the Python path so tests can import modules, and
provides fakes for the network controller's collaborators.
"""
import sys
import os
import asyncio
from typing import List, Union

import pytest

# Add the project root to the path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from netcontroller.capabilities.base import ImpairmentCapability
from netcontroller.models import (
    ControllerStatus, ImpairmentVariant, Operation, StatusEvent, TestInfoEvent
)
from netcontroller.reporting import StatusReporter


class FakeCapability(ImpairmentCapability):
    """
    In-memory capability

    Args:
        variant: Variant reported by the capability
        status: Initial live status
        accept: What set_status returns
        effective: Whether set_status changes the live status
    """

    def __init__(
        self,
        variant: ImpairmentVariant = ImpairmentVariant.OFFLINE,
        status: ControllerStatus = ControllerStatus.DISABLED,
        accept: bool = True,
        effective: bool = True
    ):
        self._variant = variant
        self.status = status
        self.accept = accept
        self.effective = effective
        self.set_calls: List[ControllerStatus] = []
        self.query_calls = 0

    @property
    def variant(self) -> ImpairmentVariant:
        return self._variant

    async def query_status(self) -> ControllerStatus:
        self.query_calls += 1
        await asyncio.sleep(0)
        return self.status

    async def set_status(self, status: ControllerStatus) -> bool:
        self.set_calls.append(status)
        await asyncio.sleep(0)
        if self.effective:
            self.status = status
        return self.accept


class BlockingCapability(FakeCapability):
    """Fake capability whose set and/or query calls hang until cancelled"""

    def __init__(self, block_set: bool = True, block_query: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.block_set = block_set
        self.block_query = block_query
        self.blocked = asyncio.Event()

    async def _block(self):
        self.blocked.set()
        await asyncio.sleep(3600)

    async def query_status(self) -> ControllerStatus:
        if self.block_query:
            self.query_calls += 1
            await self._block()
        return await super().query_status()

    async def set_status(self, status: ControllerStatus) -> bool:
        if self.block_set:
            self.set_calls.append(status)
            await self._block()
        return await super().set_status(status)


class RecordingReporter(StatusReporter):
    """Keeps every published event in order"""

    def __init__(self):
        self.events: List[Union[StatusEvent, TestInfoEvent]] = []
        self.closed = False

    async def publish(self, event):
        self.events.append(event)

    async def close(self):
        self.closed = True

    @property
    def status_events(self) -> List[StatusEvent]:
        return [e for e in self.events if isinstance(e, StatusEvent)]

    @property
    def test_info(self) -> List[str]:
        return [e.message for e in self.events if isinstance(e, TestInfoEvent)]

    def rule_set_events(self) -> List[StatusEvent]:
        return [e for e in self.status_events if e.operation == Operation.RULE_SET]


class FakeClock:
    """Virtual time for the scheduler's sleep calls"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []
        self.on_sleep = None

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep(seconds)
        # Give cancellation a chance to land, like a real sleep would
        await asyncio.sleep(0)


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def capability():
    return FakeCapability()
