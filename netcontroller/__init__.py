"""
Network Controller

Fault-injection harness that degrades and restores a host's network
(offline, satellite, cellular) on a configured schedule:
- Baseline reset of every impairment before a test
- Verified enable/disable transitions
- Counted impairment cycles per frequency profile
- Status reporting to a test result coordinator
"""

from .models import (
    ImpairmentVariant,
    ControllerStatus,
    Operation,
    FrequencyProfile,
    ImpairmentSetting,
    RunProfile,
    StatusEvent,
    TestInfoEvent
)
from .errors import (
    NetworkControllerError,
    TestInitializationError,
    UnsupportedConfigurationError,
    ConfigurationError,
    CommandExecutionError
)
from .verifier import StatusTransitionVerifier
from .baseline import BaselineResetter
from .scheduler import CountedTaskExecutor, CycleScheduler, ScheduleSummary
from .reporting import StatusReporter, CoordinatorReporter, LoggingReporter
from .config import Settings

__version__ = "1.0.0"

__all__ = [
    'ImpairmentVariant',
    'ControllerStatus',
    'Operation',
    'FrequencyProfile',
    'ImpairmentSetting',
    'RunProfile',
    'StatusEvent',
    'TestInfoEvent',
    'NetworkControllerError',
    'TestInitializationError',
    'UnsupportedConfigurationError',
    'ConfigurationError',
    'CommandExecutionError',
    'StatusTransitionVerifier',
    'BaselineResetter',
    'CountedTaskExecutor',
    'CycleScheduler',
    'ScheduleSummary',
    'StatusReporter',
    'CoordinatorReporter',
    'LoggingReporter',
    'Settings'
]
