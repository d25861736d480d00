"""
Network Controller Models

Provides:
- Impairment variants and controller status enumerations
- Frequency profiles describing one scheduled impairment cycle
- Status and test-info events sent to the test result coordinator
- Traffic shaping settings for the tc based variants
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Any


class ImpairmentVariant(Enum):
    """Kinds of network impairment the controller can run"""
    OFFLINE = "Offline"
    SATELLITE = "Satellite"
    CELLULAR = "Cellular"
    ONLINE = "Online"  # No impairment requested
    ALL = "All"  # Reporting scope of the baseline reset only

    @classmethod
    def from_string(cls, value: str) -> "ImpairmentVariant":
        """Parse a variant name case-insensitively"""
        normalized = value.strip().lower()
        for variant in cls:
            if variant.value.lower() == normalized or variant.name.lower() == normalized:
                return variant
        raise ValueError(f"Unknown network controller type: {value}")

    @classmethod
    def controllable(cls) -> List["ImpairmentVariant"]:
        """Variants backed by an impairment capability"""
        return [cls.OFFLINE, cls.SATELLITE, cls.CELLULAR]


class ControllerStatus(Enum):
    """Live state of an impairment"""
    ENABLED = "Enabled"  # Impairment applied
    DISABLED = "Disabled"  # Network behaves normally


class Operation(Enum):
    """Whether a status event is an intent or a verified outcome"""
    SETTING_RULE = "SettingRule"
    RULE_SET = "RuleSet"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(value: timedelta) -> str:
    """Render a duration as HH:MM:SS"""
    total = int(value.total_seconds())
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class FrequencyProfile:
    """
    One scheduled impairment cycle definition

    Attributes:
        offline_duration: How long the impairment stays enabled per run
        online_duration: How long the network stays normal after each run
        runs_count: Number of runs (None = run until cancelled)
    """
    offline_duration: timedelta
    online_duration: timedelta
    runs_count: Optional[int] = 1

    def __post_init__(self):
        if self.offline_duration < timedelta(0):
            raise ValueError("offline_duration must not be negative")
        if self.online_duration < timedelta(0):
            raise ValueError("online_duration must not be negative")
        if self.runs_count is not None and self.runs_count < 0:
            raise ValueError("runs_count must be >= 0 or None for unbounded")

    @property
    def unbounded(self) -> bool:
        return self.runs_count is None

    def describe(self) -> str:
        runs = "unbounded" if self.runs_count is None else str(self.runs_count)
        return (
            f"[offline:{format_duration(self.offline_duration)},"
            f"Online:{format_duration(self.online_duration)},Runs:{runs}]"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offline_duration": self.offline_duration.total_seconds(),
            "online_duration": self.online_duration.total_seconds(),
            "runs_count": self.runs_count
        }


@dataclass(frozen=True)
class ImpairmentSetting:
    """
    Traffic shaping parameters for the satellite and cellular variants

    Attributes:
        delay_ms: Added latency in milliseconds
        jitter_ms: Latency variation in milliseconds
        bandwidth: Rate limit value (0 = unlimited)
        bandwidth_unit: tc rate unit (kbit, mbit, ...)
        package_loss: Packet loss percentage (0-100)
    """
    delay_ms: int = 0
    jitter_ms: int = 0
    bandwidth: int = 0
    bandwidth_unit: str = "mbit"
    package_loss: float = 0.0

    def __post_init__(self):
        if self.delay_ms < 0 or self.jitter_ms < 0 or self.bandwidth < 0:
            raise ValueError("delay, jitter and bandwidth must not be negative")
        if not 0 <= self.package_loss <= 100:
            raise ValueError("package_loss must be between 0 and 100")

    def __str__(self) -> str:
        return (
            f"Delay={self.delay_ms}ms Jitter={self.jitter_ms}ms "
            f"Bandwidth={self.bandwidth}{self.bandwidth_unit} PackageLoss={self.package_loss}%"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delay_ms": self.delay_ms,
            "jitter_ms": self.jitter_ms,
            "bandwidth": self.bandwidth,
            "bandwidth_unit": self.bandwidth_unit,
            "package_loss": self.package_loss
        }


# Defaults used when the configuration only names the variant
DEFAULT_SETTINGS: Dict[ImpairmentVariant, ImpairmentSetting] = {
    ImpairmentVariant.SATELLITE: ImpairmentSetting(
        delay_ms=800, jitter_ms=50, bandwidth=1, bandwidth_unit="mbit", package_loss=1.0
    ),
    ImpairmentVariant.CELLULAR: ImpairmentSetting(
        delay_ms=150, jitter_ms=30, bandwidth=10, bandwidth_unit="mbit", package_loss=2.0
    ),
}


@dataclass(frozen=True)
class RunProfile:
    """The selected variant and its shaping setting"""
    variant: ImpairmentVariant
    setting: ImpairmentSetting = field(default_factory=ImpairmentSetting)

    def __str__(self) -> str:
        return f"{self.variant.value} {self.setting}"


@dataclass
class StatusEvent:
    """
    Network controller status change sent to the coordinator

    Attributes:
        operation: SettingRule (intent) or RuleSet (outcome)
        requested_status: Status that was requested
        variant: Impairment variant the event is about
        success: Verified outcome, only present on RuleSet events
        timestamp: When the event was produced (UTC)
    """
    operation: Operation
    requested_status: ControllerStatus
    variant: ImpairmentVariant
    success: Optional[bool] = None
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.operation == Operation.SETTING_RULE and self.success is not None:
            raise ValueError("success is only reported on RuleSet events")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "operation": self.operation.value,
            "networkControllerStatus": self.requested_status.value,
            "networkControllerType": self.variant.value,
            "createdAt": self.timestamp.isoformat()
        }
        if self.success is not None:
            data["success"] = self.success
        return data


@dataclass
class TestInfoEvent:
    """Free-text diagnostic message for the coordinator"""
    message: str
    timestamp: datetime = field(default_factory=utc_now)

    # Keep pytest from collecting this as a test class
    __test__ = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "testInfo": self.message,
            "createdAt": self.timestamp.isoformat()
        }
