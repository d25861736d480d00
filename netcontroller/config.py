"""
Network Controller Configuration

Settings are loaded once at startup from an optional YAML file, overlaid by
environment variables, validated and then passed explicitly to the
components that need them.

Example YAML:

    network_run_profile:
      profile_type: Satellite
      profile_setting:
        delay: 800
        jitter: 50
        bandwidth: 1
        bandwidth_unit: mbit
        package_loss: 1
    frequencies:
      - offline_frequency: "00:00:30"
        online_frequency: "00:01:00"
        runs_count: 10
    start_after: "00:02:00"
    network_id: azure-iot-edge
    test_result_coordinator_url: http://trc:5001
"""

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Any, Mapping, Tuple, Union

import yaml

from .errors import ConfigurationError
from .models import (
    DEFAULT_SETTINGS, FrequencyProfile, ImpairmentSetting, ImpairmentVariant, RunProfile
)

CONFIG_PATH_ENV = "NETWORK_CONTROLLER_CONFIG"

_DURATION_PATTERN = re.compile(r"^(?:(\d+)\.)?(\d{1,2}):(\d{2}):(\d{2}(?:\.\d+)?)$")
_UNBOUNDED_RUNS = ("unbounded", "infinite", "forever")


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """
    Parse a duration

    Accepts a timedelta, a number of seconds, or a [D.]HH:MM:SS[.fff] string.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigurationError(f"Invalid duration: {value!r}")

    try:
        if not isinstance(value, str):
            return timedelta(seconds=value)
        match = _DURATION_PATTERN.match(value.strip())
        if match:
            days, hours, minutes, seconds = match.groups()
            return timedelta(
                days=int(days or 0), hours=int(hours), minutes=int(minutes), seconds=float(seconds)
            )
        return timedelta(seconds=float(value.strip()))
    except (ValueError, OverflowError):
        raise ConfigurationError(f"Invalid duration: {value!r}") from None


def parse_runs_count(value: Any) -> Optional[int]:
    """Run count; None (or 'unbounded') means run until cancelled"""
    if value is None:
        return None
    if isinstance(value, str):
        if value.strip().lower() in _UNBOUNDED_RUNS:
            return None
        try:
            value = int(value)
        except ValueError:
            raise ConfigurationError(f"Invalid runs count: {value!r}") from None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"Invalid runs count: {value!r}")
    return value


def parse_frequency(item: Mapping[str, Any]) -> FrequencyProfile:
    """Build a FrequencyProfile from one configuration entry"""
    if not isinstance(item, Mapping):
        raise ConfigurationError(f"Frequency entry must be a mapping, got {item!r}")
    try:
        offline = item["offline_frequency"]
        online = item["online_frequency"]
    except KeyError as e:
        raise ConfigurationError(f"Frequency entry is missing {e.args[0]}") from None

    try:
        return FrequencyProfile(
            offline_duration=parse_duration(offline),
            online_duration=parse_duration(online),
            runs_count=parse_runs_count(item.get("runs_count", 1))
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def parse_variant(value: Any) -> ImpairmentVariant:
    if isinstance(value, ImpairmentVariant):
        return value
    try:
        return ImpairmentVariant.from_string(str(value))
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def parse_setting(variant: ImpairmentVariant, data: Optional[Mapping[str, Any]]) -> ImpairmentSetting:
    """Shaping setting of the run profile, falling back to the variant defaults"""
    base = DEFAULT_SETTINGS.get(variant, ImpairmentSetting())
    if not data:
        return base
    try:
        return ImpairmentSetting(
            delay_ms=int(data.get("delay", base.delay_ms)),
            jitter_ms=int(data.get("jitter", base.jitter_ms)),
            bandwidth=int(data.get("bandwidth", base.bandwidth)),
            bandwidth_unit=str(data.get("bandwidth_unit", base.bandwidth_unit)),
            package_loss=float(data.get("package_loss", base.package_loss))
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid profile setting: {e}") from e


@dataclass(frozen=True)
class Settings:
    """
    Immutable network controller settings

    Attributes:
        run_profile: Selected variant and its shaping setting
        frequencies: Ordered frequency profiles to run
        start_after: Delay before the first frequency profile
        tracking_id: Test run tracking identifier
        module_id: Identifier of this module in reports
        test_result_coordinator_url: Reporting endpoint (None = log only)
        network_id: Docker network whose interface is impaired
        log_level: Logging level name
        shutdown_grace: How long shutdown waits for the pipeline to unwind
    """
    run_profile: RunProfile
    frequencies: Tuple[FrequencyProfile, ...] = field(default_factory=tuple)
    start_after: timedelta = timedelta(0)
    tracking_id: str = ""
    module_id: str = "networkController"
    test_result_coordinator_url: Optional[str] = None
    network_id: str = ""
    log_level: str = "INFO"
    shutdown_grace: timedelta = timedelta(seconds=5)

    def __post_init__(self):
        if self.run_profile.variant == ImpairmentVariant.ALL:
            raise ConfigurationError("Network run profile 'All' cannot be scheduled")
        if self.run_profile.variant != ImpairmentVariant.ONLINE and not self.frequencies:
            raise ConfigurationError(
                f"At least one frequency is required for {self.run_profile.variant.value}"
            )
        if self.start_after < timedelta(0):
            raise ConfigurationError("start_after must not be negative")
        if not self.network_id:
            raise ConfigurationError("network_id is required")

    @property
    def variant(self) -> ImpairmentVariant:
        return self.run_profile.variant

    def describe_frequencies(self) -> List[str]:
        return [f.describe() for f in self.frequencies]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_profile": {
                "profile_type": self.run_profile.variant.value,
                "profile_setting": self.run_profile.setting.to_dict()
            },
            "frequencies": [f.to_dict() for f in self.frequencies],
            "start_after": self.start_after.total_seconds(),
            "tracking_id": self.tracking_id,
            "module_id": self.module_id,
            "test_result_coordinator_url": self.test_result_coordinator_url,
            "network_id": self.network_id,
            "log_level": self.log_level,
            "shutdown_grace": self.shutdown_grace.total_seconds()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        """
        Build settings from a configuration mapping

        Raises:
            ConfigurationError: On missing or invalid values
        """
        profile_data = data.get("network_run_profile") or {}
        if not isinstance(profile_data, Mapping):
            raise ConfigurationError("network_run_profile must be a mapping")
        if "profile_type" not in profile_data:
            raise ConfigurationError("network_run_profile.profile_type is required")

        variant = parse_variant(profile_data["profile_type"])
        setting = parse_setting(variant, profile_data.get("profile_setting"))

        frequencies = data.get("frequencies") or []
        if not isinstance(frequencies, list):
            raise ConfigurationError("frequencies must be a list")

        coordinator = data.get("test_result_coordinator_url") or None
        return cls(
            run_profile=RunProfile(variant=variant, setting=setting),
            frequencies=tuple(parse_frequency(item) for item in frequencies),
            start_after=parse_duration(data.get("start_after", 0)),
            tracking_id=str(data.get("tracking_id", "")),
            module_id=str(data.get("module_id", "networkController")),
            test_result_coordinator_url=str(coordinator) if coordinator else None,
            network_id=str(data.get("network_id", "")),
            log_level=str(data.get("log_level", "INFO")).upper(),
            shutdown_grace=parse_duration(data.get("shutdown_grace", 5))
        )

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Load settings from a YAML file and the environment

        Args:
            path: YAML file (default: $NETWORK_CONTROLLER_CONFIG, if set)
            environ: Environment mapping (default: os.environ)

        Returns:
            Validated Settings
        """
        environ = os.environ if environ is None else environ
        path = path or environ.get(CONFIG_PATH_ENV)

        data: Dict[str, Any] = {}
        if path:
            data = load_yaml(path)
        data = apply_environment(data, environ)
        return cls.from_dict(data)


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as handle:
            data = yaml.safe_load(handle)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


# Environment variable -> configuration key
ENVIRONMENT_KEYS = {
    "START_AFTER": "start_after",
    "TRACKING_ID": "tracking_id",
    "MODULE_ID": "module_id",
    "IOTEDGE_MODULEID": "module_id",
    "TEST_RESULT_COORDINATOR_URL": "test_result_coordinator_url",
    "NETWORK_ID": "network_id",
    "LOG_LEVEL": "log_level",
    "SHUTDOWN_GRACE": "shutdown_grace",
}


def apply_environment(data: Mapping[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay environment variables on a configuration mapping"""
    merged = dict(data)

    for env_name, key in ENVIRONMENT_KEYS.items():
        value = environ.get(env_name)
        if value:
            merged[key] = value

    profile = dict(merged.get("network_run_profile") or {})
    if environ.get("NETWORK_RUN_PROFILE"):
        profile["profile_type"] = environ["NETWORK_RUN_PROFILE"]
    if environ.get("NETWORK_PROFILE_SETTING"):
        profile["profile_setting"] = _load_inline(environ["NETWORK_PROFILE_SETTING"], "NETWORK_PROFILE_SETTING")
    if profile:
        merged["network_run_profile"] = profile

    if environ.get("FREQUENCIES"):
        merged["frequencies"] = _load_inline(environ["FREQUENCIES"], "FREQUENCIES")

    return merged


def _load_inline(text: str, name: str) -> Any:
    # JSON is a subset of YAML, so both notations are accepted
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid value in {name}: {e}") from e
