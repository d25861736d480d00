"""
Capability construction and selection
"""

from typing import Dict, Optional

from ..errors import UnsupportedConfigurationError
from ..models import DEFAULT_SETTINGS, ImpairmentSetting, ImpairmentVariant
from .base import ImpairmentCapability
from .command import CommandRunner
from .offline import OfflineCapability
from .traffic_control import TrafficControlCapability


def build_capabilities(
    interface: str,
    setting: Optional[ImpairmentSetting] = None,
    selected: Optional[ImpairmentVariant] = None,
    runner: Optional[CommandRunner] = None
) -> Dict[ImpairmentVariant, ImpairmentCapability]:
    """
    Create one capability per controllable variant on an interface

    The configured setting applies to the selected variant; the others use
    their defaults since they are only ever reset, never scheduled.

    Args:
        interface: Host interface of the network under test
        setting: Shaping setting of the selected variant
        selected: Variant chosen by configuration
        runner: Shared command runner

    Returns:
        Dict of variant -> capability, in reset order
    """
    runner = runner or CommandRunner()

    def setting_for(variant: ImpairmentVariant) -> ImpairmentSetting:
        if setting is not None and variant == selected:
            return setting
        return DEFAULT_SETTINGS[variant]

    return {
        ImpairmentVariant.OFFLINE: OfflineCapability(interface, runner=runner),
        ImpairmentVariant.SATELLITE: TrafficControlCapability(
            ImpairmentVariant.SATELLITE, interface, setting_for(ImpairmentVariant.SATELLITE), runner=runner
        ),
        ImpairmentVariant.CELLULAR: TrafficControlCapability(
            ImpairmentVariant.CELLULAR, interface, setting_for(ImpairmentVariant.CELLULAR), runner=runner
        ),
    }


def select_capability(
    variant: ImpairmentVariant,
    capabilities: Dict[ImpairmentVariant, ImpairmentCapability]
) -> Optional[ImpairmentCapability]:
    """
    Pick the capability to schedule

    Returns:
        The capability, or None when the variant is Online (nothing to schedule)

    Raises:
        UnsupportedConfigurationError: If no capability implements the variant
    """
    if variant == ImpairmentVariant.ONLINE:
        return None
    capability = capabilities.get(variant)
    if capability is None:
        raise UnsupportedConfigurationError(f"Network type {variant.value} is not supported.")
    return capability
