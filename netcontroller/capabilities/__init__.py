"""
Impairment Capabilities

Provides:
- The capability interface the scheduling core depends on
- iptables based offline impairment
- tc netem based satellite and cellular impairment
"""

from .base import ImpairmentCapability
from .command import CommandRunner, CommandResult
from .offline import OfflineCapability
from .traffic_control import TrafficControlCapability
from .factory import build_capabilities, select_capability

__all__ = [
    'ImpairmentCapability',
    'CommandRunner',
    'CommandResult',
    'OfflineCapability',
    'TrafficControlCapability',
    'build_capabilities',
    'select_capability'
]
