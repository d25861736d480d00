"""
Impairment Capability Interface

A capability exposes query/set operations for one impairment variant.
The scheduling core only talks to this interface and never to the
mechanism (iptables, tc) behind it.
"""

from abc import ABC, abstractmethod

from ..models import ControllerStatus, ImpairmentVariant


class ImpairmentCapability(ABC):
    """Query and set the live status of one network impairment"""

    @property
    @abstractmethod
    def variant(self) -> ImpairmentVariant:
        """Variant this capability controls, for logging and reporting"""

    @abstractmethod
    async def query_status(self) -> ControllerStatus:
        """
        Read the live status of the impairment

        Raises:
            CommandExecutionError: If the underlying mechanism cannot be reached
        """

    @abstractmethod
    async def set_status(self, status: ControllerStatus) -> bool:
        """
        Request a status change

        Returns:
            True if the request was accepted by the mechanism. This does not
            guarantee the live state changed.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.variant.value})"
