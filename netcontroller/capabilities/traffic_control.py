"""
Traffic Control Capability - latency, jitter, loss and rate limits via tc netem

Used for the satellite and cellular variants, which only differ in their
ImpairmentSetting.
"""

import logging
from typing import List, Optional

from ..errors import CommandExecutionError
from ..models import ControllerStatus, ImpairmentSetting, ImpairmentVariant
from .base import ImpairmentCapability
from .command import CommandRunner

logger = logging.getLogger("TrafficControlCapability")


class TrafficControlCapability(ImpairmentCapability):
    """
    Shapes traffic on an interface with a root netem qdisc

    The root qdisc is shared between tc based variants, so the live status of
    this capability is Enabled whenever a netem qdisc is installed.
    """

    def __init__(
        self,
        variant: ImpairmentVariant,
        interface: str,
        setting: ImpairmentSetting,
        runner: Optional[CommandRunner] = None,
        tc: str = "tc"
    ):
        if variant not in (ImpairmentVariant.SATELLITE, ImpairmentVariant.CELLULAR):
            raise ValueError(f"Traffic control does not implement {variant.value}")
        self._variant = variant
        self.interface = interface
        self.setting = setting
        self.runner = runner or CommandRunner()
        self.tc = tc

    @property
    def variant(self) -> ImpairmentVariant:
        return self._variant

    def netem_arguments(self) -> List[str]:
        """Build the netem parameters from the setting"""
        args = ["netem"]
        if self.setting.delay_ms > 0:
            args += ["delay", f"{self.setting.delay_ms}ms"]
            if self.setting.jitter_ms > 0:
                args.append(f"{self.setting.jitter_ms}ms")
        if self.setting.package_loss > 0:
            args += ["loss", f"{self.setting.package_loss:g}%"]
        if self.setting.bandwidth > 0:
            args += ["rate", f"{self.setting.bandwidth}{self.setting.bandwidth_unit}"]
        return args

    async def query_status(self) -> ControllerStatus:
        result = await self.runner.run([self.tc, "qdisc", "show", "dev", self.interface])
        if not result.ok:
            raise CommandExecutionError(result.command, result.stderr.strip() or f"exit code {result.returncode}")
        if "netem" in result.stdout:
            return ControllerStatus.ENABLED
        return ControllerStatus.DISABLED

    async def set_status(self, status: ControllerStatus) -> bool:
        if status == ControllerStatus.ENABLED:
            # replace works whether or not a root qdisc already exists
            command = [self.tc, "qdisc", "replace", "dev", self.interface, "root"] + self.netem_arguments()
        else:
            if await self.query_status() == ControllerStatus.DISABLED:
                return True
            command = [self.tc, "qdisc", "del", "dev", self.interface, "root"]

        result = await self.runner.run(command)
        if not result.ok:
            logger.error(
                f"Failed to set {self._variant.value} to {status.value} on {self.interface}: "
                f"{result.stderr.strip()}"
            )
        return result.ok
