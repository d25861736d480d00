"""
Offline Capability - cuts all traffic on an interface with iptables

The rules are tagged with a comment so that they can be found and removed
again even when they were left behind by an earlier, aborted run.
"""

import logging
from typing import List, Optional

from ..errors import CommandExecutionError
from ..models import ControllerStatus, ImpairmentVariant
from .base import ImpairmentCapability
from .command import CommandRunner

logger = logging.getLogger("OfflineCapability")

RULE_COMMENT = "netcontroller-offline"
# Printed by `iptables -C` when the rule is absent
NO_MATCH_MESSAGE = "does a matching rule exist"


class OfflineCapability(ImpairmentCapability):
    """Drops every packet forwarded through the given interface"""

    def __init__(
        self,
        interface: str,
        runner: Optional[CommandRunner] = None,
        chain: str = "FORWARD",
        iptables: str = "iptables"
    ):
        """
        Args:
            interface: Host interface of the network under test
            runner: Command runner (default: CommandRunner())
            chain: iptables chain holding the drop rules
            iptables: iptables binary
        """
        self.interface = interface
        self.runner = runner or CommandRunner()
        self.chain = chain
        self.iptables = iptables

    @property
    def variant(self) -> ImpairmentVariant:
        return ImpairmentVariant.OFFLINE

    def _rules(self) -> List[List[str]]:
        """Rule specifications, one per traffic direction"""
        tag = ["-m", "comment", "--comment", RULE_COMMENT, "-j", "DROP"]
        return [
            ["-i", self.interface] + tag,
            ["-o", self.interface] + tag,
        ]

    async def _rule_exists(self, rule: List[str]) -> bool:
        result = await self.runner.run([self.iptables, "-C", self.chain] + rule)
        if result.ok:
            return True
        if result.returncode == 1 and NO_MATCH_MESSAGE in result.stderr:
            return False
        # iptables also exits with 1 for errors such as missing privileges
        raise CommandExecutionError(result.command, result.stderr.strip() or f"exit code {result.returncode}")

    async def query_status(self) -> ControllerStatus:
        for rule in self._rules():
            if await self._rule_exists(rule):
                return ControllerStatus.ENABLED
        return ControllerStatus.DISABLED

    async def set_status(self, status: ControllerStatus) -> bool:
        if status == ControllerStatus.ENABLED:
            return await self._add_rules()
        return await self._remove_rules()

    async def _add_rules(self) -> bool:
        success = True
        for rule in self._rules():
            if await self._rule_exists(rule):
                continue
            result = await self.runner.run([self.iptables, "-I", self.chain] + rule)
            if not result.ok:
                logger.error(f"Failed to add offline rule on {self.interface}: {result.stderr.strip()}")
                success = False
        return success

    async def _remove_rules(self) -> bool:
        success = True
        for rule in self._rules():
            # Duplicates may exist after an interrupted run
            while await self._rule_exists(rule):
                result = await self.runner.run([self.iptables, "-D", self.chain] + rule)
                if not result.ok:
                    logger.error(f"Failed to remove offline rule on {self.interface}: {result.stderr.strip()}")
                    success = False
                    break
        return success
