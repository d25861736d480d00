"""
Baseline Resetter - makes sure the network is online before a test starts

Every controllable variant is checked, not only the configured one, because
an earlier aborted run may have left a different variant impaired.
"""

import logging
from typing import Iterable

from .capabilities.base import ImpairmentCapability
from .errors import TestInitializationError
from .models import ControllerStatus, ImpairmentVariant, Operation
from .reporting import StatusReporter
from .verifier import StatusTransitionVerifier

logger = logging.getLogger("BaselineResetter")


class BaselineResetter:
    """Confirms every variant is Disabled, correcting each at most once"""

    def __init__(self, reporter: StatusReporter, verifier: StatusTransitionVerifier):
        self.reporter = reporter
        self.verifier = verifier

    async def reset(self, capabilities: Iterable[ImpairmentCapability]) -> None:
        """
        Remove all controlling rules

        Args:
            capabilities: All impairment capabilities of the host

        Raises:
            TestInitializationError: If a variant is still not Disabled after
                one corrective attempt
        """
        await self.reporter.report_status(
            Operation.SETTING_RULE, ControllerStatus.DISABLED, ImpairmentVariant.ALL
        )

        for capability in capabilities:
            status = await capability.query_status()
            if status == ControllerStatus.DISABLED:
                continue

            logger.info(f"Network restriction is enabled for {capability.variant.value}. Setting default")
            applied = await capability.set_status(ControllerStatus.DISABLED)
            online = await self.verifier.check(capability, ControllerStatus.DISABLED, applied)
            if not online:
                logger.error(f"Failed to ensure {capability.variant.value} starts with default values.")
                # Flag the residual impairment to the coordinator before aborting
                await self.reporter.report_status(
                    Operation.RULE_SET, ControllerStatus.ENABLED, capability.variant, True
                )
                raise TestInitializationError(
                    f"{capability.variant.value} is still enabled after resetting to default values"
                )

        logger.info("Network is online")
        await self.reporter.report_status(
            Operation.RULE_SET, ControllerStatus.DISABLED, ImpairmentVariant.ALL, True
        )
