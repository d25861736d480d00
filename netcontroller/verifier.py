"""
Status Transition Verifier

Applies one status change to a capability and confirms, by querying the
live status again, that it actually took effect. An apply call that reports
success is not trusted on its own: the mechanism may accept a request while
the network state stays the same.
"""

import logging

from .capabilities.base import ImpairmentCapability
from .models import ControllerStatus, Operation
from .reporting import StatusReporter

logger = logging.getLogger("StatusTransitionVerifier")


class StatusTransitionVerifier:
    """Apply-and-verify step shared by the baseline reset and the scheduler"""

    def __init__(self, reporter: StatusReporter):
        self.reporter = reporter

    async def check(
        self,
        capability: ImpairmentCapability,
        requested_status: ControllerStatus,
        apply_succeeded: bool
    ) -> bool:
        """
        Re-query the capability and fold the result into one success flag

        Args:
            capability: Capability that was just set
            requested_status: Status that was requested
            apply_succeeded: What the set call reported

        Returns:
            True only if the set call succeeded and the live status matches
        """
        live_status = await capability.query_status()

        result_message = "succeeded" if apply_succeeded else "failed"
        logger.info(
            f"Command set {capability.variant.value} to {requested_status.value} "
            f"execution {result_message}, network status {live_status.value}"
        )

        return apply_succeeded and live_status == requested_status

    async def apply_and_verify(
        self,
        capability: ImpairmentCapability,
        requested_status: ControllerStatus
    ) -> bool:
        """
        Set a status, verify it and report both the intent and the outcome

        Exactly one SettingRule event is reported before the change and one
        RuleSet event after it. A mismatch is returned as False, never raised.

        Args:
            capability: Capability to change
            requested_status: Status to request

        Returns:
            Verified success of the transition
        """
        variant = capability.variant
        await self.reporter.report_status(Operation.SETTING_RULE, requested_status, variant)

        applied = await capability.set_status(requested_status)
        success = await self.check(capability, requested_status, applied)

        await self.reporter.report_status(Operation.RULE_SET, requested_status, variant, success)

        if not success:
            logger.warning(f"Could not verify {variant.value} is {requested_status.value}")
        return success
