"""
Status Reporting - sends network controller events to the test result coordinator

Provides:
- StatusReporter interface used by the scheduling core
- CoordinatorReporter posting results over HTTP (httpx)
- LoggingReporter for runs without a coordinator
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union

import httpx

from .models import (
    ControllerStatus, ImpairmentVariant, Operation, StatusEvent, TestInfoEvent
)

logger = logging.getLogger("StatusReporter")

RESULT_TYPE_NETWORK_CONTROLLER = "NetworkController"
RESULT_TYPE_TEST_INFO = "TestInfo"


class StatusReporter(ABC):
    """Sink for status and test-info events"""

    async def report_status(
        self,
        operation: Operation,
        requested_status: ControllerStatus,
        variant: ImpairmentVariant,
        success: Optional[bool] = None
    ) -> StatusEvent:
        """
        Report a SettingRule (intent) or RuleSet (outcome) event

        Returns:
            The event that was sent
        """
        event = StatusEvent(
            operation=operation,
            requested_status=requested_status,
            variant=variant,
            success=success
        )
        await self.publish(event)
        return event

    async def report_test_info(self, message: str) -> TestInfoEvent:
        """Report a free-text diagnostic message"""
        event = TestInfoEvent(message=message)
        await self.publish(event)
        return event

    @abstractmethod
    async def publish(self, event: Union[StatusEvent, TestInfoEvent]) -> None:
        """Deliver one event"""

    async def close(self) -> None:
        pass


class LoggingReporter(StatusReporter):
    """Reporter that only writes events to the log"""

    async def publish(self, event: Union[StatusEvent, TestInfoEvent]) -> None:
        logger.info(f"Report: {event.to_dict()}")


class CoordinatorReporter(StatusReporter):
    """
    Posts events to the test result coordinator

    Delivery failures are logged and dropped so that a flaky coordinator never
    stops a running test. Cancellation is not caught.
    """

    RESULT_PATH = "/api/TestOperationResult"

    def __init__(
        self,
        endpoint: str,
        module_id: str,
        tracking_id: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ):
        """
        Args:
            endpoint: Base URL of the test result coordinator
            module_id: Reported as the result source
            tracking_id: Test run tracking identifier
            client: Optional pre-built HTTP client (owned by the caller)
            timeout: Request timeout in seconds
        """
        self.endpoint = endpoint.rstrip("/")
        self.module_id = module_id
        self.tracking_id = tracking_id
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.failed_deliveries = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.endpoint, timeout=self.timeout)
            self._owns_client = True
        return self._client

    def build_payload(self, event: Union[StatusEvent, TestInfoEvent]) -> Dict[str, Any]:
        """Wrap an event into the coordinator's result envelope"""
        result: Dict[str, Any] = {
            "trackingId": self.tracking_id,
            "moduleId": self.module_id,
        }
        result.update(event.to_dict())

        result_type = RESULT_TYPE_TEST_INFO if isinstance(event, TestInfoEvent) else RESULT_TYPE_NETWORK_CONTROLLER
        return {
            "source": self.module_id,
            "type": result_type,
            "createdAt": event.timestamp.isoformat(),
            "result": json.dumps(result)
        }

    async def publish(self, event: Union[StatusEvent, TestInfoEvent]) -> None:
        payload = self.build_payload(event)
        try:
            client = self._get_client()
            response = await client.post(f"{self.endpoint}{self.RESULT_PATH}", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.failed_deliveries += 1
            logger.error(f"Failed to report {payload['type']} result to {self.endpoint}: {e}")
            return
        logger.debug(f"Reported {payload['type']} result: {payload['result']}")

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


def create_reporter(endpoint: Optional[str], module_id: str, tracking_id: str) -> StatusReporter:
    """Coordinator reporter when an endpoint is configured, logging reporter otherwise"""
    if endpoint:
        return CoordinatorReporter(endpoint, module_id, tracking_id)
    logger.warning("No test result coordinator configured, reporting to log only")
    return LoggingReporter()


def build_test_info_messages(run_profile: str, network_id: str, frequencies: List[str]) -> List[str]:
    """Lines sent on the test-info channel before each frequency profile runs"""
    return [
        f"Network Run Profile={run_profile}",
        f"Network Network Id={network_id}",
        f"Network Frequencies={','.join(frequencies)}"
    ]


