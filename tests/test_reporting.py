"""Tests for status reporting"""

import json

import httpx
import pytest

from netcontroller.models import ControllerStatus, ImpairmentVariant, Operation
from netcontroller.reporting import (
    CoordinatorReporter,
    LoggingReporter,
    build_test_info_messages,
    create_reporter,
)


def make_client(requests, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestCoordinatorReporter:
    """Tests for CoordinatorReporter"""

    @pytest.mark.asyncio
    async def test_posts_rule_set_result(self):
        requests = []
        client = make_client(requests)
        reporter = CoordinatorReporter("http://trc:5001/", "networkController", "track-1", client=client)

        await reporter.report_status(
            Operation.RULE_SET, ControllerStatus.ENABLED, ImpairmentVariant.SATELLITE, True
        )
        await client.aclose()

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://trc:5001/api/TestOperationResult"

        body = json.loads(request.content)
        assert body["source"] == "networkController"
        assert body["type"] == "NetworkController"

        result = json.loads(body["result"])
        assert result["trackingId"] == "track-1"
        assert result["moduleId"] == "networkController"
        assert result["operation"] == "RuleSet"
        assert result["networkControllerType"] == "Satellite"
        assert result["networkControllerStatus"] == "Enabled"
        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_setting_rule_has_no_success(self):
        requests = []
        client = make_client(requests)
        reporter = CoordinatorReporter("http://trc:5001", "nc", "t", client=client)

        await reporter.report_status(
            Operation.SETTING_RULE, ControllerStatus.DISABLED, ImpairmentVariant.ALL
        )
        await client.aclose()

        result = json.loads(json.loads(requests[0].content)["result"])
        assert "success" not in result
        assert result["networkControllerType"] == "All"

    @pytest.mark.asyncio
    async def test_test_info_type(self):
        requests = []
        client = make_client(requests)
        reporter = CoordinatorReporter("http://trc:5001", "nc", "t", client=client)

        await reporter.report_test_info("Network Network Id=edge-net")
        await client.aclose()

        body = json.loads(requests[0].content)
        assert body["type"] == "TestInfo"
        assert json.loads(body["result"])["testInfo"] == "Network Network Id=edge-net"

    @pytest.mark.asyncio
    async def test_http_error_is_logged_not_raised(self):
        requests = []
        client = make_client(requests, status_code=500)
        reporter = CoordinatorReporter("http://trc:5001", "nc", "t", client=client)

        event = await reporter.report_status(
            Operation.RULE_SET, ControllerStatus.DISABLED, ImpairmentVariant.OFFLINE, False
        )
        await client.aclose()

        assert event.success is False
        assert reporter.failed_deliveries == 1

    @pytest.mark.asyncio
    async def test_connection_error_is_logged_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        reporter = CoordinatorReporter("http://trc:5001", "nc", "t", client=client)

        await reporter.report_test_info("hello")
        await client.aclose()

        assert reporter.failed_deliveries == 1

    @pytest.mark.asyncio
    async def test_close_keeps_caller_client(self):
        client = make_client([])
        reporter = CoordinatorReporter("http://trc:5001", "nc", "t", client=client)

        await reporter.close()

        assert not client.is_closed
        await client.aclose()


class TestCreateReporter:
    """Tests for create_reporter"""

    def test_with_endpoint(self):
        reporter = create_reporter("http://trc:5001", "nc", "t")
        assert isinstance(reporter, CoordinatorReporter)

    def test_without_endpoint(self):
        assert isinstance(create_reporter(None, "nc", "t"), LoggingReporter)


class TestTestInfoMessages:
    """Tests for the test-info lines"""

    def test_messages(self):
        messages = build_test_info_messages(
            "Cellular Delay=150ms", "edge-net", ["[offline:00:00:10,Online:00:00:20,Runs:3]", "[a]"]
        )
        assert messages == [
            "Network Run Profile=Cellular Delay=150ms",
            "Network Network Id=edge-net",
            "Network Frequencies=[offline:00:00:10,Online:00:00:20,Runs:3],[a]",
        ]
