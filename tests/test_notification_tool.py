import pytest
from unittest.mock import AsyncMock

from app.models.requisition import Requisition
from app.tools.notification_tool import ApprovalNotification, NotificationTool, build_summary


@pytest.fixture
def payload():
    return ApprovalNotification(requisition_id="req-1", approver_role="Registrar", summary="Jane (ICT) requests paper")


@pytest.mark.asyncio
async def test_notify_routes_to_configured_channels(payload):
    tool = NotificationTool(channels=["email", "slack"])
    tool._send_email = AsyncMock()
    tool._send_slack = AsyncMock()

    task = tool.notify("registrar@institution.edu", payload)
    assert await task is True

    tool._send_email.assert_awaited_once()
    to, subject, body = tool._send_email.call_args[0]
    assert to == "registrar@institution.edu"
    assert "Registrar" in subject and "req-1" in subject
    assert body == payload.summary
    tool._send_slack.assert_awaited_once_with("registrar@institution.edu", payload.summary)


@pytest.mark.asyncio
async def test_delivery_failure_is_swallowed_and_logged(payload, caplog):
    tool = NotificationTool(channels=["email"])
    tool._send_email = AsyncMock(side_effect=ConnectionError("smtp down"))

    task = tool.notify("finance@institution.edu", payload)
    assert await task is False
    assert "Notification to finance@institution.edu" in caplog.text


@pytest.mark.asyncio
async def test_drain_waits_for_pending_deliveries(payload):
    tool = NotificationTool(channels=["email"])
    tool._send_email = AsyncMock()

    tool.notify("a@x.edu", payload)
    tool.notify("b@x.edu", payload)
    await tool.drain()

    assert tool._send_email.await_count == 2


def test_build_summary(sample_draft, chain):
    requisition = Requisition(**sample_draft.model_dump(), approval_chain=chain)
    summary = build_summary(requisition)

    assert summary.startswith("Jane Doe (ICT) requests ")
    assert "A4 Paper (ream) (10), Toner Cartridge (2)" in summary
    assert summary.endswith("for: Lab refurbishment")
