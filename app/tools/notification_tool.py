import asyncio
import logging
from typing import List, Optional, Set
from pydantic import BaseModel

from app.config import settings
from app.models.requisition import Requisition

logger = logging.getLogger(__name__)


class ApprovalNotification(BaseModel):
    requisition_id: str
    approver_role: str
    summary: str


def build_summary(requisition: Requisition) -> str:
    """One-line description of a requisition for approver alerts."""
    items = ", ".join(f"{li.item_name or li.item_id} ({li.quantity})" for li in requisition.line_items)
    return (f"{requisition.applicant_name} ({requisition.department_name or requisition.department_id}) "
            f"requests {items} for: {requisition.purpose}")


class NotificationTool:
    def __init__(self, channels: Optional[List[str]] = None):
        self.channels = channels or list(settings.NOTIFICATION_CHANNELS)
        # Strong references so scheduled deliveries are not garbage collected
        self._tasks: Set[asyncio.Task] = set()

    def notify(self, address: str, payload: ApprovalNotification) -> asyncio.Task:
        """
        Fire-and-forget alert to an approver.

        Delivery runs in its own task; any failure is logged there and never
        reaches the caller, whose state change has already been committed.
        """
        task = asyncio.create_task(self._deliver_safely(address, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self):
        """Wait for in-flight deliveries (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _deliver_safely(self, address: str, payload: ApprovalNotification) -> bool:
        try:
            await self.deliver(address, payload)
            return True
        except Exception:
            logger.exception(f"Notification to {address} for requisition {payload.requisition_id} failed")
            return False

    async def deliver(self, address: str, payload: ApprovalNotification):
        """Route the alert to every configured channel."""
        subject = f"Approval needed ({payload.approver_role}): requisition {payload.requisition_id}"
        for channel in self.channels:
            if channel == "slack":
                await self._send_slack(address, payload.summary)
            elif channel == "email":
                await self._send_email(address, subject, payload.summary)
            else:
                logger.warning(f"Unknown notification channel {channel}")

    async def _send_slack(self, user: str, message: str):
        logger.info(f"[SLACK] To {user}: {message[:50]}...")

    async def _send_email(self, user: str, subject: str, body: str):
        logger.info(f"[EMAIL] To {user} | Subject: {subject}")

notification_tool = NotificationTool()
