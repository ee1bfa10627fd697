from typing import List
from pymongo import ASCENDING
from app.repositories.base import BaseRepository
from app.models.audit import AuditEvent

class AuditRepository(BaseRepository[AuditEvent]):

    async def log_event(self, event: AuditEvent):
        """Append an event to the audit trail."""
        await self.create(event)

    async def get_for_requisition(self, requisition_id: str) -> List[AuditEvent]:
        """All audit events for a requisition, oldest first."""
        return await self.list({"requisition_id": requisition_id},
                               limit=1000,
                               sort=[("timestamp", ASCENDING)])
