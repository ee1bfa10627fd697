import logging
import re
from typing import Any, Dict, List, Optional, Sequence
from pymongo import DESCENDING, ReturnDocument
from app.exceptions import ConflictError, NotFound
from app.models.base import utcnow
from app.models.requisition import ApprovalStep, Requisition, RequisitionStatus, StepStatus
from app.repositories.base import BaseRepository, to_object_id

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING)]


def status_query(status: RequisitionStatus) -> Dict[str, Any]:
    """
    Filter selecting requisitions by the status their chain implies.

    The stored `status` field is never consulted. A chain is an approved
    prefix followed by a waiting suffix, so its last step is approved only
    when no step is still waiting or pending.
    """
    rejected = {"approval_chain.step_status": StepStatus.REJECTED.value}
    approved = {
        "approval_chain.0": {"$exists": True},
        "approval_chain.step_status": {"$nin": [
            StepStatus.WAITING.value, StepStatus.PENDING.value, StepStatus.REJECTED.value,
        ]},
    }
    status = RequisitionStatus(status)
    if status == RequisitionStatus.REJECTED:
        return rejected
    if status == RequisitionStatus.APPROVED:
        return approved
    return {"$nor": [rejected, approved]}


class RequisitionRepository(BaseRepository[Requisition]):

    async def create(self, model: Requisition) -> Requisition:
        now = utcnow()
        model.created_at = now
        model.updated_at = now
        model.version = 0
        return await super().create(model)

    async def get(self, id: str) -> Requisition:
        """Load a requisition, raising NotFound for unknown or malformed ids."""
        requisition = await super().get(id)
        if requisition is None:
            raise NotFound(f"Requisition {id} not found")
        return requisition

    async def update_chain_atomically(self,
                                      id: str,
                                      expected_version: int,
                                      new_chain: Sequence[ApprovalStep],
                                      status: RequisitionStatus) -> Requisition:
        """
        Compare-and-swap the approval chain.

        The write only lands if the stored version still equals
        `expected_version`; the version is bumped in the same operation so a
        second writer holding the same snapshot is refused.
        """
        oid = to_object_id(id)
        if oid is None:
            raise NotFound(f"Requisition {id} not found")

        doc = await self.collection.find_one_and_update(
            {"_id": oid, "version": expected_version},
            {
                "$set": {
                    "approval_chain": [step.model_dump() for step in new_chain],
                    "status": RequisitionStatus(status).value,
                    "updated_at": utcnow(),
                },
                "$inc": {"version": 1},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            return self.model_cls.from_mongo(doc)

        if await self.collection.find_one({"_id": oid}, {"_id": 1}) is None:
            raise NotFound(f"Requisition {id} not found")
        logger.info(f"Version conflict on requisition {id} (expected v{expected_version})")
        raise ConflictError(f"Requisition {id} changed since version {expected_version}")

    async def list_by_filter(self,
                             filter: Optional[Dict[str, Any]] = None,
                             skip: int = 0,
                             limit: int = 100) -> List[Requisition]:
        return await self.list(filter, skip=skip, limit=limit, sort=NEWEST_FIRST)

    async def search(self, text: str, filter: Optional[Dict[str, Any]] = None, limit: int = 100) -> List[Requisition]:
        """Case-insensitive match over department, applicant, purpose and statuses."""
        pattern = {"$regex": re.escape(text.strip()), "$options": "i"}
        query = {"$or": [
            {"department_name": pattern},
            {"applicant_name": pattern},
            {"purpose": pattern},
            {"status": pattern},
            {"approval_chain.step_status": pattern},
        ]}
        if filter:
            query = {"$and": [filter, query]}
        return await self.list_by_filter(query, limit=limit)

    async def count_by_status(self, status: RequisitionStatus) -> int:
        return await self.count(status_query(status))

    async def pending_for_role(self, role: str, limit: int = 100) -> List[Requisition]:
        """Requisitions whose active step belongs to `role`."""
        return await self.list_by_filter({
            "approval_chain": {"$elemMatch": {
                "approver_role": role,
                "step_status": StepStatus.PENDING.value,
            }},
        }, limit=limit)
