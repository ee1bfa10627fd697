import logging
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.config import ApproverConfig, settings
from app.database import db
from app.exceptions import ConflictError
from app.guardrails.audit_logger import SYSTEM_ACTOR, audit_logger
from app.guardrails.permissions import PermissionChecker, permission_checker
from app.models.audit import ActionType
from app.models.requisition import ApprovalStep, Requisition, RequisitionDraft, RequisitionStatus
from app.models.user import User
from app.repositories.requisition import status_query
from app.tools.notification_tool import ApprovalNotification, NotificationTool, build_summary, notification_tool
from app.workflow import chain as engine
from app.workflow.chain import ChainTransition

logger = logging.getLogger(__name__)


class RequisitionWorkflow:
    """
    Runs stores requisitions through their approval chain.

    Each decision is a read-modify-write cycle against the repository: load
    the requisition, let the chain engine compute the next state, then
    persist it with a compare-and-swap on the requisition version. Side
    effects (audit, approver alerts, stock issue) only follow a committed
    write.
    """

    def __init__(self,
                 approvers: Optional[Sequence[ApproverConfig]] = None,
                 notifier: Optional[NotificationTool] = None,
                 checker: Optional[PermissionChecker] = None,
                 conflict_retries: Optional[int] = None):
        self._approvers = list(approvers) if approvers is not None else None
        self.notifier = notifier or notification_tool
        self.checker = checker or permission_checker
        self.conflict_retries = settings.CONFLICT_RETRIES if conflict_retries is None else conflict_retries
        if self.conflict_retries < 0:
            raise ValueError(f"conflict_retries must not be negative, got {self.conflict_retries}")

    @property
    def approvers(self) -> List[ApproverConfig]:
        # Read per submission; in-flight chains keep the snapshot they were created with
        return self._approvers if self._approvers is not None else settings.approval_chain()

    async def submit(self, draft: RequisitionDraft, user: User) -> Requisition:
        chain = engine.initialize_chain(self.approvers)
        requisition = Requisition(
            **draft.model_dump(),
            approval_chain=chain,
            status=engine.derive_status(chain),
            submitted_by=user.username,
        )
        requisition = await db.requisitions.create(requisition)
        logger.info(f"Requisition {requisition.id} submitted by {user.username}, routed to {chain[0].approver_role}")

        await audit_logger.log_event(requisition, ActionType.SUBMITTED, user,
                                     f"Submitted for {requisition.purpose}")
        self._notify(requisition, chain[0])
        return requisition

    async def approve(self, requisition_id: str, step_index: int, user: User,
                      note: Optional[str] = None) -> Requisition:
        decide = partial(engine.approve, at_index=step_index, note=note, decided_by=user.username)
        return await self._decide(requisition_id, step_index, user, decide, ActionType.APPROVED, note)

    async def reject(self, requisition_id: str, step_index: int, user: User, note: str) -> Requisition:
        decide = partial(engine.reject, at_index=step_index, note=note, decided_by=user.username)
        return await self._decide(requisition_id, step_index, user, decide, ActionType.REJECTED, note)

    async def _decide(self,
                      requisition_id: str,
                      step_index: int,
                      user: User,
                      decide: Callable[[List[ApprovalStep]], ChainTransition],
                      action_type: ActionType,
                      note: Optional[str]) -> Requisition:
        attempts = self.conflict_retries + 1
        for attempt in range(1, attempts + 1):
            requisition = await db.requisitions.get(requisition_id)
            self.checker.authorize_step(user, requisition, step_index)
            transition = decide(requisition.approval_chain)
            try:
                updated = await db.requisitions.update_chain_atomically(
                    requisition_id, requisition.version, transition.chain, transition.status)
            except ConflictError:
                if attempt == attempts:
                    logger.warning(f"Requisition {requisition_id} still conflicting after {attempt} attempts")
                    raise
                logger.info(f"Requisition {requisition_id} changed under us, re-reading (attempt {attempt})")
                continue

            await self._after_decision(updated, step_index, user, transition, action_type, note)
            return self.with_derived_status(updated)

    async def _after_decision(self, requisition: Requisition, step_index: int, user: User,
                              transition: ChainTransition, action_type: ActionType, note: Optional[str]):
        role = requisition.approval_chain[step_index].approver_role
        details = f"{role} {action_type.value.lower()}"
        if note:
            details += f": {note}"
        await audit_logger.log_event(requisition, action_type, user, details, step_index=step_index)

        if transition.next_step is not None:
            self._notify(requisition, transition.next_step)

        if transition.status == RequisitionStatus.APPROVED:
            await audit_logger.log_event(requisition, ActionType.STATE_CHANGE, user,
                                         "All approvals complete")
            await self.issue_stock(requisition)

    def _notify(self, requisition: Requisition, step: ApprovalStep):
        payload = ApprovalNotification(
            requisition_id=requisition.id,
            approver_role=step.approver_role,
            summary=build_summary(requisition),
        )
        self.notifier.notify(step.notify_address, payload)

    async def issue_stock(self, requisition: Requisition):
        """Take approved quantities out of stores. Failures never undo the approval."""
        for item in requisition.line_items:
            try:
                updated = await db.inventory.deduct_stock(item.item_id, item.quantity)
            except Exception:
                logger.exception(f"Stock deduction failed for {item.item_id} on requisition {requisition.id}")
                continue
            if updated is not None and updated.below_reorder_level:
                logger.warning(f"{updated.name} is at {updated.quantity}, reorder level {updated.reorder_level}")

        await audit_logger.log_event(requisition, ActionType.STOCK_DEDUCTED, SYSTEM_ACTOR,
                                     f"Issued {len(requisition.line_items)} line item(s) from stores")

    async def get(self, requisition_id: str) -> Requisition:
        return self.with_derived_status(await db.requisitions.get(requisition_id))

    async def list_requisitions(self,
                                status: Optional[RequisitionStatus] = None,
                                department_id: Optional[str] = None,
                                applicant: Optional[str] = None,
                                q: Optional[str] = None,
                                skip: int = 0,
                                limit: int = 100) -> List[Requisition]:
        filter: Dict[str, Any] = {}
        if status:
            filter.update(status_query(status))
        if department_id:
            filter["department_id"] = department_id
        if applicant:
            filter["applicant_name"] = applicant

        if q:
            results = await db.requisitions.search(q, filter or None, limit=limit)
        else:
            results = await db.requisitions.list_by_filter(filter, skip=skip, limit=limit)
        results = [self.with_derived_status(r) for r in results]
        if status:
            results = [r for r in results if r.status == RequisitionStatus(status)]
        return results

    async def status_counts(self) -> Dict[str, int]:
        """Number of requisitions per status, as their chains imply."""
        return {s.value: await db.requisitions.count_by_status(s) for s in RequisitionStatus}

    async def pending_for_role(self, role: str) -> List[Requisition]:
        results = await db.requisitions.pending_for_role(role)
        # A rejection anywhere halts the chain, even next to a pending step
        pending = []
        for requisition in map(self.with_derived_status, results):
            step = engine.current_approver(requisition.approval_chain)
            if step is not None and step.approver_role == role:
                pending.append(requisition)
        return pending

    @staticmethod
    def with_derived_status(requisition: Requisition) -> Requisition:
        """Replace the stored status with the one the chain implies."""
        derived = engine.derive_status(requisition.approval_chain)
        if derived != requisition.status:
            logger.warning(f"Requisition {requisition.id} stored status {requisition.status} "
                           f"disagrees with chain ({derived.value})")
            requisition = requisition.model_copy(update={"status": derived.value})
        return requisition


requisition_workflow = RequisitionWorkflow()
