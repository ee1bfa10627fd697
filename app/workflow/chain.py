"""
Approval chain engine.

A requisition's chain is an ordered list of approval steps with a single
active pointer: exactly one step is pending until the last step approves
(chain exhausted) or any step rejects (chain halted). Every function here is
pure: chains passed in are never mutated and a fresh list is returned.
"""
from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence

from app.config import ApproverConfig
from app.exceptions import InvalidTransition
from app.models.base import utcnow
from app.models.requisition import ApprovalStep, RequisitionStatus, StepStatus


class ChainTransition(NamedTuple):
    chain: List[ApprovalStep]
    status: RequisitionStatus
    # Step unlocked by this transition, if any
    next_step: Optional[ApprovalStep] = None


def initialize_chain(approvers: Sequence[ApproverConfig]) -> List[ApprovalStep]:
    """Build a fresh chain: first step pending, the rest waiting."""
    if not approvers:
        raise ValueError("Approval chain needs at least one approver")

    roles = [a.role for a in approvers]
    if len(set(roles)) != len(roles):
        raise ValueError(f"Approver roles must be distinct: {roles}")

    return [
        ApprovalStep(
            approver_role=a.role,
            notify_address=a.notify_address,
            step_status=StepStatus.PENDING if idx == 0 else StepStatus.WAITING,
        )
        for idx, a in enumerate(approvers)
    ]


def current_index(chain: Sequence[ApprovalStep]) -> Optional[int]:
    # A chain that contains a rejection is halted even if it was tampered with
    if any(step.step_status == StepStatus.REJECTED for step in chain):
        return None
    for idx, step in enumerate(chain):
        if step.step_status == StepStatus.PENDING:
            return idx
    return None


def current_approver(chain: Sequence[ApprovalStep]) -> Optional[ApprovalStep]:
    """The step authorized to act next, or None once exhausted or halted."""
    idx = current_index(chain)
    return chain[idx] if idx is not None else None


def derive_status(chain: Sequence[ApprovalStep]) -> RequisitionStatus:
    if any(step.step_status == StepStatus.REJECTED for step in chain):
        return RequisitionStatus.REJECTED
    if chain and chain[-1].step_status == StepStatus.APPROVED:
        return RequisitionStatus.APPROVED
    return RequisitionStatus.PENDING


def approve(chain: Sequence[ApprovalStep],
            at_index: int,
            note: Optional[str] = None,
            decided_by: Optional[str] = None,
            now: Optional[datetime] = None) -> ChainTransition:
    """Approve the pending step at `at_index` and unlock the following one."""
    _require_pending(chain, at_index)
    now = now or utcnow()

    new_chain = list(chain)
    new_chain[at_index] = _with(chain[at_index],
                                step_status=StepStatus.APPROVED,
                                decided_at=now,
                                decided_by=decided_by,
                                note=note)
    next_step = None
    if at_index + 1 < len(chain):
        next_step = _with(chain[at_index + 1], step_status=StepStatus.PENDING)
        new_chain[at_index + 1] = next_step

    return ChainTransition(new_chain, derive_status(new_chain), next_step)


def reject(chain: Sequence[ApprovalStep],
           at_index: int,
           note: str,
           decided_by: Optional[str] = None,
           now: Optional[datetime] = None) -> ChainTransition:
    """
    Reject the pending step at `at_index`.

    Later steps stay waiting for good: the chain keeps a record of how far
    the requisition got and cannot be resumed.
    """
    if not note or not note.strip():
        raise ValueError("A rejection note is required")
    _require_pending(chain, at_index)

    new_chain = list(chain)
    new_chain[at_index] = _with(chain[at_index],
                                step_status=StepStatus.REJECTED,
                                decided_at=now or utcnow(),
                                decided_by=decided_by,
                                note=note.strip())
    return ChainTransition(new_chain, derive_status(new_chain), None)


def _require_pending(chain: Sequence[ApprovalStep], at_index: int):
    if not 0 <= at_index < len(chain):
        raise InvalidTransition(f"Step {at_index} does not exist in a chain of {len(chain)}",
                                step_index=at_index)
    if current_index(chain) != at_index:
        status = chain[at_index].step_status
        raise InvalidTransition(f"Step {at_index} is {status}, not pending", step_index=at_index)


def _with(step: ApprovalStep, **changes) -> ApprovalStep:
    return ApprovalStep(**{**step.model_dump(), **changes})
