from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from app.guardrails.decorators import require_permission
from app.guardrails.permissions import Permission, permission_checker
from app.models.requisition import Requisition
from app.models.user import User
from app.workflow.chain import current_index
from app.workflow.service import requisition_workflow

router = APIRouter(prefix="/api/approvals", tags=["Approvals"])

class ApprovalDecision(BaseModel):
    note: Optional[str] = None

class RejectionDecision(BaseModel):
    note: str = Field(..., min_length=1)

class ApprovalResponse(BaseModel):
    message: str
    requisition_status: str
    current_step: Optional[int] = None
    requisition: Requisition

def _respond(message: str, requisition: Requisition) -> ApprovalResponse:
    return ApprovalResponse(
        message=message,
        requisition_status=str(requisition.status),
        current_step=current_index(requisition.approval_chain),
        requisition=requisition,
    )

@router.get("/pending", response_model=List[Requisition])
async def list_pending_approvals(current_user: User = Depends(require_permission(Permission.APPROVE_STEP))):
    """Requisitions waiting on the caller's role."""
    return await requisition_workflow.pending_for_role(current_user.role)

@router.get("/{requisition_id}/can-act")
async def can_act(
    requisition_id: str,
    current_user: User = Depends(require_permission(Permission.VIEW_REQUISITION))
):
    requisition = await requisition_workflow.get(requisition_id)
    return {
        "can_act": permission_checker.can_act(current_user, requisition),
        "current_step": current_index(requisition.approval_chain),
    }

@router.post("/{requisition_id}/steps/{step_index}/approve", response_model=ApprovalResponse)
async def approve_step(
    requisition_id: str,
    step_index: int,
    decision: Optional[ApprovalDecision] = Body(None),
    current_user: User = Depends(require_permission(Permission.APPROVE_STEP))
):
    requisition = await requisition_workflow.approve(requisition_id, step_index, current_user,
                                                    decision.note if decision else None)
    return _respond("Approval recorded", requisition)

@router.post("/{requisition_id}/steps/{step_index}/reject", response_model=ApprovalResponse)
async def reject_step(
    requisition_id: str,
    step_index: int,
    decision: RejectionDecision = Body(...),
    current_user: User = Depends(require_permission(Permission.APPROVE_STEP))
):
    requisition = await requisition_workflow.reject(requisition_id, step_index, current_user, decision.note)
    return _respond("Requisition rejected", requisition)
