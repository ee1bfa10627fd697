from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from app.guardrails.audit_logger import audit_logger
from app.guardrails.decorators import require_permission
from app.guardrails.permissions import Permission
from app.models.user import User
from app.workflow.service import requisition_workflow

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

@router.get("/requisitions/stats")
async def get_requisition_stats(current_user: User = Depends(require_permission(Permission.VIEW_REQUISITION))):
    """Counts by status, derived from each approval chain."""
    return await requisition_workflow.status_counts()

@router.get("/audit/{requisition_id}")
async def get_audit_trail(
    requisition_id: str,
    format: str = "json",
    current_user: User = Depends(require_permission(Permission.VIEW_AUDIT))
):
    """Audit trail of one requisition as JSON or a PDF report."""
    if format.lower() == "json":
        events = await audit_logger.get_audit_trail(requisition_id)
        return [e.model_dump(mode="json") for e in events]
    if format.lower() == "pdf":
        content = await audit_logger.generate_audit_report(requisition_id, "PDF")
        return Response(
            content=content,
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename=audit_{requisition_id}.pdf"},
        )
    raise HTTPException(status_code=400, detail=f"Unsupported format {format}")
