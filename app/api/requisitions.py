from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.guardrails.decorators import require_permission
from app.guardrails.permissions import Permission
from app.models.requisition import Requisition, RequisitionDraft, RequisitionStatus
from app.models.user import User
from app.tools.export import export_requisitions_csv, export_requisitions_xlsx
from app.workflow.service import requisition_workflow

router = APIRouter(prefix="/api/requisitions", tags=["Requisitions"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.post("", response_model=Requisition, status_code=201)
async def submit_requisition(
    draft: RequisitionDraft,
    current_user: User = Depends(require_permission(Permission.SUBMIT_REQUISITION))
):
    return await requisition_workflow.submit(draft, current_user)


@router.get("", response_model=List[Requisition])
async def list_requisitions(
    status: Optional[RequisitionStatus] = None,
    department_id: Optional[str] = None,
    applicant: Optional[str] = None,
    q: Optional[str] = Query(None, description="Free-text search"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_permission(Permission.VIEW_REQUISITION))
):
    return await requisition_workflow.list_requisitions(
        status=status, department_id=department_id, applicant=applicant, q=q, skip=skip, limit=limit)


@router.get("/export.csv")
async def export_requisitions(
    status: Optional[RequisitionStatus] = None,
    department_id: Optional[str] = None,
    q: Optional[str] = None,
    current_user: User = Depends(require_permission(Permission.EXPORT_DATA))
):
    requisitions = await requisition_workflow.list_requisitions(
        status=status, department_id=department_id, q=q, limit=500)
    return Response(
        content=export_requisitions_csv(requisitions),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=stores_requests.csv"},
    )


@router.get("/export.xlsx")
async def export_requisitions_excel(
    status: Optional[RequisitionStatus] = None,
    department_id: Optional[str] = None,
    q: Optional[str] = None,
    current_user: User = Depends(require_permission(Permission.EXPORT_DATA))
):
    requisitions = await requisition_workflow.list_requisitions(
        status=status, department_id=department_id, q=q, limit=500)
    return Response(
        content=export_requisitions_xlsx(requisitions),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=stores_requests.xlsx"},
    )


@router.get("/{requisition_id}", response_model=Requisition)
async def get_requisition(
    requisition_id: str,
    current_user: User = Depends(require_permission(Permission.VIEW_REQUISITION))
):
    return await requisition_workflow.get(requisition_id)
