from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import ConfigDict, Field, field_validator
from app.models.base import EmbeddedModel, MongoModel, utcnow


class StepStatus(str, Enum):
    WAITING = "waiting"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequisitionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LineItem(EmbeddedModel):
    """A single stock item requested from stores."""
    category_id: str
    category_name: str = ""
    item_id: str
    item_name: str = ""
    quantity: int = Field(..., gt=0)


class ApprovalStep(EmbeddedModel):
    """One slot of the approval chain, snapshotted at submission."""
    approver_role: str
    notify_address: str
    step_status: StepStatus = StepStatus.WAITING
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    note: Optional[str] = None


class RequisitionDraft(EmbeddedModel):
    """What a requester submits; the chain and status are assigned on submission."""
    department_id: str
    department_name: str = ""
    department_head_name: str = ""
    dean_name: str = ""
    applicant_name: str = Field(..., min_length=1)
    purpose: str = Field(..., min_length=1)
    line_items: List[LineItem] = Field(..., min_length=1)

    @field_validator("applicant_name", "purpose")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class Requisition(MongoModel):
    """
    A stores requisition and its approval chain.

    `status` is stored for querying, but consumers must trust
    `derive_status(approval_chain)` over it.
    """
    department_id: str
    department_name: str = ""
    department_head_name: str = ""
    dean_name: str = ""
    applicant_name: str
    purpose: str
    line_items: List[LineItem] = []

    approval_chain: List[ApprovalStep] = []
    status: RequisitionStatus = RequisitionStatus.PENDING

    submitted_by: Optional[str] = None
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "department_id": "dept-ict",
            "department_name": "ICT",
            "applicant_name": "A. Kamara",
            "purpose": "Lab refurbishment",
            "line_items": [
                {"category_id": "cat-1", "category_name": "Stationery",
                 "item_id": "itm-9", "item_name": "A4 paper", "quantity": 10}
            ],
            "status": "pending",
        }
    })
