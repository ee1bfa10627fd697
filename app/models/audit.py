from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import Field
from app.models.base import EmbeddedModel, MongoModel, utcnow

class ActionType(str, Enum):
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    STOCK_DEDUCTED = "STOCK_DEDUCTED"
    STATE_CHANGE = "STATE_CHANGE"

class Actor(EmbeddedModel):
    id: str
    name: str
    type: str = "SYSTEM" # SYSTEM, USER

class Action(EmbeddedModel):
    """Record of a specific action taken."""
    action_type: ActionType
    performed_by: Actor
    timestamp: datetime = Field(default_factory=utcnow)
    details: str
    success: bool = True

class AuditEvent(MongoModel):
    """
    Complete audit log entry for a requisition.
    """
    event_id: str = Field(..., description="Unique event ID")
    requisition_id: Optional[str] = None
    department_id: Optional[str] = None

    timestamp: datetime = Field(default_factory=utcnow)

    actor: Actor
    action: Action

    step_index: Optional[int] = None
    approver_role: Optional[str] = None
