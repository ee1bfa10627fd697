from app.models.base import MongoModel, EmbeddedModel
from app.models.requisition import Requisition, RequisitionDraft, ApprovalStep, LineItem, StepStatus, RequisitionStatus
from app.models.inventory import InventoryItem, InventoryCategory
from app.models.audit import AuditEvent, Action, Actor, ActionType
from app.models.user import User, UserAccount
