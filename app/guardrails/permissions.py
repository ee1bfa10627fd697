from enum import Enum
from typing import Optional
import logging
from app.config import settings
from app.exceptions import InvalidTransition, NotAuthorizedApprover
from app.models.requisition import Requisition
from app.models.user import User
from app.workflow.chain import current_approver, current_index

logger = logging.getLogger(__name__)

class Permission(str, Enum):
    # Requisition Actions
    SUBMIT_REQUISITION = "SUBMIT_REQUISITION"
    VIEW_REQUISITION = "VIEW_REQUISITION"
    APPROVE_STEP = "APPROVE_STEP"

    # Stores
    VIEW_INVENTORY = "VIEW_INVENTORY"

    # Admin
    EXPORT_DATA = "EXPORT_DATA"
    VIEW_AUDIT = "VIEW_AUDIT"

class Role(str, Enum):
    ADMIN = "admin"
    STOREKEEPER = "storekeeper" # Can view everything in stores
    REQUESTER = "requester" # Can view/submit
    # Approver roles are not listed here: they come from the configured chain

# Role -> Permissions Mapping
ROLE_PERMISSIONS = {
    Role.ADMIN: [p for p in Permission], # All
    Role.STOREKEEPER: [
        Permission.VIEW_REQUISITION, Permission.VIEW_INVENTORY,
        Permission.EXPORT_DATA, Permission.VIEW_AUDIT
    ],
    Role.REQUESTER: [
        Permission.SUBMIT_REQUISITION, Permission.VIEW_REQUISITION, Permission.VIEW_INVENTORY
    ],
}

APPROVER_PERMISSIONS = [
    Permission.VIEW_REQUISITION, Permission.APPROVE_STEP,
    Permission.VIEW_INVENTORY, Permission.VIEW_AUDIT
]

class PermissionChecker:
    def __init__(self, approver_roles: Optional[list] = None):
        self._approver_roles = approver_roles

    @property
    def approver_roles(self) -> set:
        if self._approver_roles is not None:
            return set(self._approver_roles)
        return {a.role for a in settings.approval_chain()}

    def is_admin(self, user: User) -> bool:
        return user.role == Role.ADMIN.value

    def check_permission(self, user: User, permission: Permission) -> bool:
        """
        Basic Role-Based Check.
        """
        try:
            allowed = ROLE_PERMISSIONS.get(Role(user.role), [])
        except ValueError:
            if user.role not in self.approver_roles:
                logger.warning(f"Unknown role {user.role} for user {user.username}")
                return False
            allowed = APPROVER_PERMISSIONS

        if permission in allowed:
            return True

        logger.warning(f"User {user.username} ({user.role}) denied permission {permission}")
        return False

    def can_act(self, user: User, requisition: Requisition) -> bool:
        """True when the user holds the role of the requisition's active step."""
        step = current_approver(requisition.approval_chain)
        if step is None:
            return False
        return self.is_admin(user) or user.role == step.approver_role

    def authorize_step(self, user: User, requisition: Requisition, step_index: int):
        """
        Raise unless `user` may decide step `step_index` right now.

        Rules:
        1. The step must be the chain's active step.
        2. The user must hold that step's role (admins may act for any role).
        3. Whoever submitted a requisition cannot decide on it.
        """
        if current_index(requisition.approval_chain) != step_index:
            raise InvalidTransition(step_index=step_index)

        if not self.can_act(user, requisition):
            role = requisition.approval_chain[step_index].approver_role
            logger.warning(f"User {user.username} ({user.role}) tried to act as {role} on {requisition.id}")
            raise NotAuthorizedApprover(f"Step {step_index} must be decided by {role}")

        if requisition.submitted_by and requisition.submitted_by == user.username:
            logger.warning(f"SoD Violation: {user.username} submitted {requisition.id} and cannot decide on it")
            raise NotAuthorizedApprover("You cannot decide on a requisition you submitted")

permission_checker = PermissionChecker()
