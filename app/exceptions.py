from typing import Optional


class WorkflowError(Exception):
    """Base class for per-request, recoverable requisition workflow errors."""
    user_message = "The request could not be processed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class InvalidTransition(WorkflowError):
    """The targeted approval step is not currently pending."""
    user_message = "This step is no longer awaiting your action."

    def __init__(self, message: Optional[str] = None, step_index: Optional[int] = None):
        super().__init__(message)
        self.step_index = step_index


class ConflictError(WorkflowError):
    """Another writer changed the requisition between read and write."""
    user_message = "Someone else just acted on this request, please refresh."


class NotFound(WorkflowError):
    user_message = "Requisition not found."


class NotAuthorizedApprover(WorkflowError):
    """The acting user does not hold the role of the current approval step."""
    user_message = "You are not the approver for this step."
