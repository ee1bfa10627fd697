from typing import Optional
from pydantic import BaseModel
from app.models.base import MongoModel


class UserAccount(MongoModel):
    """Stored console user. The role names either a system role or an approver role."""
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: str = "requester"
    department_id: Optional[str] = None
    password_hash: str
    disabled: bool = False


class User(BaseModel):
    """The acting identity attached to a request."""
    username: str
    full_name: Optional[str] = None
    role: str = "requester"
    department_id: Optional[str] = None
    disabled: bool = False
