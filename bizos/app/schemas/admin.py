"""
Admin API Schema Definitions.

Staff user management and the audit trail.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Any, Dict, Optional, List
from bizos.app.models.enums import UserRole
from bizos.app.schemas.auth import UserResponse


class UserCreate(BaseModel):
    """Schema for creating a staff user."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.USER
    permissions: List[str] = Field(default_factory=list, description="Capabilities granted on top of the role defaults")


class UserAccessUpdate(BaseModel):
    """Change a user's role and/or explicit grants. Omitted fields stay as they are."""
    role: Optional[UserRole] = None
    permissions: Optional[List[str]] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    page_size: int


class UserStatusChange(BaseModel):
    """Body for block/unblock. The reason is kept in the audit log."""
    reason: Optional[str] = Field(None, max_length=500)


class AdminActionResponse(BaseModel):
    success: bool
    message: str
    user_id: int
    action: str
    audit_log_id: int


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    meta_data: Optional[Dict[str, Any]]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
