"""
Authentication schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List
from bizos.app.models.enums import UserRole


class UserLogin(BaseModel):
    """Login with either username or email."""
    username: str = Field(..., description="Username or email")
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    username: str
    email: str
    role: UserRole
    permissions: List[str] = Field(default_factory=list, description="Explicit capability grants")


class UserResponse(BaseModel):
    """Staff user as returned by /auth/me and the admin endpoints."""
    id: int
    email: str
    username: str
    role: UserRole
    permissions: List[str] = []
    is_active: bool
    is_superuser: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LogoutResponse(BaseModel):
    success: bool
    message: str
