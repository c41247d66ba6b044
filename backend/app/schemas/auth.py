"""
Request and response bodies for /auth.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from backend.app.models.enums import UserRole


class UserRegister(BaseModel):
    """Self-service sign-up. Accounts default to the Dispatcher role."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    password: str = Field(..., min_length=6, description="At least 6 characters")
    role: UserRole = UserRole.DISPATCHER


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Bearer token plus the identity it was issued for."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user_id: int
    name: str
    email: str
    role: UserRole


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: UserRole
    is_active: bool
    last_login_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
