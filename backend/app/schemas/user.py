"""
User schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional

from backend.app.models.enums import UserRole


class UserRegister(BaseModel):
    """
    Schema for user registration.
    
    Used by POST /users/register. Credentials are handled by the
    authentication service; this only records identity.
    """
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="User email address")
    phone: Optional[str] = Field(default=None, max_length=50, description="Optional phone number")


class UserResponse(BaseModel):
    """User profile with tracking state."""
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    unique_code: str
    total_distance: float
    is_online: bool
    is_tracking: bool
    created_at: datetime
    
    class Config:
        from_attributes = True
