"""
User Schemas
Pydantic models for user profile requests and responses
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, EmailStr


class UserCreate(BaseModel):
    """Schema for creating a user"""
    email: EmailStr
    display_name: str = Field(..., min_length=1, max_length=200)
    external_id: Optional[str] = Field(None, max_length=100)


class UserResponse(BaseModel):
    """Schema for user response"""
    id: int
    email: str
    display_name: str
    external_id: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
