"""User data model. Password hashes never leave the database layer."""

from datetime import datetime
from typing import Optional, Any
from pydantic import Field, EmailStr, field_validator

from .base import CamelModel
from .enums import UserRole
from ..utils.passwords import check_password_length


class User(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    role: UserRole = UserRole.WORKER

    # Worker-only attributes
    age: Optional[int] = None
    skills: Optional[Any] = None
    experience: Optional[float] = None
    efficiency: Optional[float] = None
    daily_availability: Optional[Any] = None

    is_two_factor_enabled: bool = False
    two_factor_secret: Optional[str] = Field(None, exclude=True)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class UserCreate(CamelModel):
    """Input for creating a user. Worker attributes are ignored for other roles."""
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.WORKER
    age: Optional[int] = Field(None, ge=14, le=100)
    skills: Optional[Any] = None
    experience: Optional[float] = Field(None, ge=0)
    efficiency: Optional[float] = Field(None, ge=0)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_length(v)
