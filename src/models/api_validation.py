"""
Pydantic models for API endpoint input validation.

Bodies that are not already application objects (TaskCreate, ProjectCreate,
Task, ...) are declared here. All accept camelCase or snake_case keys.
"""

from typing import Optional
from pydantic import Field, field_validator

from .base import CamelModel
from .enums import OrderStatus, QuotationStatus
from .task import TaskCreate
from ..utils.datetime_utils import is_valid_timezone
from ..utils.passwords import check_password_length


# ============================================
# TASKS & TIMERS
# ============================================

class TaskCreateRequest(TaskCreate):
    """New task plus the user creating it (the initial note is attributed to them)."""
    actor_id: str = Field(..., min_length=1)


class TimerRequest(CamelModel):
    worker_id: str = Field(..., min_length=1)


class EndDayRequest(TimerRequest):
    notes: str = Field(default="", max_length=5000)


# ============================================
# SETTINGS
# ============================================

class TimezoneUpdate(CamelModel):
    timezone: str = Field(..., min_length=1, max_length=64)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if not is_valid_timezone(v):
            raise ValueError(f"unknown timezone: {v}")
        return v


# ============================================
# AUTH
# ============================================

class LoginRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class PasswordResetRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        stripped = v.strip()
        if "@" not in stripped:
            raise ValueError("email must contain @")
        return stripped


class PasswordResetConfirm(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return check_password_length(v)


# ============================================
# ERP
# ============================================

class QuotationStatusUpdate(CamelModel):
    status: QuotationStatus


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    user_id: Optional[str] = None


class ConvertQuotationRequest(CamelModel):
    user_id: Optional[str] = None
