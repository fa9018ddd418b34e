"""Audit log data model."""

from datetime import datetime
from typing import Optional

from .base import CamelModel
from .enums import AuditAction, AuditTargetType

UNKNOWN_USER = "Unknown User"


class AuditLog(CamelModel):
    """
    One audit entry. actor_id is None once the acting user has been
    permanently deleted; the entry itself is kept.
    """
    id: str
    timestamp: datetime
    actor_id: Optional[str] = None
    actor_name: str = UNKNOWN_USER
    action: AuditAction
    target_type: Optional[AuditTargetType] = None
    target_id: Optional[str] = None
    target_name: Optional[str] = None  # stored in the content column
    archived_at: Optional[datetime] = None


class AuditLogCreate(CamelModel):
    actor_id: str
    actor_name: str
    action: AuditAction
    target_type: AuditTargetType
    target_id: Optional[str] = None
    target_name: Optional[str] = None
