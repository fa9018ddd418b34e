"""
Repository classes for database operations.

Each repository takes the injected Database handle and maps its table(s)
to application objects.
"""

from .base import BaseRepository, unit_of_work
from .tasks import TaskRepository
from .projects import ProjectRepository
from .users import UserRepository
from .audit import AuditRepository
from .customers import CustomerRepository
from .system import SystemSettingsRepository
from .erp import ErpRepository, format_document_number
from .recycle_bin import RecycleBinRepository, ItemType

__all__ = [
    "BaseRepository",
    "unit_of_work",
    "TaskRepository",
    "ProjectRepository",
    "UserRepository",
    "AuditRepository",
    "CustomerRepository",
    "SystemSettingsRepository",
    "ErpRepository",
    "format_document_number",
    "RecycleBinRepository",
    "ItemType",
]
