"""
Relational data layer for the planner.

Handles:
- Projects, tasks and their worker / daily time / note side tables
- Users and the audit trail
- CRM customers and ERP documents
- The system timezone setting

Row-to-object mapping lives in transformers; the aggregate read in app_data.
"""

from .connection import Database, normalize_database_url
from .exceptions import (
    DatabaseError,
    DatabaseConnectionError,
    DatabaseOperationError,
    DatabaseConstraintError,
    EntityNotFoundError,
    AppDataFetchError,
    ValidationError,
    PasswordResetError,
)
from .models import (
    Base,
    CustomerDB,
    ProjectDB,
    TaskDB,
    TaskWorkerDB,
    TaskDailyTimeDB,
    TaskNoteDB,
    UserDB,
    AuditLogDB,
    SystemTimezoneDB,
    QuotationDB,
    SalesOrderDB,
    ShipmentDB,
    InventoryItemDB,
    WATCHED_TABLES,
)

__all__ = [
    "Database",
    "normalize_database_url",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseOperationError",
    "DatabaseConstraintError",
    "EntityNotFoundError",
    "AppDataFetchError",
    "ValidationError",
    "PasswordResetError",
    "Base",
    "CustomerDB",
    "ProjectDB",
    "TaskDB",
    "TaskWorkerDB",
    "TaskDailyTimeDB",
    "TaskNoteDB",
    "UserDB",
    "AuditLogDB",
    "SystemTimezoneDB",
    "QuotationDB",
    "SalesOrderDB",
    "ShipmentDB",
    "InventoryItemDB",
    "WATCHED_TABLES",
]
