from .enums import (
    UserRole,
    TaskStatus,
    TimerState,
    CustomerStatus,
    QuotationStatus,
    OrderStatus,
    AuditTargetType,
    AuditAction,
)
from .task import Task, TaskCreate, DailyTimeRecord, ActiveTimer, DailyTimeSpent
from .project import Project, ProjectCreate, UNKNOWN_CLIENT
from .user import User, UserCreate
from .audit import AuditLog, AuditLogCreate, UNKNOWN_USER
from .customer import Customer, CustomerCreate
from .erp import (
    Quotation,
    QuotationCreate,
    QuotationItem,
    QuotationTotals,
    Order,
    OrderLogEntry,
    Shipment,
    ShipmentCreate,
    ShipmentItem,
    InventoryItem,
    InventoryItemCreate,
)
from .app_data import (
    AppData,
    ErpData,
    AppIntegrations,
    TeamsIntegrationSettings,
)

__all__ = [
    "UserRole",
    "TaskStatus",
    "TimerState",
    "CustomerStatus",
    "QuotationStatus",
    "OrderStatus",
    "AuditTargetType",
    "AuditAction",
    "Task",
    "TaskCreate",
    "DailyTimeRecord",
    "ActiveTimer",
    "DailyTimeSpent",
    "Project",
    "ProjectCreate",
    "UNKNOWN_CLIENT",
    "User",
    "UserCreate",
    "AuditLog",
    "AuditLogCreate",
    "UNKNOWN_USER",
    "Customer",
    "CustomerCreate",
    "Quotation",
    "QuotationCreate",
    "QuotationItem",
    "QuotationTotals",
    "Order",
    "OrderLogEntry",
    "Shipment",
    "ShipmentCreate",
    "ShipmentItem",
    "InventoryItem",
    "InventoryItemCreate",
    "AppData",
    "ErpData",
    "AppIntegrations",
    "TeamsIntegrationSettings",
]
