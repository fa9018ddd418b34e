"""Enumerations shared by the database schema and the application objects."""

from enum import Enum


class UserRole(str, Enum):
    """Matches the role column of the users table."""
    ADMINISTRATOR = "Administrator"
    PLANNER = "Planner"
    WORKER = "Worker"


class TaskStatus(str, Enum):
    """Task lifecycle states."""
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class TimerState(str, Enum):
    """State of a task's shared timer."""
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    LEAD = "lead"


class QuotationStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class OrderStatus(str, Enum):
    CREATED = "Created"
    CONFIRMED = "Confirmed"
    IN_PRODUCTION = "In Production"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class AuditTargetType(str, Enum):
    PROJECT = "Project"
    TASK = "Task"
    USER = "User"
    SYSTEM = "System"


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE_PROJECT = "create_project"
    UPDATE_PROJECT = "update_project"
    DELETE_PROJECT = "delete_project"
    CREATE_TASK = "create_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    TIMER_START = "timer_start"
    TIMER_PAUSE = "timer_pause"
    TIMER_COMPLETE = "timer_complete"
    DATA_EXPORT = "data_export"
    DATA_IMPORT = "data_import"
    RESTORE_PROJECT = "restore_project"
    RESTORE_TASK = "restore_task"
    RESTORE_USER = "restore_user"
    PERMANENT_DELETE_PROJECT = "permanent_delete_project"
    PERMANENT_DELETE_TASK = "permanent_delete_task"
    PERMANENT_DELETE_USER = "permanent_delete_user"
