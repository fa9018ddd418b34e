"""
SQLAlchemy models for the planner database.

Schema includes:
- Projects (colour stored as three 0-255 channels) owned by customers
- Tasks with worker assignments, daily time entries and daily notes
- Users with role-specific worker attributes
- Audit logs that survive the deletion of their actor
- CRM customers and the ERP quotation / order / shipment / inventory chain
- The singleton system timezone setting

Every table is keyed by its own explicit id column (project_id, task_id, ...).
"""

from datetime import datetime, date
from typing import Optional, List
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    Float,
    ForeignKey,
    JSON,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from ..models.enums import (
    UserRole,
    TaskStatus,
    TimerState,
    CustomerStatus,
    QuotationStatus,
    OrderStatus,
)
from ..utils.datetime_utils import utc_now


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== CRM ====================

class CustomerDB(Base):
    """CRM customers and leads."""
    __tablename__ = "customer"

    customer_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tel: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    bill_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ship_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(20), default=CustomerStatus.ACTIVE.value)
    project_names: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, server_default=func.now())
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    projects: Mapped[List["ProjectDB"]] = relationship("ProjectDB", back_populates="customer")

    __table_args__ = (
        Index("idx_customer_name", "customer_name"),
    )


# ==================== PROJECTS ====================

class ProjectDB(Base):
    """Projects grouping the tasks done for one client."""
    __tablename__ = "project"

    project_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    marking: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    client_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("customer.customer_id"), nullable=True
    )

    # Marking colour, one column per channel
    color_red: Mapped[int] = mapped_column(Integer, default=0)
    color_green: Mapped[int] = mapped_column(Integer, default=0)
    color_blue: Mapped[int] = mapped_column(Integer, default=0)

    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), onupdate=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    customer: Mapped[Optional["CustomerDB"]] = relationship("CustomerDB", back_populates="projects")

    __table_args__ = (
        Index("idx_project_client", "client_id"),
    )


# ==================== TASKS ====================

class TaskDB(Base):
    """Task rows. Workers, time and notes live in side tables."""
    __tablename__ = "task"

    task_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("project.project_id"), nullable=False)

    # Classification
    task_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    mold_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    number_molds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Timing
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(30), default=TaskStatus.PLANNED.value)
    timer_state: Mapped[str] = mapped_column(String(20), default=TimerState.STOPPED.value)
    active_timers: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # {worker_id: {"startTime": ms}}

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), onupdate=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_task_project", "project_id"),
        Index("idx_task_status", "status"),
    )


class TaskWorkerDB(Base):
    """Worker assignment link between a task and a user."""
    __tablename__ = "taskworker"

    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("task.task_id"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.user_id"), primary_key=True)

    __table_args__ = (
        Index("idx_taskworker_user", "user_id"),
    )


class TaskDailyTimeDB(Base):
    """Hours a worker spent on a task on one day."""
    __tablename__ = "taskdailytime"

    time_spent_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("task.task_id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.user_id"), nullable=False)
    spent_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[float] = mapped_column(Float, default=0.0)

    __table_args__ = (
        Index("idx_taskdailytime_task", "task_id"),
        Index("idx_taskdailytime_user", "user_id"),
    )


class TaskNoteDB(Base):
    """Free-text note a worker left on a task for one day."""
    __tablename__ = "tasknote"

    note_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("task.task_id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.user_id"), nullable=False)
    note_date: Mapped[date] = mapped_column(Date, nullable=False)
    note_text: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_tasknote_task", "task_id"),
        Index("idx_tasknote_user", "user_id"),
    )


# ==================== USERS ====================

class UserDB(Base):
    """Application users. Worker-only attributes are null for other roles."""
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # bcrypt
    role: Mapped[str] = mapped_column(String(30), default=UserRole.WORKER.value)

    # Worker attributes
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    skills: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    experience: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    efficiency_coeff: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    daily_availability: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Two-factor
    two_factor: Mapped[bool] = mapped_column(Boolean, default=False)
    two_factor_secret: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), onupdate=utc_now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_users_name", "name"),
        Index("idx_users_email", "email"),
    )


# ==================== AUDIT LOGS ====================

class AuditLogDB(Base):
    """Audit trail. user_id is nulled, not deleted, when the actor goes away."""
    __tablename__ = "auditlogs"

    au_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.user_id"), nullable=True)
    event: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # target display name
    subject_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    subject_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user: Mapped[Optional["UserDB"]] = relationship("UserDB")

    __table_args__ = (
        Index("idx_auditlogs_timestamp", "timestamp"),
        Index("idx_auditlogs_user", "user_id"),
    )


# ==================== SYSTEM ====================

class SystemTimezoneDB(Base):
    """Singleton row holding the IANA timezone used for reports."""
    __tablename__ = "system_timezone"

    sys_tmz: Mapped[str] = mapped_column(String(64), primary_key=True)


# ==================== ERP ====================

class QuotationDB(Base):
    """Price quotation with inline line items."""
    __tablename__ = "quotation"

    quotation_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    quotation_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1)
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("customer.customer_id"), nullable=False)
    project_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=QuotationStatus.DRAFT.value)
    items: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # [{id, description, quantity, unitPrice}]
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), onupdate=utc_now
    )


class SalesOrderDB(Base):
    """Sales order created from an accepted quotation."""
    __tablename__ = "salesorder"

    order_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    quotation_id: Mapped[str] = mapped_column(String(36), ForeignKey("quotation.quotation_id"), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("customer.customer_id"), nullable=False)
    project_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.CREATED.value)
    logs: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # append-only [{timestamp, message, userId}]

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, server_default=func.now())


class ShipmentDB(Base):
    """Dispatch of goods for an order."""
    __tablename__ = "shipment"

    shipment_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    shipment_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("salesorder.order_id"), nullable=False)
    dispatched_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    vehicle_id: Mapped[str] = mapped_column(String(50), nullable=False)
    items: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # [{inventoryItemId, quantity}]


class InventoryItemDB(Base):
    """Stock item."""
    __tablename__ = "inventoryitem"

    item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    related_task_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)


# Tables whose changes trigger a refetch of application data
WATCHED_TABLES = (
    "project",
    "task",
    "users",
    "taskworker",
    "taskdailytime",
    "tasknote",
    "auditlogs",
    "customer",
    "system_timezone",
)
