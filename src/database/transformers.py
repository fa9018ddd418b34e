"""
Row-to-object transformers.

Pure functions mapping one database row (plus optionally one joined value)
to one application object. No I/O. Missing join data degrades to a
sentinel ("Unknown Client", "Unknown User") instead of failing.
"""

from typing import Optional, Dict, Any

from .models import (
    ProjectDB,
    TaskDB,
    UserDB,
    AuditLogDB,
    CustomerDB,
    QuotationDB,
    SalesOrderDB,
    ShipmentDB,
    InventoryItemDB,
)
from ..models import (
    Project,
    Task,
    User,
    AuditLog,
    Customer,
    Quotation,
    Order,
    Shipment,
    InventoryItem,
    ActiveTimer,
    UNKNOWN_CLIENT,
    UNKNOWN_USER,
)
from ..utils.colors import rgb_to_hex, hex_to_rgb


def color_columns(marking_color: str) -> Dict[str, int]:
    """Split "#rrggbb" into the three colour columns of the project table."""
    red, green, blue = hex_to_rgb(marking_color)
    return {"color_red": red, "color_green": green, "color_blue": blue}


def project_from_row(row: ProjectDB, customer_name: Optional[str] = None) -> Project:
    return Project(
        id=row.project_id,
        name=row.name,
        marking=row.marking,
        client_id=row.client_id,
        marking_color=rgb_to_hex(row.color_red or 0, row.color_green or 0, row.color_blue or 0),
        start_date=row.start_date,
        end_date=row.end_date,
        client=customer_name or UNKNOWN_CLIENT,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
        archived_at=row.archived_at,
    )


def _active_timers(raw: Optional[Dict[str, Any]]) -> Dict[str, ActiveTimer]:
    timers = {}
    for worker_id, meta in (raw or {}).items():
        start = meta.get("startTime", meta.get("start_time")) if isinstance(meta, dict) else None
        if start is not None:
            timers[worker_id] = ActiveTimer(start_time=int(start))
    return timers


def task_from_row(row: TaskDB) -> Task:
    """Assigned workers and daily time are filled in by the caller."""
    return Task(
        id=row.task_id,
        name=row.name,
        project_id=row.project_id,
        task_type_id=row.task_type,
        mold_type_id=row.mold_type,
        start_date=row.start_date,
        deadline=row.end_date,
        status=row.status,
        timer_state=row.timer_state,
        number_of_molds=row.number_molds,
        assigned_worker_ids=[],
        daily_time_spent={},
        active_timers=_active_timers(row.active_timers),
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
        archived_at=row.archived_at,
    )


def active_timers_to_column(task: Task) -> Dict[str, Dict[str, int]]:
    return {
        worker_id: {"startTime": timer.start_time}
        for worker_id, timer in (task.active_timers or {}).items()
    }


def user_from_row(row: UserDB) -> User:
    return User(
        id=row.user_id,
        name=row.name,
        email=row.email,
        role=row.role,
        age=row.age,
        skills=row.skills,
        experience=row.experience,
        efficiency=row.efficiency_coeff,
        daily_availability=row.daily_availability,
        is_two_factor_enabled=bool(row.two_factor),
        two_factor_secret=row.two_factor_secret,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
        archived_at=row.archived_at,
    )


def audit_log_from_row(row: AuditLogDB, actor_name: Optional[str] = None) -> AuditLog:
    return AuditLog(
        id=row.au_id,
        timestamp=row.timestamp,
        actor_id=row.user_id,
        actor_name=actor_name or UNKNOWN_USER,
        action=row.event,
        target_type=row.subject_type,
        target_id=row.subject_id,
        target_name=row.content,
        archived_at=row.archived_at,
    )


def customer_from_row(row: CustomerDB) -> Customer:
    return Customer(
        id=row.customer_id,
        name=row.customer_name,
        contact_name=row.contact_name,
        email=row.email,
        tel=row.tel,
        billing_address=row.bill_address,
        shipping_address=row.ship_address,
        tags=row.tags or [],
        status=row.status,
        project_names=row.project_names,
        created_at=row.created_at,
    )


def quotation_from_row(row: QuotationDB) -> Quotation:
    return Quotation(
        id=row.quotation_id,
        quotation_number=row.quotation_number,
        version=row.version,
        customer_id=row.customer_id,
        project_id=row.project_id,
        status=row.status,
        items=row.items or [],
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def order_from_row(row: SalesOrderDB) -> Order:
    return Order(
        id=row.order_id,
        order_number=row.order_number,
        quotation_id=row.quotation_id,
        customer_id=row.customer_id,
        project_id=row.project_id,
        status=row.status,
        created_at=row.created_at,
        logs=row.logs or [],
    )


def shipment_from_row(row: ShipmentDB) -> Shipment:
    return Shipment(
        id=row.shipment_id,
        shipment_number=row.shipment_number,
        order_id=row.order_id,
        dispatched_at=row.dispatched_at,
        vehicle_id=row.vehicle_id,
        items=row.items or [],
    )


def inventory_item_from_row(row: InventoryItemDB) -> InventoryItem:
    return InventoryItem(
        id=row.item_id,
        name=row.name,
        sku=row.sku,
        quantity=row.quantity,
        location=row.location,
        related_task_id=row.related_task_id,
        last_updated=row.last_updated,
    )
