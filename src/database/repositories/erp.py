"""
ERP repository: quotations, sales orders, shipments and inventory.

Document numbers are PREFIX-YYYY-NNNN (Q-, SO-, SH-), counted per year.
Line items and order logs are JSON lists on their parent row; order logs
are append-only.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select, func

from .base import BaseRepository
from ..exceptions import EntityNotFoundError
from ..models import QuotationDB, SalesOrderDB, ShipmentDB, InventoryItemDB
from ..transformers import (
    quotation_from_row,
    order_from_row,
    shipment_from_row,
    inventory_item_from_row,
)
from ...models import (
    Quotation,
    QuotationCreate,
    QuotationStatus,
    Order,
    OrderStatus,
    OrderLogEntry,
    Shipment,
    ShipmentCreate,
    InventoryItem,
    InventoryItemCreate,
)
from ...utils.datetime_utils import utc_now, to_naive_utc

logger = logging.getLogger(__name__)

QUOTATION_PREFIX = "Q"
ORDER_PREFIX = "SO"
SHIPMENT_PREFIX = "SH"


def format_document_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:04d}"


def _dump_list(items) -> list:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def _log_entry(message: str, user_id: Optional[str]) -> dict:
    return OrderLogEntry(timestamp=utc_now(), message=message, user_id=user_id).model_dump(
        mode="json", by_alias=True
    )


class ErpRepository(BaseRepository):
    """Repository for ERP documents."""

    async def _next_number(self, session, column, prefix: str) -> str:
        year = utc_now().year
        count = (await session.execute(
            select(func.count()).where(column.like(f"{prefix}-{year}-%"))
        )).scalar_one()
        return format_document_number(prefix, year, count + 1)

    # ==================== QUOTATIONS ====================

    async def create_quotation(self, data: QuotationCreate) -> Quotation:
        async with self.unit("quotation", "insert") as session:
            row = QuotationDB(
                quotation_id=str(uuid.uuid4()),
                quotation_number=await self._next_number(
                    session, QuotationDB.quotation_number, QUOTATION_PREFIX
                ),
                version=1,
                customer_id=data.customer_id,
                project_id=data.project_id,
                status=QuotationStatus(data.status).value,
                items=_dump_list(data.items),
                notes=data.notes,
            )
            session.add(row)
            await session.flush()

        logger.info(f"Created quotation {row.quotation_number}")
        return quotation_from_row(row)

    async def get_quotation(self, quotation_id: str) -> Quotation:
        async with self.unit("quotation", "select") as session:
            row = await session.get(QuotationDB, quotation_id)
            if row is None:
                raise EntityNotFoundError(f"Quotation {quotation_id} not found")
            return quotation_from_row(row)

    async def update_quotation(self, quotation: Quotation) -> Quotation:
        """Store edited items and notes as a new version."""
        async with self.unit("quotation", "update") as session:
            row = await session.get(QuotationDB, quotation.id)
            if row is None:
                raise EntityNotFoundError(f"Quotation {quotation.id} not found")
            row.customer_id = quotation.customer_id
            row.project_id = quotation.project_id
            row.items = _dump_list(quotation.items)
            row.notes = quotation.notes
            row.version = (row.version or 1) + 1
            row.updated_at = utc_now()
            await session.flush()
            updated = quotation_from_row(row)

        logger.info(f"Updated quotation {updated.quotation_number} to v{updated.version}")
        return updated

    async def set_quotation_status(self, quotation_id: str, status: QuotationStatus) -> Quotation:
        async with self.unit("quotation", "update") as session:
            row = await session.get(QuotationDB, quotation_id)
            if row is None:
                raise EntityNotFoundError(f"Quotation {quotation_id} not found")
            row.status = QuotationStatus(status).value
            row.updated_at = utc_now()
            await session.flush()
            updated = quotation_from_row(row)

        logger.info(f"Quotation {updated.quotation_number} is now {updated.status.value}")
        return updated

    # ==================== ORDERS ====================

    async def create_order(self, quotation: Quotation, user_id: Optional[str] = None) -> Order:
        async with self.unit("salesorder", "insert") as session:
            row = SalesOrderDB(
                order_id=str(uuid.uuid4()),
                order_number=await self._next_number(session, SalesOrderDB.order_number, ORDER_PREFIX),
                quotation_id=quotation.id,
                customer_id=quotation.customer_id,
                project_id=quotation.project_id,
                status=OrderStatus.CREATED.value,
                logs=[_log_entry(f"Order created from quotation {quotation.quotation_number}", user_id)],
            )
            session.add(row)
            await session.flush()

        logger.info(f"Created order {row.order_number} from {quotation.quotation_number}")
        return order_from_row(row)

    async def get_order(self, order_id: str) -> Order:
        async with self.unit("salesorder", "select") as session:
            row = await session.get(SalesOrderDB, order_id)
            if row is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            return order_from_row(row)

    async def set_order_status(
        self,
        order_id: str,
        status: OrderStatus,
        user_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Order:
        """Change the status and append one log entry."""
        status = OrderStatus(status)
        async with self.unit("salesorder", "update") as session:
            row = await session.get(SalesOrderDB, order_id)
            if row is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            row.logs = list(row.logs or []) + [
                _log_entry(message or f"Status changed from {row.status} to {status.value}", user_id)
            ]
            row.status = status.value
            await session.flush()
            updated = order_from_row(row)

        logger.info(f"Order {updated.order_number} is now {status.value}")
        return updated

    # ==================== SHIPMENTS ====================

    async def create_shipment(self, data: ShipmentCreate) -> Shipment:
        async with self.unit("shipment", "insert") as session:
            row = ShipmentDB(
                shipment_id=str(uuid.uuid4()),
                shipment_number=await self._next_number(
                    session, ShipmentDB.shipment_number, SHIPMENT_PREFIX
                ),
                order_id=data.order_id,
                dispatched_at=to_naive_utc(data.dispatched_at),
                vehicle_id=data.vehicle_id,
                items=_dump_list(data.items),
            )
            session.add(row)
            await session.flush()

        logger.info(f"Created shipment {row.shipment_number} for order {data.order_id}")
        return shipment_from_row(row)

    # ==================== INVENTORY ====================

    async def create_inventory_item(self, data: InventoryItemCreate) -> InventoryItem:
        async with self.unit("inventoryitem", "insert") as session:
            row = InventoryItemDB(
                item_id=str(uuid.uuid4()),
                name=data.name,
                sku=data.sku,
                quantity=data.quantity,
                location=data.location,
                related_task_id=data.related_task_id,
            )
            session.add(row)
            await session.flush()

        logger.info(f"Created inventory item {data.sku}")
        return inventory_item_from_row(row)
