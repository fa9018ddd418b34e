"""CRM customer repository. Customers are archived, never deleted."""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, update

from .base import BaseRepository
from ..exceptions import EntityNotFoundError
from ..models import CustomerDB
from ..transformers import customer_from_row
from ...models import Customer, CustomerCreate, CustomerStatus
from ...utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class CustomerRepository(BaseRepository):
    """Repository for customer operations."""

    async def list_active(self) -> List[Customer]:
        """Customers that are not archived, ordered by name."""
        async with self.unit("customer", "select") as session:
            result = await session.execute(
                select(CustomerDB)
                .where(CustomerDB.archived_at.is_(None))
                .order_by(CustomerDB.customer_name)
            )
            return [customer_from_row(row) for row in result.scalars().all()]

    async def create(self, data: CustomerCreate) -> Customer:
        async with self.unit("customer", "insert") as session:
            row = CustomerDB(
                customer_id=str(uuid.uuid4()),
                customer_name=data.name,
                contact_name=data.contact_name,
                email=data.email,
                tel=data.tel,
                bill_address=data.billing_address,
                ship_address=data.shipping_address,
                tags=list(data.tags),
                status=CustomerStatus(data.status).value,
            )
            session.add(row)
            await session.flush()

        logger.info(f"Created customer {row.customer_id} ({data.name})")
        return customer_from_row(row)

    async def update(self, customer: Customer) -> Customer:
        async with self.unit("customer", "update") as session:
            result = await session.execute(
                update(CustomerDB)
                .where(CustomerDB.customer_id == customer.id)
                .values(
                    customer_name=customer.name,
                    contact_name=customer.contact_name,
                    email=customer.email,
                    tel=customer.tel,
                    bill_address=customer.billing_address,
                    ship_address=customer.shipping_address,
                    tags=list(customer.tags),
                    status=CustomerStatus(customer.status).value if customer.status else None,
                )
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"Customer {customer.id} not found")

        logger.info(f"Updated customer {customer.id}")
        return customer

    async def archive(self, customer_id: str) -> None:
        async with self.unit("customer", "archive") as session:
            result = await session.execute(
                update(CustomerDB)
                .where(CustomerDB.customer_id == customer_id)
                .values(archived_at=utc_now())
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"Customer {customer_id} not found")
        logger.info(f"Archived customer {customer_id}")

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        async with self.unit("customer", "select") as session:
            row = await session.get(CustomerDB, customer_id)
            return customer_from_row(row) if row is not None else None
