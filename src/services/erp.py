"""
ERP business rules.

- Quotation totals: subtotal of quantity x unit price, a flat tax rate on
  top, everything rounded to cents.
- Orders accept shipments only while Confirmed or In Production; a new
  shipment moves the order to Shipped.
- Accepting a quotation opens a 30-day project for its customer.
- Only accepted quotations convert to sales orders.
"""

import logging
import random
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from ..database.exceptions import EntityNotFoundError, ValidationError
from ..database.repositories import ErpRepository, ProjectRepository, CustomerRepository
from ..models import (
    Customer,
    Order,
    OrderStatus,
    Project,
    ProjectCreate,
    Quotation,
    QuotationItem,
    QuotationStatus,
    QuotationTotals,
    Shipment,
    ShipmentCreate,
)
from ..utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = 0.08
ACCEPTED_PROJECT_DAYS = 30
SHIPPABLE_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.IN_PRODUCTION})

CENT = Decimal("0.01")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quotation_totals(items: Iterable[QuotationItem], tax_rate: float = DEFAULT_TAX_RATE) -> QuotationTotals:
    """
    Totals of a quotation.

    Two items of 10 and one of 5 give subtotal 25.00, tax 2.00 and grand
    total 27.00 at the default 8% rate.
    """
    subtotal = sum(
        (Decimal(str(item.quantity)) * Decimal(str(item.unit_price)) for item in items),
        Decimal("0"),
    )
    subtotal = _cents(subtotal)
    tax = _cents(subtotal * Decimal(str(tax_rate)))
    return QuotationTotals(
        subtotal=float(subtotal),
        tax=float(tax),
        grand_total=float(subtotal + tax),
    )


def can_receive_shipment(order: Order) -> bool:
    return OrderStatus(order.status) in SHIPPABLE_STATUSES


def random_marking_color() -> str:
    return f"#{random.randint(0, 0xFFFFFF):06x}"


def marking_for(customer_name: str, quotation_number: str) -> str:
    """First three letters of the customer, upper-cased, plus the number's last three characters."""
    prefix = customer_name[:3].upper().replace(" ", "")
    return f"{prefix}-{quotation_number[-3:]}"


def customers_with_projects(customers: Iterable[Customer], active_projects: Iterable[Project]) -> List[Customer]:
    """Attach each customer's active projects (matched on client_id) and their count."""
    by_client = {}
    for project in active_projects:
        if project.client_id:
            by_client.setdefault(project.client_id, []).append(project)

    enriched = []
    for customer in customers:
        projects = by_client.get(customer.id, [])
        enriched.append(customer.model_copy(update={"projects": projects, "project_count": len(projects)}))
    return enriched


class ErpService:
    """Quotation, order and shipment workflows on top of the repositories."""

    def __init__(
        self,
        erp: ErpRepository,
        projects: ProjectRepository,
        customers: CustomerRepository,
        tax_rate: float = DEFAULT_TAX_RATE,
    ):
        self.erp = erp
        self.projects = projects
        self.customers = customers
        self.tax_rate = tax_rate

    async def totals_for(self, quotation_id: str) -> QuotationTotals:
        quotation = await self.erp.get_quotation(quotation_id)
        return quotation_totals(quotation.items, self.tax_rate)

    async def update_quotation_status(
        self, quotation_id: str, status: QuotationStatus
    ) -> Tuple[Quotation, Optional[Project]]:
        """Set the status; on acceptance also open a project for the customer."""
        quotation = await self.erp.set_quotation_status(quotation_id, status)
        if QuotationStatus(status) is not QuotationStatus.ACCEPTED:
            return quotation, None

        customer = await self.customers.get_by_id(quotation.customer_id)
        if customer is None:
            logger.warning(
                f"Quotation {quotation.quotation_number} accepted but customer "
                f"{quotation.customer_id} not found, no project created"
            )
            return quotation, None

        start = utc_now().date()
        project = await self.projects.create(ProjectCreate(
            name=f"Project for {quotation.quotation_number}",
            marking=marking_for(customer.name, quotation.quotation_number),
            client_id=customer.id,
            marking_color=random_marking_color(),
            start_date=start,
            end_date=start + timedelta(days=ACCEPTED_PROJECT_DAYS),
        ))
        logger.info(f"Opened project {project.id} for accepted quotation {quotation.quotation_number}")
        return quotation, project

    async def convert_quotation_to_order(self, quotation_id: str, user_id: Optional[str] = None) -> Order:
        quotation = await self.erp.get_quotation(quotation_id)
        if QuotationStatus(quotation.status) is not QuotationStatus.ACCEPTED:
            raise ValidationError(
                f"Quotation {quotation.quotation_number} is {quotation.status.value}, only accepted quotations convert to orders"
            )
        return await self.erp.create_order(quotation, user_id)

    async def update_order_status(self, order_id: str, status: OrderStatus, user_id: Optional[str] = None) -> Order:
        return await self.erp.set_order_status(order_id, status, user_id)

    async def add_shipment(self, data: ShipmentCreate, user_id: Optional[str] = None) -> Tuple[Shipment, Order]:
        """Create a shipment for an eligible order and mark the order Shipped."""
        try:
            order = await self.erp.get_order(data.order_id)
        except EntityNotFoundError:
            raise ValidationError(f"Order {data.order_id} does not exist")

        if not can_receive_shipment(order):
            raise ValidationError(
                f"Order {order.order_number} is {order.status.value}; shipments need Confirmed or In Production"
            )

        shipment = await self.erp.create_shipment(data)
        order = await self.erp.set_order_status(
            order.id,
            OrderStatus.SHIPPED,
            user_id,
            message=f"Shipment {shipment.shipment_number} dispatched on vehicle {shipment.vehicle_id}",
        )
        return shipment, order
