"""ERP data models: quotations, orders, shipments, inventory."""

import uuid
from datetime import datetime
from typing import Optional, List
from pydantic import Field

from .base import CamelModel
from .enums import QuotationStatus, OrderStatus


class QuotationItem(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str
    quantity: float = Field(..., ge=0)
    unit_price: float = Field(..., ge=0)


class Quotation(CamelModel):
    id: str
    quotation_number: str
    version: int = 1
    customer_id: str
    project_id: Optional[str] = None
    status: QuotationStatus = QuotationStatus.DRAFT
    items: List[QuotationItem] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuotationCreate(CamelModel):
    customer_id: str
    project_id: Optional[str] = None
    status: QuotationStatus = QuotationStatus.DRAFT
    items: List[QuotationItem] = Field(default_factory=list)
    notes: Optional[str] = None


class QuotationTotals(CamelModel):
    subtotal: float
    tax: float
    grand_total: float


class OrderLogEntry(CamelModel):
    timestamp: datetime
    message: str
    user_id: Optional[str] = None


class Order(CamelModel):
    id: str
    order_number: str
    quotation_id: str
    customer_id: str
    project_id: Optional[str] = None
    status: OrderStatus = OrderStatus.CREATED
    created_at: Optional[datetime] = None
    logs: List[OrderLogEntry] = Field(default_factory=list)  # append-only history


class ShipmentItem(CamelModel):
    inventory_item_id: str
    quantity: int = Field(..., gt=0)


class Shipment(CamelModel):
    id: str
    shipment_number: str
    order_id: str
    dispatched_at: datetime
    vehicle_id: str
    items: List[ShipmentItem] = Field(default_factory=list)


class ShipmentCreate(CamelModel):
    order_id: str
    dispatched_at: datetime
    vehicle_id: str = Field(..., min_length=1, max_length=50)
    items: List[ShipmentItem] = Field(default_factory=list)


class InventoryItem(CamelModel):
    id: str
    name: str
    sku: str
    quantity: int = 0
    location: Optional[str] = None
    related_task_id: Optional[str] = None
    last_updated: Optional[datetime] = None


class InventoryItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(0, ge=0)
    location: Optional[str] = None
    related_task_id: Optional[str] = None
