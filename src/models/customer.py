"""CRM customer data model."""

from datetime import datetime
from typing import Optional, List
from pydantic import Field

from .base import CamelModel
from .enums import CustomerStatus
from .project import Project


class Customer(CamelModel):
    """
    A customer or lead.

    projects and project_count are derived at read time by matching
    projects on client_id; they are not stored.
    """
    id: str
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    tel: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: Optional[CustomerStatus] = None
    project_names: Optional[List[str]] = None
    created_at: Optional[datetime] = None

    projects: List[Project] = Field(default_factory=list)
    project_count: int = 0


class CustomerCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    tel: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: CustomerStatus = CustomerStatus.ACTIVE
