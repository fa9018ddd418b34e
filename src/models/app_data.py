"""Aggregate containers handed to the application after a full fetch."""

from typing import List
from pydantic import Field

from .base import CamelModel
from .project import Project
from .task import Task
from .user import User
from .audit import AuditLog
from .customer import Customer
from .erp import Quotation, Order, Shipment, InventoryItem


class TeamsNotificationToggles(CamelModel):
    task_created: bool = True
    task_in_progress: bool = True
    task_completed: bool = True


class TeamsIntegrationSettings(CamelModel):
    webhook_url: str = ""
    notifications: TeamsNotificationToggles = Field(default_factory=TeamsNotificationToggles)


class AppIntegrations(CamelModel):
    teams: TeamsIntegrationSettings = Field(default_factory=TeamsIntegrationSettings)
    timezone: str = "Asia/Kolkata"


class AppData(CamelModel):
    projects: List[Project] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    users: List[User] = Field(default_factory=list)
    audit_logs: List[AuditLog] = Field(default_factory=list)
    integrations: AppIntegrations = Field(default_factory=AppIntegrations)


class ErpData(CamelModel):
    customers: List[Customer] = Field(default_factory=list)
    quotations: List[Quotation] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)
    inventory: List[InventoryItem] = Field(default_factory=list)
    shipments: List[Shipment] = Field(default_factory=list)
