"""
Services for business logic.
"""

from .app_state import AppState, ErpState
from .auth import AuthService
from .change_feed import ChangeEvent, ChangeFeed, PostgresChangeListener
from .erp import ErpService, quotation_totals, can_receive_shipment, customers_with_projects
from .notifications import TaskNotifier
from .refresh import RefreshLoop

__all__ = [
    "AppState",
    "ErpState",
    "AuthService",
    "ChangeEvent",
    "ChangeFeed",
    "PostgresChangeListener",
    "ErpService",
    "quotation_totals",
    "can_receive_shipment",
    "customers_with_projects",
    "TaskNotifier",
    "RefreshLoop",
]
