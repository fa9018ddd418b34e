"""
In-memory application state.

AppState holds the fetched collections and is passed explicitly to whoever
handles user events (the web routes). Writes go to the backend first; the
local collections are changed (append / replace / remove by id) only after
the backend call returned successfully. A full refresh replaces everything.

Timer operations follow the shared-timer model: each worker on a task has
their own running timer; pausing or ending adds the elapsed seconds to that
worker's entry for the current UTC day.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..database.app_data import AppDataLoader
from ..database.connection import Database
from ..database.exceptions import EntityNotFoundError
from ..database.repositories import (
    TaskRepository,
    ProjectRepository,
    UserRepository,
    AuditRepository,
    RecycleBinRepository,
    SystemSettingsRepository,
    CustomerRepository,
    ErpRepository,
    ItemType,
)
from ..models import (
    ActiveTimer,
    AppIntegrations,
    AuditLog,
    AuditLogCreate,
    Customer,
    CustomerCreate,
    DailyTimeRecord,
    InventoryItem,
    InventoryItemCreate,
    Order,
    OrderStatus,
    Project,
    ProjectCreate,
    Quotation,
    QuotationCreate,
    QuotationStatus,
    QuotationTotals,
    Shipment,
    ShipmentCreate,
    Task,
    TaskCreate,
    TaskStatus,
    TimerState,
    User,
    UserCreate,
    UserRole,
)
from ..utils.datetime_utils import now_ms, utc_now
from .erp import ErpService, customers_with_projects
from .notifications import TaskNotifier

logger = logging.getLogger(__name__)


def _replace(items: list, updated) -> list:
    return [updated if item.id == updated.id else item for item in items]


def _day_of(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date().isoformat()


def add_elapsed(task: Task, worker_id: str, seconds: float, day: str, notes: Optional[str] = None) -> Dict:
    """Copy of the task's daily time with `seconds` (and optionally notes) added for one worker-day."""
    daily = {
        worker: {key: record.model_copy() for key, record in days.items()}
        for worker, days in (task.daily_time_spent or {}).items()
    }
    record = daily.setdefault(worker_id, {}).setdefault(day, DailyTimeRecord(time=0))
    record.time = (record.time or 0) + seconds
    if notes and notes.strip():
        record.notes = notes
    return daily


class ErpState:
    """ERP collections and the operations that change them."""

    def __init__(self, customers: CustomerRepository, erp: ErpRepository, service: ErpService):
        self.customer_repo = customers
        self.erp_repo = erp
        self.service = service
        self.customers: List[Customer] = []
        self.quotations: List[Quotation] = []
        self.orders: List[Order] = []
        self.inventory: List[InventoryItem] = []
        self.shipments: List[Shipment] = []

    def load(self, data) -> None:
        self.customers = list(data.customers)
        self.quotations = list(data.quotations)
        self.orders = list(data.orders)
        self.inventory = list(data.inventory)
        self.shipments = list(data.shipments)

    def _sort_customers(self) -> None:
        self.customers.sort(key=lambda c: c.name.lower())

    async def add_customer(self, data: CustomerCreate) -> Customer:
        customer = await self.customer_repo.create(data)
        self.customers.append(customer)
        self._sort_customers()
        return customer

    async def update_customer(self, customer: Customer) -> Customer:
        updated = await self.customer_repo.update(customer)
        self.customers = _replace(self.customers, updated)
        self._sort_customers()
        return updated

    async def archive_customer(self, customer_id: str) -> None:
        await self.customer_repo.archive(customer_id)
        self.customers = [c for c in self.customers if c.id != customer_id]

    async def add_quotation(self, data: QuotationCreate) -> Quotation:
        quotation = await self.erp_repo.create_quotation(data)
        self.quotations.append(quotation)
        return quotation

    async def update_quotation(self, quotation: Quotation) -> Quotation:
        updated = await self.erp_repo.update_quotation(quotation)
        self.quotations = _replace(self.quotations, updated)
        return updated

    async def totals_for(self, quotation_id: str) -> QuotationTotals:
        return await self.service.totals_for(quotation_id)

    async def convert_quotation_to_order(self, quotation_id: str, user_id: Optional[str] = None) -> Order:
        order = await self.service.convert_quotation_to_order(quotation_id, user_id)
        self.orders.append(order)
        return order

    async def update_order_status(self, order_id: str, status: OrderStatus, user_id: Optional[str] = None) -> Order:
        order = await self.service.update_order_status(order_id, status, user_id)
        self.orders = _replace(self.orders, order)
        return order

    async def add_shipment(self, data: ShipmentCreate, user_id: Optional[str] = None) -> Shipment:
        shipment, order = await self.service.add_shipment(data, user_id)
        self.shipments.append(shipment)
        self.orders = _replace(self.orders, order)
        return shipment

    async def add_inventory_item(self, data: InventoryItemCreate) -> InventoryItem:
        item = await self.erp_repo.create_inventory_item(data)
        self.inventory.append(item)
        return item


class AppState:
    """Planner collections, derived views and write operations."""

    def __init__(
        self,
        loader: AppDataLoader,
        tasks: TaskRepository,
        projects: ProjectRepository,
        users: UserRepository,
        audit: AuditRepository,
        recycle_bin: RecycleBinRepository,
        system: SystemSettingsRepository,
        erp: ErpState,
        audit_log_limit: int = 500,
        clock: Callable[[], int] = now_ms,
    ):
        self.loader = loader
        self.task_repo = tasks
        self.project_repo = projects
        self.user_repo = users
        self.audit_repo = audit
        self.recycle_bin = recycle_bin
        self.system_repo = system
        self.erp = erp
        self.audit_log_limit = audit_log_limit
        self.clock = clock

        self.projects: List[Project] = []
        self.tasks: List[Task] = []
        self.users: List[User] = []
        self.audit_logs: List[AuditLog] = []
        self.integrations = AppIntegrations()

        self.loading = False
        self.error: Optional[str] = None
        self.last_refreshed_at: Optional[datetime] = None
        self._refresh_lock = asyncio.Lock()

    @classmethod
    def from_database(cls, db: Database, settings, notifier: Optional[TaskNotifier] = None) -> "AppState":
        projects = ProjectRepository(db)
        customers = CustomerRepository(db)
        erp_repo = ErpRepository(db)
        erp = ErpState(
            customers,
            erp_repo,
            ErpService(erp_repo, projects, customers, tax_rate=settings.quotation_tax_rate),
        )
        return cls(
            loader=AppDataLoader.from_settings(db, settings),
            tasks=TaskRepository(db, notifier),
            projects=projects,
            users=UserRepository(db, bcrypt_rounds=settings.bcrypt_rounds),
            audit=AuditRepository(db),
            recycle_bin=RecycleBinRepository(db),
            system=SystemSettingsRepository(db),
            erp=erp,
            audit_log_limit=settings.audit_log_page_size,
        )

    # ==================== REFRESH ====================

    async def refresh(self) -> None:
        """Refetch everything and replace all collections. Calls are serialized."""
        async with self._refresh_lock:
            self.loading = True
            try:
                data = await self.loader.fetch_app_data()
                erp_data = await self.loader.fetch_erp_data()
            except Exception as e:
                self.error = str(e)
                logger.error(f"Application data refresh failed: {e}")
                raise
            finally:
                self.loading = False

            self.projects = data.projects
            self.tasks = data.tasks
            self.users = data.users
            self.audit_logs = data.audit_logs
            self.integrations = data.integrations
            self.erp.load(erp_data)
            self.error = None
            self.last_refreshed_at = utc_now()
            logger.info(f"Application data refreshed: {len(self.projects)} projects, {len(self.tasks)} tasks")

    # ==================== VIEWS ====================

    @property
    def active_projects(self) -> List[Project]:
        return [p for p in self.projects if p.deleted_at is None]

    @property
    def active_tasks(self) -> List[Task]:
        """Non-deleted tasks whose project is not deleted either."""
        project_ids = {p.id for p in self.active_projects}
        return [t for t in self.tasks if t.deleted_at is None and t.project_id in project_ids]

    @property
    def active_users(self) -> List[User]:
        return [u for u in self.users if u.deleted_at is None]

    @property
    def workers(self) -> List[User]:
        workers = [u for u in self.active_users if UserRole(u.role) is UserRole.WORKER]
        return sorted(workers, key=lambda u: u.name.lower())

    @property
    def deleted_projects(self) -> List[Project]:
        return [p for p in self.projects if p.deleted_at is not None]

    @property
    def deleted_tasks(self) -> List[Task]:
        return [t for t in self.tasks if t.deleted_at is not None]

    @property
    def deleted_users(self) -> List[User]:
        return [u for u in self.users if u.deleted_at is not None]

    @property
    def customers(self) -> List[Customer]:
        return customers_with_projects(self.erp.customers, self.active_projects)

    def tasks_for_project(self, project_id: str) -> List[Task]:
        return [t for t in self.active_tasks if t.project_id == project_id]

    def tasks_for_worker(self, worker_id: str) -> List[Task]:
        return [t for t in self.active_tasks if worker_id in t.assigned_worker_ids]

    def get_task(self, task_id: str) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise EntityNotFoundError(f"Task {task_id} not found")

    # ==================== PROJECTS ====================

    async def add_project(self, data: ProjectCreate) -> Project:
        project = await self.project_repo.create(data)
        self.projects.append(project)
        return project

    async def update_project(self, project: Project) -> Project:
        updated = await self.project_repo.update(project)
        self.projects = _replace(self.projects, updated)
        return updated

    async def delete_project(self, project_id: str) -> None:
        await self.project_repo.soft_delete(project_id)
        self.projects = [
            p.model_copy(update={"deleted_at": utc_now()}) if p.id == project_id else p for p in self.projects
        ]

    async def restore_project(self, project_id: str) -> None:
        await self.recycle_bin.restore(ItemType.PROJECT, project_id)
        self.projects = [p.model_copy(update={"deleted_at": None}) if p.id == project_id else p for p in self.projects]

    async def permanently_delete_project(self, project_id: str) -> None:
        await self.recycle_bin.permanently_delete(ItemType.PROJECT, project_id)
        self.projects = [p for p in self.projects if p.id != project_id]
        self.tasks = [t for t in self.tasks if t.project_id != project_id]

    # ==================== TASKS ====================

    async def add_task(self, data: TaskCreate, actor_id: str) -> Task:
        task = await self.task_repo.create(data, actor_id)
        self.tasks.append(task)
        return task

    async def update_task(self, task: Task) -> Task:
        updated = await self.task_repo.update(task)
        if updated.daily_time_spent is None:
            # Time and notes were left untouched; keep the ones already loaded
            current = next((t for t in self.tasks if t.id == updated.id), None)
            updated = updated.model_copy(
                update={"daily_time_spent": current.daily_time_spent if current else {}}
            )
        self.tasks = _replace(self.tasks, updated)
        return updated

    async def delete_task(self, task_id: str) -> None:
        await self.task_repo.soft_delete(task_id)
        self.tasks = [t.model_copy(update={"deleted_at": utc_now()}) if t.id == task_id else t for t in self.tasks]

    async def restore_task(self, task_id: str) -> None:
        await self.recycle_bin.restore(ItemType.TASK, task_id)
        self.tasks = [t.model_copy(update={"deleted_at": None}) if t.id == task_id else t for t in self.tasks]

    async def permanently_delete_task(self, task_id: str) -> None:
        await self.recycle_bin.permanently_delete(ItemType.TASK, task_id)
        self.tasks = [t for t in self.tasks if t.id != task_id]

    # ==================== USERS ====================

    async def add_user(self, data: UserCreate) -> User:
        user = await self.user_repo.create(data)
        self.users.append(user)
        return user

    async def update_user(self, user: User) -> User:
        updated = await self.user_repo.update(user)
        self.users = _replace(self.users, updated)
        return updated

    async def delete_user(self, user_id: str) -> None:
        await self.user_repo.soft_delete(user_id)
        self.users = [u.model_copy(update={"deleted_at": utc_now()}) if u.id == user_id else u for u in self.users]

    async def restore_user(self, user_id: str) -> None:
        await self.recycle_bin.restore(ItemType.USER, user_id)
        self.users = [u.model_copy(update={"deleted_at": None}) if u.id == user_id else u for u in self.users]

    async def permanently_delete_user(self, user_id: str) -> None:
        """
        Delete the user and drop them from every local task.

        Their time and notes go from all tasks, not only assigned ones, so a
        later task update cannot write rows back for a user that is gone.
        """
        await self.recycle_bin.permanently_delete(ItemType.USER, user_id)

        tasks = []
        for task in self.tasks:
            daily = task.daily_time_spent or {}
            if (
                user_id not in task.assigned_worker_ids
                and user_id not in task.active_timers
                and user_id not in daily
            ):
                tasks.append(task)
                continue
            changes = {"assigned_worker_ids": [w for w in task.assigned_worker_ids if w != user_id]}
            if user_id in daily:
                changes["daily_time_spent"] = {w: days for w, days in daily.items() if w != user_id}
            if user_id in task.active_timers:
                timers = {w: t for w, t in task.active_timers.items() if w != user_id}
                changes["active_timers"] = timers
                if not timers:
                    changes["timer_state"] = TimerState.PAUSED
            tasks.append(task.model_copy(update=changes))
        self.tasks = tasks
        self.users = [u for u in self.users if u.id != user_id]

    # ==================== AUDIT & SETTINGS ====================

    async def add_audit_log(self, data: AuditLogCreate) -> AuditLog:
        log = await self.audit_repo.add(data)
        self.audit_logs = [log] + self.audit_logs[: self.audit_log_limit - 1]
        return log

    async def update_timezone(self, timezone_name: str) -> None:
        await self.system_repo.set_timezone(timezone_name)
        self.integrations = self.integrations.model_copy(update={"timezone": timezone_name})

    # ==================== TIMERS ====================

    async def start_timer(self, task_id: str, worker_id: str) -> Task:
        task = self.get_task(task_id)
        timers = dict(task.active_timers)
        timers[worker_id] = ActiveTimer(start_time=self.clock())
        return await self.update_task(task.model_copy(update={
            "timer_state": TimerState.RUNNING,
            "status": TaskStatus.IN_PROGRESS,
            "active_timers": timers,
        }))

    async def _stop_worker_timer(self, task_id: str, worker_id: str, notes: Optional[str] = None) -> Task:
        task = self.get_task(task_id)
        timer = task.active_timers.get(worker_id)
        if timer is None:
            logger.debug(f"No running timer for worker {worker_id} on task {task_id}")
            return task

        now = self.clock()
        elapsed = (now - timer.start_time) / 1000
        timers = {w: t for w, t in task.active_timers.items() if w != worker_id}
        return await self.update_task(task.model_copy(update={
            "timer_state": TimerState.RUNNING if timers else TimerState.PAUSED,
            "daily_time_spent": add_elapsed(task, worker_id, elapsed, _day_of(now), notes),
            "active_timers": timers,
        }))

    async def pause_timer(self, task_id: str, worker_id: str) -> Task:
        return await self._stop_worker_timer(task_id, worker_id)

    async def end_day_and_add_notes(self, task_id: str, worker_id: str, notes: str) -> Task:
        return await self._stop_worker_timer(task_id, worker_id, notes)

    async def end_timer(self, task_id: str) -> Task:
        """Stop every running timer on the task and mark it Completed."""
        task = self.get_task(task_id)
        now = self.clock()
        day = _day_of(now)

        daily = task.daily_time_spent or {}
        for worker_id, timer in task.active_timers.items():
            daily = add_elapsed(
                task.model_copy(update={"daily_time_spent": daily}),
                worker_id,
                (now - timer.start_time) / 1000,
                day,
            )

        return await self.update_task(task.model_copy(update={
            "status": TaskStatus.COMPLETED,
            "timer_state": TimerState.STOPPED,
            "active_timers": {},
            "daily_time_spent": daily,
        }))

    # ==================== ERP ====================

    async def update_quotation_status(self, quotation_id: str, status: QuotationStatus) -> Quotation:
        """Set a quotation's status; an accepted quotation also adds its new project here."""
        quotation, project = await self.erp.service.update_quotation_status(quotation_id, status)
        self.erp.quotations = _replace(self.erp.quotations, quotation)
        if project is not None:
            self.projects.append(project)
        return quotation
