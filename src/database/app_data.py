"""
Aggregate fetch of all application data.

Reads run one after another, never in parallel, so that the first failing
read is the one reported: every failure becomes an AppDataFetchError whose
`source` names that read, and no partial AppData is returned.

After the reads, the worker-link, daily-time and note side tables are folded
into each Task (assigned_worker_ids and daily_time_spent).
"""

import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy import select

from .connection import Database
from .exceptions import AppDataFetchError
from .models import (
    ProjectDB,
    TaskDB,
    UserDB,
    TaskWorkerDB,
    TaskDailyTimeDB,
    TaskNoteDB,
    AuditLogDB,
    CustomerDB,
    SystemTimezoneDB,
    QuotationDB,
    SalesOrderDB,
    ShipmentDB,
    InventoryItemDB,
)
from .transformers import (
    project_from_row,
    task_from_row,
    user_from_row,
    audit_log_from_row,
    customer_from_row,
    quotation_from_row,
    order_from_row,
    shipment_from_row,
    inventory_item_from_row,
)
from ..models import (
    AppData,
    AppIntegrations,
    ErpData,
    DailyTimeRecord,
    DailyTimeSpent,
)
from ..utils.datetime_utils import to_date_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_AUDIT_LOG_LIMIT = 500
DEFAULT_TIMEZONE = "Asia/Kolkata"


def build_worker_index(links: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    """task id -> worker ids, in link row order."""
    index: Dict[str, List[str]] = defaultdict(list)
    for task_id, user_id in links:
        index[task_id].append(user_id)
    return dict(index)


def build_daily_time_index(time_rows, note_rows) -> Dict[str, DailyTimeSpent]:
    """
    Fold time and note rows into task id -> worker id -> ISO date -> record.

    Hours are converted to seconds and summed when several rows share a key.
    For notes the last row for a key wins. A key may carry only time or only
    notes.
    """
    index: Dict[str, DailyTimeSpent] = {}

    def record_for(task_id: str, user_id: str, day) -> DailyTimeRecord:
        per_worker = index.setdefault(task_id, {}).setdefault(user_id, {})
        key = to_date_key(day)
        if key not in per_worker:
            per_worker[key] = DailyTimeRecord(time=0.0)
        return per_worker[key]

    for row in time_rows:
        record = record_for(row.task_id, row.user_id, row.spent_date)
        # hours hold seconds / 3600; round off the float error of the division
        record.time = round(record.time + float(row.hours or 0) * 3600, 3)

    for row in note_rows:
        record = record_for(row.task_id, row.user_id, row.note_date)
        record.notes = row.note_text

    return index


class AppDataLoader:
    """Runs the aggregate reads against an injected Database."""

    def __init__(
        self,
        db: Database,
        audit_log_limit: int = DEFAULT_AUDIT_LOG_LIMIT,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self.db = db
        self.audit_log_limit = audit_log_limit
        self.default_timezone = default_timezone

    @classmethod
    def from_settings(cls, db: Database, settings) -> "AppDataLoader":
        return cls(
            db,
            audit_log_limit=settings.audit_log_page_size,
            default_timezone=settings.default_timezone,
        )

    async def _read(self, source: str, fetch: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fetch()
        except Exception as e:
            logger.error(f"Failed to fetch {source}: {e}")
            raise AppDataFetchError(source, e) from e

    # ==================== READS ====================

    async def _projects(self):
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB, CustomerDB.customer_name)
                .outerjoin(CustomerDB, ProjectDB.client_id == CustomerDB.customer_id)
            )
            return [project_from_row(row, name) for row, name in result.all()]

    async def _scalars(self, query):
        async with self.db.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _task_workers(self):
        async with self.db.session() as session:
            result = await session.execute(select(TaskWorkerDB.task_id, TaskWorkerDB.user_id))
            return [(task_id, user_id) for task_id, user_id in result.all()]

    async def _audit_logs(self):
        async with self.db.session() as session:
            result = await session.execute(
                select(AuditLogDB, UserDB.name)
                .outerjoin(UserDB, AuditLogDB.user_id == UserDB.user_id)
                .order_by(AuditLogDB.timestamp.desc())
                .limit(self.audit_log_limit)
            )
            return [audit_log_from_row(row, name) for row, name in result.all()]

    async def _timezone(self) -> Optional[str]:
        async with self.db.session() as session:
            result = await session.execute(select(SystemTimezoneDB.sys_tmz).limit(1))
            return result.scalar_one_or_none()

    # ==================== AGGREGATES ====================

    async def fetch_app_data(self) -> AppData:
        projects = await self._read("Projects", self._projects)
        task_rows = await self._read("Tasks", lambda: self._scalars(select(TaskDB)))
        user_rows = await self._read("Users", lambda: self._scalars(select(UserDB)))
        links = await self._read("TaskWorker relations", self._task_workers)
        time_rows = await self._read("TaskDailyTime", lambda: self._scalars(select(TaskDailyTimeDB)))
        note_rows = await self._read("Task Notes", lambda: self._scalars(select(TaskNoteDB)))
        audit_logs = await self._read("Audit Logs", self._audit_logs)
        timezone = await self._read("Timezone", self._timezone)

        workers_by_task = build_worker_index(links)
        time_by_task = build_daily_time_index(time_rows, note_rows)

        tasks = []
        for row in task_rows:
            task = task_from_row(row)
            task.assigned_worker_ids = workers_by_task.get(task.id, [])
            task.daily_time_spent = time_by_task.get(task.id, {})
            tasks.append(task)

        logger.debug(
            f"Fetched app data: {len(projects)} projects, {len(tasks)} tasks, "
            f"{len(user_rows)} users, {len(audit_logs)} audit logs"
        )

        return AppData(
            projects=projects,
            tasks=tasks,
            users=[user_from_row(row) for row in user_rows],
            audit_logs=audit_logs,
            integrations=AppIntegrations(timezone=timezone or self.default_timezone),
        )

    async def fetch_erp_data(self) -> ErpData:
        customers = await self._read(
            "Customers",
            lambda: self._scalars(
                select(CustomerDB)
                .where(CustomerDB.archived_at.is_(None))
                .order_by(CustomerDB.customer_name)
            ),
        )
        quotations = await self._read(
            "Quotations", lambda: self._scalars(select(QuotationDB).order_by(QuotationDB.created_at.desc()))
        )
        orders = await self._read(
            "Orders", lambda: self._scalars(select(SalesOrderDB).order_by(SalesOrderDB.created_at.desc()))
        )
        inventory = await self._read(
            "Inventory", lambda: self._scalars(select(InventoryItemDB).order_by(InventoryItemDB.name))
        )
        shipments = await self._read(
            "Shipments", lambda: self._scalars(select(ShipmentDB).order_by(ShipmentDB.dispatched_at.desc()))
        )

        return ErpData(
            customers=[customer_from_row(row) for row in customers],
            quotations=[quotation_from_row(row) for row in quotations],
            orders=[order_from_row(row) for row in orders],
            inventory=[inventory_item_from_row(row) for row in inventory],
            shipments=[shipment_from_row(row) for row in shipments],
        )
