"""
HTTP API over the application state.

Handlers take AppState and AuthService from app.state (set up by the
lifespan in src.main) and return camelCase JSON. Database errors are mapped
to status codes by the handlers registered in src.main.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Response

from config import settings
from ..database.repositories import ItemType
from ..models import (
    AppData,
    AuditLogCreate,
    Customer,
    CustomerCreate,
    ErpData,
    InventoryItemCreate,
    Project,
    ProjectCreate,
    Quotation,
    QuotationCreate,
    ShipmentCreate,
    Task,
    User,
    UserCreate,
)
from ..models.api_validation import (
    ConvertQuotationRequest,
    EndDayRequest,
    LoginRequest,
    OrderStatusUpdate,
    PasswordResetConfirm,
    PasswordResetRequest,
    QuotationStatusUpdate,
    TaskCreateRequest,
    TimerRequest,
    TimezoneUpdate,
)
from ..services.app_state import AppState
from ..services.auth import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_state(request: Request) -> AppState:
    return request.app.state.app_state


def get_auth(request: Request) -> AuthService:
    return request.app.state.auth


def _check_id(path_id: str, body_id: str) -> None:
    if path_id != body_id:
        raise HTTPException(status_code=422, detail="id in path and body differ")


def app_data_snapshot(state: AppState) -> dict:
    return AppData(
        projects=state.projects,
        tasks=state.tasks,
        users=state.users,
        audit_logs=state.audit_logs,
        integrations=state.integrations,
    ).to_api()


# ============================================================================
# Aggregate data
# ============================================================================

@router.get("/app-data")
async def read_app_data(request: Request):
    return app_data_snapshot(get_state(request))


@router.post("/app-data/refresh")
async def refresh_app_data(request: Request):
    state = get_state(request)
    await state.refresh()
    return app_data_snapshot(state)


@router.get("/erp-data")
async def read_erp_data(request: Request):
    state = get_state(request)
    return ErpData(
        customers=state.customers,
        quotations=state.erp.quotations,
        orders=state.erp.orders,
        inventory=state.erp.inventory,
        shipments=state.erp.shipments,
    ).to_api()


# ============================================================================
# Projects
# ============================================================================

@router.post("/projects", status_code=201)
async def create_project(request: Request, data: ProjectCreate):
    project = await get_state(request).add_project(data)
    return project.to_api()


@router.put("/projects/{project_id}")
async def update_project(request: Request, project_id: str, project: Project):
    _check_id(project_id, project.id)
    return (await get_state(request).update_project(project)).to_api()


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(request: Request, project_id: str):
    await get_state(request).delete_project(project_id)
    return Response(status_code=204)


@router.get("/projects/{project_id}/tasks")
async def project_tasks(request: Request, project_id: str):
    return [task.to_api() for task in get_state(request).tasks_for_project(project_id)]


# ============================================================================
# Tasks & timers
# ============================================================================

@router.post("/tasks", status_code=201)
async def create_task(request: Request, data: TaskCreateRequest):
    task = await get_state(request).add_task(data, data.actor_id)
    return task.to_api()


@router.put("/tasks/{task_id}")
async def update_task(request: Request, task_id: str, task: Task):
    _check_id(task_id, task.id)
    return (await get_state(request).update_task(task)).to_api()


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(request: Request, task_id: str):
    await get_state(request).delete_task(task_id)
    return Response(status_code=204)


@router.post("/tasks/{task_id}/timer/start")
async def start_timer(request: Request, task_id: str, body: TimerRequest):
    return (await get_state(request).start_timer(task_id, body.worker_id)).to_api()


@router.post("/tasks/{task_id}/timer/pause")
async def pause_timer(request: Request, task_id: str, body: TimerRequest):
    return (await get_state(request).pause_timer(task_id, body.worker_id)).to_api()


@router.post("/tasks/{task_id}/timer/end-day")
async def end_day(request: Request, task_id: str, body: EndDayRequest):
    task = await get_state(request).end_day_and_add_notes(task_id, body.worker_id, body.notes)
    return task.to_api()


@router.post("/tasks/{task_id}/timer/end")
async def end_timer(request: Request, task_id: str):
    return (await get_state(request).end_timer(task_id)).to_api()


# ============================================================================
# Users
# ============================================================================

@router.post("/users", status_code=201)
async def create_user(request: Request, data: UserCreate):
    return (await get_state(request).add_user(data)).to_api()


@router.put("/users/{user_id}")
async def update_user(request: Request, user_id: str, user: User):
    _check_id(user_id, user.id)
    return (await get_state(request).update_user(user)).to_api()


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(request: Request, user_id: str):
    await get_state(request).delete_user(user_id)
    return Response(status_code=204)


@router.get("/workers/{worker_id}/tasks")
async def worker_tasks(request: Request, worker_id: str):
    return [task.to_api() for task in get_state(request).tasks_for_worker(worker_id)]


# ============================================================================
# Recycle bin
# ============================================================================

@router.post("/recycle-bin/{item_type}/{item_id}/restore", status_code=204)
async def restore_item(request: Request, item_type: ItemType, item_id: str):
    state = get_state(request)
    restore = {
        ItemType.PROJECT: state.restore_project,
        ItemType.TASK: state.restore_task,
        ItemType.USER: state.restore_user,
    }[item_type]
    await restore(item_id)
    return Response(status_code=204)


@router.delete("/recycle-bin/{item_type}/{item_id}", status_code=204)
async def permanently_delete_item(request: Request, item_type: ItemType, item_id: str):
    state = get_state(request)
    remove = {
        ItemType.PROJECT: state.permanently_delete_project,
        ItemType.TASK: state.permanently_delete_task,
        ItemType.USER: state.permanently_delete_user,
    }[item_type]
    await remove(item_id)
    return Response(status_code=204)


# ============================================================================
# Audit log & settings
# ============================================================================

@router.post("/audit-logs", status_code=201)
async def add_audit_log(request: Request, data: AuditLogCreate):
    return (await get_state(request).add_audit_log(data)).to_api()


@router.put("/settings/timezone")
async def update_timezone(request: Request, body: TimezoneUpdate):
    state = get_state(request)
    await state.update_timezone(body.timezone)
    return state.integrations.to_api()


# ============================================================================
# CRM & ERP
# ============================================================================

@router.get("/customers")
async def list_customers(request: Request):
    return [customer.to_api() for customer in get_state(request).customers]


@router.post("/customers", status_code=201)
async def create_customer(request: Request, data: CustomerCreate):
    return (await get_state(request).erp.add_customer(data)).to_api()


@router.put("/customers/{customer_id}")
async def update_customer(request: Request, customer_id: str, customer: Customer):
    _check_id(customer_id, customer.id)
    return (await get_state(request).erp.update_customer(customer)).to_api()


@router.delete("/customers/{customer_id}", status_code=204)
async def archive_customer(request: Request, customer_id: str):
    await get_state(request).erp.archive_customer(customer_id)
    return Response(status_code=204)


@router.post("/quotations", status_code=201)
async def create_quotation(request: Request, data: QuotationCreate):
    return (await get_state(request).erp.add_quotation(data)).to_api()


@router.put("/quotations/{quotation_id}")
async def update_quotation(request: Request, quotation_id: str, quotation: Quotation):
    _check_id(quotation_id, quotation.id)
    return (await get_state(request).erp.update_quotation(quotation)).to_api()


@router.put("/quotations/{quotation_id}/status")
async def update_quotation_status(request: Request, quotation_id: str, body: QuotationStatusUpdate):
    return (await get_state(request).update_quotation_status(quotation_id, body.status)).to_api()


@router.get("/quotations/{quotation_id}/totals")
async def quotation_totals(request: Request, quotation_id: str):
    return (await get_state(request).erp.totals_for(quotation_id)).to_api()


@router.post("/quotations/{quotation_id}/convert", status_code=201)
async def convert_quotation(request: Request, quotation_id: str, body: Optional[ConvertQuotationRequest] = None):
    user_id = body.user_id if body else None
    return (await get_state(request).erp.convert_quotation_to_order(quotation_id, user_id)).to_api()


@router.put("/orders/{order_id}/status")
async def update_order_status(request: Request, order_id: str, body: OrderStatusUpdate):
    order = await get_state(request).erp.update_order_status(order_id, body.status, body.user_id)
    return order.to_api()


@router.post("/shipments", status_code=201)
async def create_shipment(request: Request, data: ShipmentCreate, user_id: Optional[str] = None):
    return (await get_state(request).erp.add_shipment(data, user_id)).to_api()


@router.post("/inventory", status_code=201)
async def create_inventory_item(request: Request, data: InventoryItemCreate):
    return (await get_state(request).erp.add_inventory_item(data)).to_api()


# ============================================================================
# Authentication
# ============================================================================

@router.post("/auth/login")
async def login(request: Request, body: LoginRequest):
    user = await get_auth(request).authenticate(body.name, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid name or password")
    return user.to_api()


@router.post("/auth/password-reset", status_code=202)
async def request_password_reset(request: Request, body: PasswordResetRequest):
    """Always 202 so the response does not reveal whether the email exists."""
    token = await get_auth(request).request_password_reset(body.email)
    response = {"status": "accepted"}
    if settings.debug and token:
        # No mail transport is configured; debug builds hand the token back directly
        response["token"] = token
    return response


@router.post("/auth/password-reset/confirm")
async def confirm_password_reset(request: Request, body: PasswordResetConfirm):
    user = await get_auth(request).reset_password(body.token, body.new_password)
    return {"status": "ok", "userId": user.id}
