"""
Unit tests for the HTTP API.

The lifespan is not run; AppState and AuthService on app.state are mocks.
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock, Mock, patch

from fastapi.testclient import TestClient

from src.database.exceptions import (
    DatabaseConstraintError,
    DatabaseOperationError,
    EntityNotFoundError,
    PasswordResetError,
    ValidationError,
)
from src.main import create_app
from src.models import AppIntegrations, Project, QuotationTotals, Task, User


@pytest.fixture
def state():
    state = Mock()
    state.projects = [Project(id="p-1", name="Bridge", marking_color="#ff0000")]
    state.tasks = [Task(id="t-1", name="Slab", project_id="p-1", assigned_worker_ids=["w-1"])]
    state.users = [User(id="w-1", name="Jana")]
    state.audit_logs = []
    state.integrations = AppIntegrations()
    state.customers = []
    state.error = None
    for name in ("refresh", "add_task", "update_task", "delete_task", "start_timer",
                 "permanently_delete_project", "restore_task", "update_timezone"):
        setattr(state, name, AsyncMock())
    state.erp = Mock()
    state.erp.quotations = []
    state.erp.orders = []
    state.erp.inventory = []
    state.erp.shipments = []
    state.erp.totals_for = AsyncMock()
    state.erp.add_shipment = AsyncMock()
    return state


@pytest.fixture
def auth():
    auth = Mock()
    auth.authenticate = AsyncMock()
    auth.request_password_reset = AsyncMock()
    auth.reset_password = AsyncMock()
    return auth


@pytest.fixture
def client(state, auth):
    app = create_app()
    app.state.app_state = state
    app.state.auth = auth
    return TestClient(app)


# ============================================================
# HEALTH & AGGREGATES
# ============================================================

def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health_without_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"]["status"] == "not_configured"


def test_app_data_uses_camel_case(client):
    body = client.get("/api/app-data").json()

    assert body["projects"][0]["markingColor"] == "#ff0000"
    assert body["tasks"][0]["assignedWorkerIds"] == ["w-1"]
    assert body["integrations"]["timezone"] == "Asia/Kolkata"
    assert "auditLogs" in body


def test_refresh_failure_maps_to_502(client, state):
    state.refresh.side_effect = DatabaseOperationError("Failed to fetch Users", table="users", operation="select")

    response = client.post("/api/app-data/refresh")

    assert response.status_code == 502
    assert "Users" in response.json()["detail"]


def test_erp_data(client):
    body = client.get("/api/erp-data").json()

    assert set(body) == {"customers", "quotations", "orders", "inventory", "shipments"}


# ============================================================
# TASKS
# ============================================================

def test_create_task(client, state):
    state.add_task.return_value = Task(id="t-9", name="Columns", project_id="p-1", assigned_worker_ids=["w-1"])

    response = client.post("/api/tasks", json={
        "name": "Columns",
        "projectId": "p-1",
        "startDate": "2026-01-05",
        "assignedWorkerIds": ["w-1"],
        "actorId": "u-1",
    })

    assert response.status_code == 201
    assert response.json()["id"] == "t-9"
    data, actor_id = state.add_task.call_args.args
    assert data.start_date == date(2026, 1, 5)
    assert actor_id == "u-1"


def test_create_task_requires_name(client):
    response = client.post("/api/tasks", json={"projectId": "p-1", "startDate": "2026-01-05", "actorId": "u-1"})

    assert response.status_code == 422


def test_update_task_id_mismatch(client, state):
    response = client.put("/api/tasks/t-1", json={"id": "t-2", "name": "Slab", "projectId": "p-1"})

    assert response.status_code == 422
    state.update_task.assert_not_awaited()


def test_update_missing_task_is_404(client, state):
    state.update_task.side_effect = EntityNotFoundError("Task t-1 not found")

    response = client.put("/api/tasks/t-1", json={"id": "t-1", "name": "Slab", "projectId": "p-1"})

    assert response.status_code == 404


def test_delete_task(client, state):
    assert client.delete("/api/tasks/t-1").status_code == 204
    state.delete_task.assert_awaited_once_with("t-1")


def test_start_timer(client, state):
    state.start_timer.return_value = Task(id="t-1", name="Slab", project_id="p-1", timer_state="running")

    response = client.post("/api/tasks/t-1/timer/start", json={"workerId": "w-1"})

    assert response.status_code == 200
    assert response.json()["timerState"] == "running"
    state.start_timer.assert_awaited_once_with("t-1", "w-1")


# ============================================================
# RECYCLE BIN & SETTINGS
# ============================================================

def test_permanent_delete_dispatches_on_item_type(client, state):
    assert client.delete("/api/recycle-bin/project/p-1").status_code == 204
    state.permanently_delete_project.assert_awaited_once_with("p-1")


def test_restore_task(client, state):
    assert client.post("/api/recycle-bin/task/t-1/restore").status_code == 204
    state.restore_task.assert_awaited_once_with("t-1")


def test_unknown_item_type_rejected(client):
    assert client.delete("/api/recycle-bin/invoice/x-1").status_code == 422


def test_constraint_violation_maps_to_409(client, state):
    state.permanently_delete_project.side_effect = DatabaseConstraintError("duplicate", table="project")

    assert client.delete("/api/recycle-bin/project/p-1").status_code == 409


def test_invalid_timezone_rejected(client, state):
    response = client.put("/api/settings/timezone", json={"timezone": "Mars/Olympus"})

    assert response.status_code == 422
    state.update_timezone.assert_not_awaited()


# ============================================================
# ERP
# ============================================================

def test_quotation_totals(client, state):
    state.erp.totals_for.return_value = QuotationTotals(subtotal=25, tax=2, grand_total=27)

    body = client.get("/api/quotations/q-1/totals").json()

    assert body == {"subtotal": 25.0, "tax": 2.0, "grandTotal": 27.0}


def test_rejected_shipment_is_422(client, state):
    state.erp.add_shipment.side_effect = ValidationError("Order SO-2026-0001 is Created")

    response = client.post("/api/shipments", json={
        "orderId": "o-1", "dispatchedAt": "2026-03-01T09:00:00Z", "vehicleId": "TRK-7",
    })

    assert response.status_code == 422
    assert "Created" in response.json()["detail"]


# ============================================================
# AUTH
# ============================================================

def test_login_failure_is_401(client, auth):
    auth.authenticate.return_value = None

    response = client.post("/api/auth/login", json={"name": "Jana", "password": "nope"})

    assert response.status_code == 401


def test_login_success_hides_secrets(client, auth):
    auth.authenticate.return_value = User(id="w-1", name="Jana", two_factor_secret="SECRET")

    body = client.post("/api/auth/login", json={"name": "Jana", "password": "ok"}).json()

    assert body["id"] == "w-1"
    assert "SECRET" not in str(body)


@pytest.mark.parametrize("token", [None, "tok"])
def test_password_reset_request_always_accepted(client, auth, token):
    auth.request_password_reset.return_value = token

    with patch("src.web.routes.settings") as settings:
        settings.debug = False
        response = client.post("/api/auth/password-reset", json={"email": "jana@example.com"})

    assert response.status_code == 202
    assert response.json() == {"status": "accepted"}


def test_bad_reset_token_is_400(client, auth):
    auth.reset_password.side_effect = PasswordResetError("Invalid or expired reset token")

    response = client.post("/api/auth/password-reset/confirm", json={
        "token": "x", "newPassword": "long-enough-password",
    })

    assert response.status_code == 400


def test_unexpected_error_is_500(state, auth):
    app = create_app()
    app.state.app_state = state
    app.state.auth = auth
    state.delete_task.side_effect = RuntimeError("boom")

    response = TestClient(app, raise_server_exceptions=False).delete("/api/tasks/t-1")

    assert response.status_code == 500
