"""
Unit tests for row-to-object transformers and colour utilities.
"""

import pytest
from datetime import date, datetime

from src.database.models import ProjectDB, TaskDB, UserDB, AuditLogDB, CustomerDB
from src.database.transformers import (
    project_from_row,
    task_from_row,
    user_from_row,
    audit_log_from_row,
    customer_from_row,
    color_columns,
    active_timers_to_column,
)
from src.models import TaskStatus, TimerState, UserRole, AuditAction, UNKNOWN_CLIENT, UNKNOWN_USER
from src.utils.colors import rgb_to_hex, hex_to_rgb, text_color_for_background


# ============================================================
# COLOURS
# ============================================================

@pytest.mark.parametrize("rgb", [(0, 0, 0), (255, 255, 255), (1, 2, 3), (16, 128, 254), (171, 205, 239)])
def test_color_round_trip(rgb):
    assert hex_to_rgb(rgb_to_hex(*rgb)) == rgb


def test_rgb_to_hex_zero_pads_each_channel():
    assert rgb_to_hex(1, 10, 255) == "#010aff"


def test_rgb_to_hex_rejects_out_of_range():
    with pytest.raises(ValueError):
        rgb_to_hex(256, 0, 0)


def test_hex_to_rgb_accepts_missing_hash():
    assert hex_to_rgb("FF8000") == (255, 128, 0)


@pytest.mark.parametrize("value", ["", "#12345", "#GGGGGG", "1234567"])
def test_hex_to_rgb_rejects_malformed(value):
    with pytest.raises(ValueError):
        hex_to_rgb(value)


def test_text_color_for_background():
    assert text_color_for_background("#ffffff") == "#000000"
    assert text_color_for_background("#000000") == "#FFFFFF"
    assert text_color_for_background("not a colour") == "#000000"


def test_color_columns_splits_channels():
    assert color_columns("#0a141e") == {"color_red": 10, "color_green": 20, "color_blue": 30}


# ============================================================
# ROWS
# ============================================================

def test_project_from_row_with_customer():
    row = ProjectDB(
        project_id="p-1", name="Tower", marking="TWR", client_id="c-1",
        color_red=255, color_green=0, color_blue=16,
        start_date=date(2026, 2, 1), end_date=date(2026, 4, 1),
    )

    project = project_from_row(row, "Acme")

    assert project.id == "p-1"
    assert project.marking_color == "#ff0010"
    assert project.client == "Acme"
    assert project.client_id == "c-1"


def test_project_from_row_without_customer_uses_sentinel():
    row = ProjectDB(project_id="p-2", name="Orphan", color_red=0, color_green=0, color_blue=0)

    project = project_from_row(row, None)

    assert project.client == UNKNOWN_CLIENT


def test_task_from_row_maps_renamed_columns():
    row = TaskDB(
        task_id="t-1", name="Walls", project_id="p-1",
        task_type="wall", mold_type="steel", number_molds=4,
        start_date=date(2026, 1, 1), end_date=date(2026, 1, 9),
        status="In Progress", timer_state="running",
        active_timers={"w-1": {"startTime": 1700000000000}},
    )

    task = task_from_row(row)

    assert task.deadline == date(2026, 1, 9)
    assert task.task_type_id == "wall"
    assert task.mold_type_id == "steel"
    assert task.number_of_molds == 4
    assert task.status is TaskStatus.IN_PROGRESS
    assert task.timer_state is TimerState.RUNNING
    assert task.active_timers["w-1"].start_time == 1700000000000
    assert task.assigned_worker_ids == []
    assert task.daily_time_spent == {}


def test_task_from_row_defaults_missing_timers():
    row = TaskDB(task_id="t-2", name="Roof", project_id="p-1", status="Planned", timer_state="stopped")

    assert task_from_row(row).active_timers == {}


def test_active_timers_round_trip_through_column():
    row = TaskDB(
        task_id="t-3", name="Beams", project_id="p-1", status="Planned", timer_state="running",
        active_timers={"w-9": {"startTime": 42}},
    )
    task = task_from_row(row)

    assert active_timers_to_column(task) == {"w-9": {"startTime": 42}}


def test_user_from_row_never_exposes_password():
    row = UserDB(
        user_id="u-1", name="Petr", email="petr@example.com", password_hash="$2b$04$hash",
        role="Worker", efficiency_coeff=0.9, two_factor=True,
    )

    user = user_from_row(row)
    payload = user.to_api()

    assert user.efficiency == 0.9
    assert user.is_two_factor_enabled is True
    assert user.role is UserRole.WORKER
    assert "password" not in str(payload).lower()
    assert "twoFactorSecret" not in payload


def test_audit_log_from_row_defaults_actor_name():
    row = AuditLogDB(
        au_id="a-1", timestamp=datetime(2026, 1, 1, 8, 0), user_id=None,
        event="delete_task", content="Pour slab", subject_type="Task", subject_id="t-1",
    )

    log = audit_log_from_row(row, None)

    assert log.actor_name == UNKNOWN_USER
    assert log.action is AuditAction.DELETE_TASK
    assert log.target_name == "Pour slab"
    assert log.actor_id is None


def test_customer_from_row_defaults_tags():
    row = CustomerDB(customer_id="c-1", customer_name="Acme", tags=None, status="lead")

    customer = customer_from_row(row)

    assert customer.tags == []
    assert customer.name == "Acme"
    assert customer.project_count == 0
