"""Task data model for the planner."""

from datetime import date, datetime
from typing import Optional, List, Dict
from pydantic import Field

from .base import CamelModel
from .enums import TaskStatus, TimerState


class DailyTimeRecord(CamelModel):
    """
    Time and note one worker logged on one day.

    `time` is in seconds. Either part may be missing in storage: a day with
    only a note reads back with time 0, a day with only time has no notes.
    """
    time: float = 0.0
    notes: Optional[str] = None


class ActiveTimer(CamelModel):
    """A worker's running timer; start_time is epoch milliseconds."""
    start_time: int


# worker id -> ISO date -> record
DailyTimeSpent = Dict[str, Dict[str, DailyTimeRecord]]


class Task(CamelModel):
    """
    A task as the application sees it.

    assigned_worker_ids and daily_time_spent are not stored on the task row;
    they are rebuilt from the taskworker, taskdailytime and tasknote tables.
    """
    id: str
    name: str
    project_id: str
    task_type_id: Optional[str] = None
    mold_type_id: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    status: TaskStatus = TaskStatus.PLANNED
    timer_state: TimerState = TimerState.STOPPED
    number_of_molds: Optional[int] = None

    assigned_worker_ids: List[str] = Field(default_factory=list)
    daily_time_spent: Optional[DailyTimeSpent] = None  # None on update: leave time and notes untouched
    active_timers: Dict[str, ActiveTimer] = Field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class TaskCreate(CamelModel):
    """Input for creating a task. `notes` becomes the first daily note."""
    name: str = Field(..., min_length=1, max_length=500)
    project_id: str
    task_type_id: Optional[str] = None
    mold_type_id: Optional[str] = None
    start_date: date
    deadline: Optional[date] = None
    number_of_molds: Optional[int] = Field(None, ge=0)
    assigned_worker_ids: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
