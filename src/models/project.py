"""Project data model."""

from datetime import date, datetime
from typing import Optional
from pydantic import Field, computed_field, field_validator, model_validator

from .base import CamelModel
from ..utils.colors import hex_to_rgb, rgb_to_hex, text_color_for_background

UNKNOWN_CLIENT = "Unknown Client"


class Project(CamelModel):
    """A project for one client, marked on boards with a label and colour."""
    id: str
    name: str
    marking: Optional[str] = None
    client_id: Optional[str] = None
    marking_color: str = "#000000"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    client: str = UNKNOWN_CLIENT  # denormalized customer name

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @field_validator("marking_color")
    @classmethod
    def normalize_color(cls, v: str) -> str:
        return rgb_to_hex(*hex_to_rgb(v))

    @computed_field
    @property
    def marking_text_color(self) -> str:
        """Readable label colour on top of the marking colour."""
        return text_color_for_background(self.marking_color)


class ProjectCreate(CamelModel):
    """Input for creating a project. Dates are checked only here."""
    name: str = Field(..., min_length=1, max_length=255)
    marking: Optional[str] = Field(None, max_length=100)
    client_id: Optional[str] = None
    marking_color: str = "#000000"
    start_date: date
    end_date: date

    @field_validator("marking_color")
    @classmethod
    def normalize_color(cls, v: str) -> str:
        return rgb_to_hex(*hex_to_rgb(v))

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self
