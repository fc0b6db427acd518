"""SQLModel declarations for care plans and related metadata."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Column, ForeignKey, String
from sqlmodel import Field

from .base import BaseModel, utcnow

QUALIFICATION_AXIS = "QUALIFICATION"
WORK_PROCESS_AXIS = "WORK PROCESS"


class PlanStatus(str, Enum):
    """Supported life-cycle stages for a plan."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SUSPENDED = "suspended"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class EvaluationFrequency(str, Enum):
    """Cadence at which a plan (or a work-process cycle) is evaluated."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class Plan(BaseModel, table=True):
    """A care-improvement initiative registered by a professional."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=36,
    )
    owner_id: str = Field(
        sa_column=Column(
            String(length=36), ForeignKey("profile.id", ondelete="CASCADE"), nullable=False
        )
    )
    axis: str = Field(max_length=200, index=True)
    care_line: str = Field(max_length=200, index=True)
    status: PlanStatus = Field(
        default=PlanStatus.PLANNED, sa_column_kwargs={"nullable": False}
    )
    supporters: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    categories: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    summary: str = Field(default="", max_length=2000)
    goal: str = Field(default="", max_length=500)
    evaluation_frequency: EvaluationFrequency = Field(
        default=EvaluationFrequency.MONTHLY, sa_column_kwargs={"nullable": False}
    )
    cycle: EvaluationFrequency | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=2000)
    start_date: date | None = Field(default=None)
    end_date: date | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"nullable": False}
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"nullable": False}
    )
    completed_at: datetime | None = Field(default=None)
