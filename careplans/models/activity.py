"""SQLModel declaration for the activity log."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, ForeignKey, String
from sqlmodel import Field

from .base import BaseModel, utcnow


class ActivityLog(BaseModel, table=True):
    """Represents an action recorded in the activity log."""

    __tablename__ = "activity_log"

    id: int | None = Field(default=None, primary_key=True)
    timestamp: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"nullable": False}
    )
    profile_id: str | None = Field(
        default=None,
        sa_column=Column(String(length=36), ForeignKey("profile.id", ondelete="SET NULL")),
    )
    action: str = Field(max_length=200, index=True)
    entity_type: str = Field(max_length=100)
    entity_id: str = Field(max_length=200)
    details: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
