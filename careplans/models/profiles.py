"""SQLModel declaration for professional profiles."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlmodel import Field

from .base import BaseModel, utcnow


class ProfileRole(str, Enum):
    """Enumerates the supported profile roles."""

    ADMIN = "admin"
    NORMAL = "normal"


class Profile(BaseModel, table=True):
    """Represents a healthcare professional using the tracker."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=36,
    )
    username: str = Field(max_length=200, index=True, unique=True)
    full_name: str | None = Field(default=None, max_length=200)
    unit: str | None = Field(default=None, max_length=200)
    team: str | None = Field(default=None, max_length=200)
    micro_area: str | None = Field(default=None, max_length=200)
    role: ProfileRole = Field(default=ProfileRole.NORMAL, sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"nullable": False}
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"nullable": False}
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.username
