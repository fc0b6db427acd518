"""SQLModel declaration for administrator-managed vocabularies."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from .base import BaseModel, utcnow


class OptionType(str, Enum):
    """Controlled vocabularies backing plan fields and filters."""

    AXIS = "axis"
    CARE_LINE = "care_line"
    SUPPORTER = "supporter"
    CATEGORY = "category"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class ConfigOption(BaseModel, table=True):
    """A single label within a controlled vocabulary."""

    __tablename__ = "config_option"
    __table_args__ = (
        UniqueConstraint("type", "label", name="uq_config_option_type_label"),
    )

    id: int | None = Field(default=None, primary_key=True)
    type: OptionType = Field(sa_column_kwargs={"nullable": False}, index=True)
    label: str = Field(max_length=200)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"nullable": False}
    )
