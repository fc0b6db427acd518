"""Shared base class and column defaults for the care plan tables."""

from datetime import datetime, timezone

from sqlmodel import SQLModel


def utcnow() -> datetime:
    """Return a naive UTC timestamp, the form every ``*_at`` column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel(SQLModel):
    """Base class for all SQLModel tables."""

    __abstract__ = True
