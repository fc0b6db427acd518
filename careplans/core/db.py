"""Database engine and session helpers."""

from __future__ import annotations

import importlib
from collections.abc import Generator
from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from careplans.core.config import settings

# Modules declaring tables; importing them registers SQLModel metadata.
MODEL_MODULES = (
    "careplans.models.profiles",
    "careplans.models.plans",
    "careplans.models.options",
    "careplans.models.activity",
)


def make_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine, allowing SQLite connections to cross threads."""

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, **kwargs)


def import_models() -> None:
    for name in MODEL_MODULES:
        importlib.import_module(name)


def init_db(bind: Engine) -> None:
    """Create any missing tables on ``bind`` without running migrations."""

    import_models()
    SQLModel.metadata.create_all(bind)


engine = make_engine(settings.db_url)


def get_session() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    with Session(engine) as session:
        yield session
