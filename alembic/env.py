"""Alembic environment for the care plan schema."""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlmodel import SQLModel

# Ensure the application package is importable when Alembic runs standalone.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from careplans.core.config import settings
from careplans.core.db import import_models, make_engine
from careplans.core.logging_config import setup_logging

import_models()

config = context.config

if config.config_file_name is not None and config.get_section("loggers"):
    fileConfig(config.config_file_name)
else:
    setup_logging()

config.set_main_option("sqlalchemy.url", settings.db_url)

target_metadata = SQLModel.metadata

# SQLite cannot ALTER most constraints in place.
IS_SQLITE = settings.db_url.startswith("sqlite")
COMMON_CONFIG = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "render_as_batch": IS_SQLITE,
}


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""

    context.configure(
        url=settings.db_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMMON_CONFIG,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations against the configured database."""

    connectable = make_engine(settings.db_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **COMMON_CONFIG)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
