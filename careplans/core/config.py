"""Application configuration using environment-aware settings."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration pulled from environment variables."""

    session_secret: str = os.environ.get("CP_SESSION_SECRET", "dev-secret-change-me")
    db_url: str = os.environ.get("CP_DB_URL", "sqlite:///./care_plans.db")
    default_page_size: int = int(os.environ.get("CP_DEFAULT_PAGE_SIZE", "10"))
    log_level: str = os.environ.get("CP_LOG_LEVEL", "INFO")
    admin_access_code: str = os.environ.get("CP_ADMIN_ACCESS_CODE", "DAPS-ADMIN")
    member_access_code: str = os.environ.get("CP_MEMBER_ACCESS_CODE", "DAPS-USER")


settings = Settings()

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
