"""Environment-driven configuration for the affiliate desk."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

DEFAULT_SQLITE_PATH = Path("data/affiliate_desk.db")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings read once from the process environment."""

    database_url: str
    environment: str
    admin_email: str
    admin_password: str
    admin_name: str
    midpoint_rate: Decimal
    log_level: str
    cookie_secure: bool

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_settings() -> Settings:
    database_url = os.getenv("AFFDESK_DATABASE_URL", f"sqlite:///{DEFAULT_SQLITE_PATH}")
    return Settings(
        database_url=database_url,
        environment=os.getenv("ENVIRONMENT", "development").strip().lower(),
        admin_email=os.getenv("AFFDESK_ADMIN_EMAIL", "admin@affiliate.local").strip().lower(),
        admin_password=os.getenv("AFFDESK_ADMIN_PASSWORD", "admin12345"),
        admin_name=os.getenv("AFFDESK_ADMIN_NAME", "Super Admin"),
        midpoint_rate=Decimal(os.getenv("AFFDESK_MIDPOINT_RATE", "6.5")),
        log_level=os.getenv("AFFDESK_LOG_LEVEL", "INFO").upper(),
        # Secure cookies only make sense behind HTTPS, which production Postgres deployments use
        cookie_secure=_env_flag("AFFDESK_COOKIE_SECURE", database_url.startswith("postgresql")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=level or get_settings().log_level, format=LOG_FORMAT)
