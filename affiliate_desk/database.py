"""Database configuration for the affiliate desk."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from affiliate_desk.config import DEFAULT_SQLITE_PATH, get_settings

logger = logging.getLogger(__name__)

DATABASE_URL = get_settings().database_url


def _create_engine(url: str):
    """Create a SQLAlchemy engine for the given URL, handling sqlite connect args."""
    if url.startswith("sqlite:///") and ":memory:" not in url:
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    new_engine = create_engine(url, connect_args=connect_args, future=True)
    if url.startswith("sqlite"):
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# In development an unreachable database (usually a hosted Postgres) falls back
# to the local SQLite file; every other environment fails at startup.
try:
    engine = _create_engine(DATABASE_URL)
    with engine.connect() as _conn:  # type: ignore[var-annotated]
        pass
except SQLAlchemyError as exc:  # pragma: no cover - environment dependent
    logger.warning("Could not connect to database at %r: %s", DATABASE_URL, exc)
    if not get_settings().is_development:
        raise
    DATABASE_URL = f"sqlite:///{DEFAULT_SQLITE_PATH}"
    logger.warning("Falling back to SQLite for local development at %s", DATABASE_URL)
    engine = _create_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def init_db() -> None:
    """Ensure database tables exist and seed the default superadmin."""

    from affiliate_desk import models  # noqa: F401  (import ensures model metadata is registered)
    from affiliate_desk.auth import User

    Base.metadata.create_all(bind=engine, checkfirst=True)

    settings = get_settings()
    session = SessionLocal()
    try:
        superadmins = session.query(User).filter(User.role == "superadmin").count()
        if superadmins == 0:
            admin_user = User.create_user(
                settings.admin_email,
                settings.admin_password,
                name=settings.admin_name,
                role="superadmin",
            )
            session.add(admin_user)
            session.commit()
            logger.info("Created default superadmin %s", settings.admin_email)
        else:
            logger.info("Superadmin already exists, skipping seed")
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not seed the default superadmin")
        raise
    finally:
        session.close()
