"""Turn store failures into user-facing error messages."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _reason(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original or exc).splitlines()[0]


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and raise an HTTP error reading ``Failed to <action>: <reason>``.

    Business-rule ``ValueError``s become 400s with their own message.
    """
    try:
        yield
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity error while trying to %s: %s", action, _reason(exc))
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Failed to {action}: {_reason(exc)}",
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Store error while trying to %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {_reason(exc)}",
        ) from exc


def not_found(label: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
