"""Commit helpers translating storage failures into API errors."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_UNIQUE_MARKERS = ("unique constraint", "duplicate key", "uniqueviolation")
_FOREIGN_KEY_MARKERS = ("foreign key constraint", "foreignkeyviolation", "violates foreign key")


def _message(exc: IntegrityError) -> str:
    return f"{type(exc.orig).__name__} {exc.orig}".lower()


def is_unique_violation(exc: IntegrityError) -> bool:
    return any(marker in _message(exc) for marker in _UNIQUE_MARKERS)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    return any(marker in _message(exc) for marker in _FOREIGN_KEY_MARKERS)


@contextmanager
def storage_errors(db: Session, *, detail: str) -> Iterator[None]:
    """Roll back before any error leaves the block.

    Uniqueness conflicts are re-raised as :class:`IntegrityError` so callers can
    turn them into a no-op or a re-read. Referential and check faults become 400,
    other storage failures 500. Row security violations propagate unchanged.
    """

    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            raise
        if not is_foreign_key_violation(exc):
            logger.warning("Integrity failure (%s): %s", detail, exc.orig)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database failure: %s", detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc
    except Exception:
        db.rollback()
        raise


def flush_or_raise(db: Session, *, detail: str) -> None:
    with storage_errors(db, detail=detail):
        db.flush()


def commit_or_raise(db: Session, *, detail: str, refresh: tuple = ()) -> None:
    with storage_errors(db, detail=detail):
        db.commit()
    for instance in refresh:
        db.refresh(instance)


__all__ = ["commit_or_raise", "flush_or_raise", "is_foreign_key_violation", "is_unique_violation", "storage_errors"]
