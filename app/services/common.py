from __future__ import annotations

import enum
import uuid
from contextlib import contextmanager

from sqlalchemy.orm import Query, Session

from app.errors import PipelineValidationError


def coerce_uuid(value) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise PipelineValidationError(code="invalid_id", detail=f"Invalid identifier: {value}")


def validate_enum(value, enum_cls: type[enum.Enum], label: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise PipelineValidationError(code=f"invalid_{label}", detail=f"Invalid {label}")


def apply_ordering(query: Query, order_by: str, order_dir: str, allowed_columns: dict) -> Query:
    if order_by not in allowed_columns:
        allowed = ", ".join(sorted(allowed_columns))
        raise PipelineValidationError(
            code="invalid_order_by",
            detail=f"Invalid order_by. Allowed: {allowed}",
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query: Query, limit: int, offset: int) -> Query:
    return query.limit(limit).offset(offset)


@contextmanager
def atomic(db: Session):
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
