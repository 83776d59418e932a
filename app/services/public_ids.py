"""Public identifier allocation.

A public identifier is ``YYYYMM`` (the lead's creation month, UTC) followed by
a zero-padded four digit sequence that is unique within the month. Only leads
allocate; quotes, orders and dispatches copy their lead's identifier.

The sequence is derived from the greatest identifier already stored for the
month. Two concurrent lead inserts can compute the same value; the unique
index on ``leads.public_id`` rejects the loser, which re-reads and retries.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AllocationConflictError
from app.models.shipping import Dispatch, Lead, Order, Quote
from app.services.observability import PUBLIC_ID_RETRIES

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEQUENCE_WIDTH = 4
MAX_SEQUENCE = 10**SEQUENCE_WIDTH - 1
PUBLIC_ID_LENGTH = 6 + SEQUENCE_WIDTH

_PUBLIC_ID_RE = re.compile(r"^(\d{6})(\d{4})$")


def period_prefix(timestamp: datetime) -> str:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC).strftime("%Y%m")


def format_public_id(prefix: str, sequence: int) -> str:
    return f"{prefix}{sequence:0{SEQUENCE_WIDTH}d}"


def _current_max_public_id(db: Session, prefix: str) -> str | None:
    return (
        db.query(func.max(Lead.public_id))
        .filter(Lead.public_id.like(f"{prefix}%"))
        .filter(func.length(Lead.public_id) == PUBLIC_ID_LENGTH)
        .scalar()
    )


def next_sequence(current_max: str | None) -> int:
    if not current_max:
        return 1
    match = _PUBLIC_ID_RE.match(current_max)
    if not match:
        return 1
    return int(match.group(2)) + 1


def allocate_public_id(db: Session, period_timestamp: datetime) -> str:
    prefix = period_prefix(period_timestamp)
    sequence = next_sequence(_current_max_public_id(db, prefix))
    if sequence > MAX_SEQUENCE:
        # Four digits per month is a hard format limit; never wrap.
        raise AllocationConflictError(
            code="public_id_sequence_exhausted",
            detail=f"No public identifiers left for period {prefix}",
        )
    return format_public_id(prefix, sequence)


def _is_public_id_conflict(exc: IntegrityError) -> bool:
    return "public_id" in str(exc.orig)


def insert_with_public_id(db: Session, build: Callable[[str], T], period_timestamp: datetime) -> T:
    """Allocate an identifier, build the row with it and flush it.

    ``build`` is called once per attempt with a fresh identifier. The insert
    runs inside a SAVEPOINT so a lost race only discards that attempt.
    """
    attempts = max(settings.public_id_max_attempts, 1)
    for attempt in range(1, attempts + 1):
        public_id = allocate_public_id(db, period_timestamp)
        record = build(public_id)
        try:
            with db.begin_nested():
                db.add(record)
                db.flush()
        except IntegrityError as exc:
            if not _is_public_id_conflict(exc):
                raise
            PUBLIC_ID_RETRIES.inc()
            logger.warning(
                "public_id_conflict public_id=%s attempt=%s/%s",
                public_id,
                attempt,
                attempts,
            )
            continue
        return record
    raise AllocationConflictError(
        code="public_id_conflict",
        detail=f"Could not allocate a public identifier after {attempts} attempts",
    )


def propagate_public_ids(db: Session, dry_run: bool = False) -> dict[str, int]:
    """Copy each lead's public identifier onto derived records that drifted."""
    updated = {"quotes": 0, "orders": 0, "dispatches": 0}

    def _repair(model, label: str):
        rows = (
            db.query(model, Lead.public_id)
            .join(Lead, model.lead_id == Lead.id)
            .filter(model.public_id != Lead.public_id)
            .all()
        )
        for row, lead_public_id in rows:
            if not dry_run:
                row.public_id = lead_public_id
        updated[label] = len(rows)

    _repair(Quote, "quotes")
    _repair(Order, "orders")
    _repair(Dispatch, "dispatches")

    if dry_run:
        db.rollback()
    elif any(updated.values()):
        db.commit()
    return updated
