from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.errors import AllocationConflictError
from app.models import Lead, Quote
from app.services import conversions
from app.services.public_ids import (
    allocate_public_id,
    next_sequence,
    period_prefix,
    propagate_public_ids,
)


def test_period_prefix_uses_utc_month():
    assert period_prefix(datetime(2025, 6, 30, 23, 59, tzinfo=UTC)) == "202506"
    # 2025-07-01 01:00 at +05:00 is still June in UTC.
    plus_five = timezone(timedelta(hours=5))
    assert period_prefix(datetime(2025, 7, 1, 1, 0, tzinfo=plus_five)) == "202506"
    assert period_prefix(datetime(2025, 1, 2)) == "202501"


def test_next_sequence():
    assert next_sequence(None) == 1
    assert next_sequence("2025060041") == 42
    assert next_sequence("garbage") == 1


def test_first_identifier_of_month(db_session, customer):
    assert allocate_public_id(db_session, datetime(2025, 6, 1, tzinfo=UTC)) == "2025060001"


def test_identifiers_are_sequential_within_month(make_lead):
    first = make_lead()
    second = make_lead()
    third = make_lead()

    assert [first.public_id, second.public_id, third.public_id] == [
        "2025060001",
        "2025060002",
        "2025060003",
    ]


def test_each_month_has_its_own_sequence(make_lead):
    make_lead(created_at=datetime(2025, 6, 15, tzinfo=UTC))
    july = make_lead(created_at=datetime(2025, 7, 1, tzinfo=UTC))

    assert july.public_id == "2025070001"


def test_identifiers_are_unique_across_tenants(make_lead, other_customer):
    first = make_lead()
    second = make_lead(customer_obj=other_customer)

    assert first.public_id == "2025060001"
    assert second.public_id == "2025060002"


def test_allocation_retries_after_conflict(db_session, make_lead):
    make_lead()
    stale_reads = iter([None, "2025060001"])

    with patch(
        "app.services.public_ids._current_max_public_id",
        side_effect=lambda _db, _prefix: next(stale_reads),
    ):
        lead = make_lead()

    assert lead.public_id == "2025060002"
    assert db_session.query(Lead).count() == 2


def test_allocation_gives_up_after_max_attempts(db_session, make_lead):
    make_lead()

    with patch("app.services.public_ids._current_max_public_id", return_value=None):
        with pytest.raises(AllocationConflictError) as exc:
            make_lead()

    assert exc.value.code == "public_id_conflict"
    assert exc.value.retryable is True
    assert db_session.query(Lead).count() == 1


def test_sequence_exhaustion_never_wraps(db_session, customer):
    with patch("app.services.public_ids._current_max_public_id", return_value="2025069999"):
        with pytest.raises(AllocationConflictError) as exc:
            allocate_public_id(db_session, datetime(2025, 6, 1, tzinfo=UTC))

    assert exc.value.code == "public_id_sequence_exhausted"


def test_propagate_public_ids_repairs_drift(db_session, lead):
    quote = conversions.convert_lead_to_quote(db_session, lead.id)
    quote.public_id = "1999010001"
    db_session.commit()

    counts = propagate_public_ids(db_session, dry_run=True)
    assert counts == {"quotes": 1, "orders": 0, "dispatches": 0}
    assert db_session.get(Quote, quote.id).public_id == "1999010001"

    counts = propagate_public_ids(db_session)
    assert counts["quotes"] == 1
    db_session.expire_all()
    assert db_session.get(Quote, quote.id).public_id == lead.public_id
