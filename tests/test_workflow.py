from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from app.errors import InvalidTransitionError
from app.logic import workflow
from app.models import DispatchStatus, LeadStatus, OrderStatus, PipelineEntity, QuoteStatus


def test_lead_moves_one_step_at_a_time():
    assert workflow.can_transition("lead", "lead", "quote") is True
    assert workflow.can_transition("lead", "quote", "order") is True
    assert workflow.can_transition("lead", "quote", "dispatch") is False
    assert workflow.can_transition("lead", "lead", "completed") is False


def test_lead_cancellation_from_any_open_state():
    for state in ("lead", "quote", "order", "dispatch"):
        assert workflow.can_transition(PipelineEntity.lead, state, LeadStatus.cancelled) is True
    assert workflow.can_transition("lead", "completed", "cancelled") is False
    assert workflow.can_transition("lead", "cancelled", "lead") is False


def test_accepts_enum_members_and_values():
    assert workflow.can_transition(PipelineEntity.quote, QuoteStatus.draft, "sent") is True
    assert workflow.can_transition("order", OrderStatus.signed, OrderStatus.in_progress) is True
    assert workflow.can_transition("dispatch", "assigned", DispatchStatus.in_transit) is True


def test_unknown_values_and_self_transitions_are_rejected():
    assert workflow.can_transition("invoice", "draft", "sent") is False
    assert workflow.can_transition("lead", "booked", "completed") is False
    assert workflow.can_transition("lead", "lead", "archived") is False
    assert workflow.can_transition("quote", "sent", "sent") is False


def test_quote_transitions():
    assert workflow.can_transition("quote", "sent", "rejected") is True
    assert workflow.can_transition("quote", "accepted", "expired") is True
    assert workflow.can_transition("quote", "draft", "accepted") is False
    assert workflow.can_transition("quote", "rejected", "accepted") is False


def test_order_change_request_cycle():
    assert workflow.can_transition("order", "pending_signature", "change_requested") is True
    assert workflow.can_transition("order", "change_requested", "pending_signature") is True
    assert workflow.can_transition("order", "change_requested", "signed") is False
    assert workflow.can_transition("order", "pending_signature", "in_progress") is False


def test_dispatch_is_linear():
    assert workflow.can_transition("dispatch", "in_transit", "delivered") is True
    assert workflow.can_transition("dispatch", "assigned", "delivered") is False
    assert workflow.can_transition("dispatch", "completed", "assigned") is False


def test_ensure_transition_raises():
    workflow.ensure_transition("lead", "lead", "quote")
    with pytest.raises(InvalidTransitionError) as exc:
        workflow.ensure_transition("lead", "cancelled", "quote")
    assert exc.value.code == "invalid_transition"
    assert exc.value.status_code == 409


def test_transition_sets_status():
    record = SimpleNamespace(status=LeadStatus.quote)
    workflow.transition("lead", record, "order")
    assert record.status == LeadStatus.order


def test_is_terminal():
    assert workflow.is_terminal("lead", "completed") is True
    assert workflow.is_terminal("lead", LeadStatus.cancelled) is True
    assert workflow.is_terminal("order", "cancelled") is True
    assert workflow.is_terminal("dispatch", "delivered") is False
    assert workflow.is_terminal("lead", "booked") is False


def test_quote_expiry_is_lazy():
    now = datetime(2025, 6, 15, tzinfo=UTC)
    past = now - timedelta(days=1)
    quote = SimpleNamespace(status=QuoteStatus.sent, valid_until=past)

    assert workflow.effective_quote_status(quote, now=now) == QuoteStatus.expired
    assert quote.status == QuoteStatus.sent


def test_quote_expiry_only_applies_to_sent_or_accepted():
    now = datetime(2025, 6, 15, tzinfo=UTC)
    past = now - timedelta(days=1)

    assert workflow.effective_quote_status(SimpleNamespace(status=QuoteStatus.draft, valid_until=past), now) == (
        QuoteStatus.draft
    )
    assert workflow.is_quote_expired(QuoteStatus.accepted, past, now) is True
    assert workflow.is_quote_expired(QuoteStatus.accepted, None, now) is False
    # Naive timestamps, as read back from SQLite, are treated as UTC.
    assert workflow.is_quote_expired(QuoteStatus.sent, past.replace(tzinfo=None), now) is True
