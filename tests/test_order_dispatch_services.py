from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.errors import InvalidTransitionError, NotFoundError
from app.models import DispatchStatus, LeadStatus, OrderStatus
from app.schemas.shipping import ChangeOrderCreate, DispatchAdvance, DispatchUpdate, OrderSign
from app.services import conversions
from app.services import dispatches as dispatch_service
from app.services import orders as order_service


@pytest.fixture()
def order(db_session, lead):
    quote = conversions.convert_lead_to_quote(db_session, lead.id)
    return conversions.convert_quote_to_order(db_session, quote.id)


@pytest.fixture()
def dispatch(db_session, customer, order):
    order_service.orders.sign(db_session, customer.id, order.id, OrderSign(signature_data="sig"))
    return conversions.convert_order_to_dispatch(db_session, order.id)


# =============================================================================
# Orders
# =============================================================================


def test_send_contract_sets_flag_and_timestamp(db_session, customer, order):
    sent = order_service.orders.send_contract(db_session, customer.id, order.id)

    assert sent.contract_sent is True
    assert sent.contract_sent_at is not None
    assert sent.status == OrderStatus.pending_signature


def test_sign_order(db_session, customer, order):
    signed = order_service.orders.sign(db_session, customer.id, order.id, OrderSign(signature_data="sig-data"))

    assert signed.status == OrderStatus.signed
    assert signed.contract_signed is True
    assert signed.contract_signed_at is not None
    assert signed.signature_data == "sig-data"

    with pytest.raises(InvalidTransitionError):
        order_service.orders.sign(db_session, customer.id, order.id, OrderSign(signature_data="again"))


def test_change_request_then_reissued_contract(db_session, customer, order):
    order_service.orders.sign(db_session, customer.id, order.id, OrderSign(signature_data="sig"))

    changed = order_service.orders.request_change(
        db_session,
        customer.id,
        order.id,
        ChangeOrderCreate(description="Switch to enclosed trailer", date=datetime(2025, 6, 12, tzinfo=UTC)),
    )
    assert changed.status == OrderStatus.change_requested
    assert changed.change_orders == [
        {"description": "Switch to enclosed trailer", "date": "2025-06-12T00:00:00+00:00"}
    ]

    changed = order_service.orders.request_change(
        db_session, customer.id, order.id, ChangeOrderCreate(description="Move pickup a day later")
    )
    assert len(changed.change_orders) == 2

    with pytest.raises(InvalidTransitionError):
        conversions.convert_order_to_dispatch(db_session, order.id)

    reissued = order_service.orders.send_contract(db_session, customer.id, order.id)
    assert reissued.status == OrderStatus.pending_signature
    assert reissued.contract_signed is False
    assert reissued.signature_data is None


def test_cancel_order_cancels_lead(db_session, customer, lead, order):
    cancelled = order_service.orders.cancel(db_session, customer.id, order.id)

    db_session.refresh(lead)
    assert cancelled.status == OrderStatus.cancelled
    assert lead.status == LeadStatus.cancelled


def test_orders_are_tenant_scoped(db_session, order, other_customer):
    with pytest.raises(NotFoundError):
        order_service.orders.get(db_session, order.id, other_customer.id)


# =============================================================================
# Dispatches
# =============================================================================


def test_update_dispatch_recomputes_final_total(db_session, customer, dispatch):
    updated = dispatch_service.dispatches.update(
        db_session,
        customer.id,
        dispatch.id,
        DispatchUpdate(final_carrier_fees=Decimal("975"), driver_phone="555-0400"),
    )

    assert updated.final_total_tariff == Decimal("975.00")
    assert updated.driver_phone == "555-0400"


def test_advance_stamps_actual_dates(db_session, customer, dispatch):
    picked_up = datetime(2025, 6, 20, 9, 0, tzinfo=UTC)
    delivered = datetime(2025, 6, 24, 17, 0, tzinfo=UTC)

    dispatch_service.dispatches.advance(
        db_session, customer.id, dispatch.id, DispatchAdvance(status=DispatchStatus.in_transit, occurred_at=picked_up)
    )
    result = dispatch_service.dispatches.advance(
        db_session, customer.id, dispatch.id, DispatchAdvance(status=DispatchStatus.delivered, occurred_at=delivered)
    )

    assert result.status == DispatchStatus.delivered
    assert result.actual_pickup_date.replace(tzinfo=None) == picked_up.replace(tzinfo=None)
    assert result.actual_delivery_date.replace(tzinfo=None) == delivered.replace(tzinfo=None)


def test_dispatch_cannot_skip_steps(db_session, customer, lead, dispatch):
    with pytest.raises(InvalidTransitionError):
        dispatch_service.dispatches.advance(
            db_session, customer.id, dispatch.id, DispatchAdvance(status=DispatchStatus.completed)
        )

    db_session.refresh(lead)
    assert lead.status == LeadStatus.dispatch


def test_list_dispatches_by_status(db_session, customer, dispatch):
    assert len(dispatch_service.dispatches.list(db_session, customer.id, status="assigned")) == 1
    assert dispatch_service.dispatches.list(db_session, customer.id, status="completed") == []
