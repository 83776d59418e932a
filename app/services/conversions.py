"""Lead -> quote -> order -> dispatch conversions.

Each conversion loads and checks its source record, returns the already
derived record when one exists, and otherwise inserts the derived record and
moves the parent records forward in a single transaction.

The unique parent reference on each derived table (``quotes.lead_id``,
``orders.quote_id``, ``dispatches.order_id``) is the final guard against two
concurrent conversions of the same record: the loser's insert fails, its
transaction is rolled back and the winner's row is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import DuplicateConversionError, InvalidTransitionError, NotFoundError
from app.logic import workflow
from app.logic.financials import parse_amount, total_tariff
from app.models.enums import DispatchStatus, LeadStatus, OrderStatus, PipelineEntity, QuoteStatus
from app.models.shipping import Dispatch, Lead, Order, Quote
from app.schemas.shipping import DispatchConversion, OrderConversion, QuoteConversion
from app.services.common import atomic, coerce_uuid
from app.services.leads import Leads, ensure_agent
from app.services.observability import CONVERSIONS
from app.services.orders import Orders
from app.services.quotes import PARTY_SIDES, Quotes, set_party_contacts, set_quote_fees
from app.telemetry import get_tracer

logger = logging.getLogger(__name__)

LEAD_TO_QUOTE = "lead_to_quote"
QUOTE_TO_ORDER = "quote_to_order"
ORDER_TO_DISPATCH = "order_to_dispatch"

# Legal steps from each quote state to ``accepted``.
_ACCEPTANCE_PATHS: dict[QuoteStatus, tuple[QuoteStatus, ...]] = {
    QuoteStatus.draft: (QuoteStatus.sent, QuoteStatus.accepted),
    QuoteStatus.sent: (QuoteStatus.accepted,),
    QuoteStatus.accepted: (),
}


def _existing_quote_for_lead(db: Session, lead_id) -> Quote | None:
    return db.query(Quote).filter(Quote.lead_id == coerce_uuid(lead_id)).first()


def _existing_order_for_quote(db: Session, quote_id) -> Order | None:
    return db.query(Order).filter(Order.quote_id == coerce_uuid(quote_id)).first()


def _existing_dispatch_for_order(db: Session, order_id) -> Dispatch | None:
    return db.query(Dispatch).filter(Dispatch.order_id == coerce_uuid(order_id)).first()


def _load_lead(db: Session, lead_id) -> Lead:
    lead = db.get(Lead, lead_id)
    if not lead:
        raise NotFoundError(code="lead_not_found", detail="Lead not found")
    return lead


def _insert_derived(db: Session, record, parent_label: str, parent_id) -> None:
    try:
        with db.begin_nested():
            db.add(record)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateConversionError(
            code="duplicate_conversion",
            detail=f"{parent_label} {parent_id} was converted concurrently",
        ) from exc


def _resolve_duplicate(
    db: Session,
    kind: str,
    exc: DuplicateConversionError,
    lookup: Callable[[Session, object], object | None],
    parent_id,
):
    winner = lookup(db, parent_id)
    if winner is None:
        raise exc
    logger.warning(
        "duplicate_conversion kind=%s parent_id=%s winner_id=%s",
        kind,
        parent_id,
        winner.id,
    )
    CONVERSIONS.labels(kind=kind, outcome="duplicate").inc()
    return winner


def _run_conversion(kind: str, attributes: dict, inner: Callable, *args):
    tracer = get_tracer(__name__)
    with tracer.start_as_current_span(f"conversions.{kind}", attributes=attributes) as span:
        try:
            return inner(*args, span=span)
        except Exception:
            CONVERSIONS.labels(kind=kind, outcome="error").inc()
            raise


# ---------------------------------------------------------------------------
# Lead -> Quote
# ---------------------------------------------------------------------------


def _derive_quote(db: Session, lead: Lead, overrides: QuoteConversion) -> Quote:
    data = overrides.model_dump(exclude_none=True)
    if data.get("created_by_user_id"):
        ensure_agent(db, lead.customer_id, data["created_by_user_id"])

    quote = Quote(
        lead_id=lead.id,
        customer_id=lead.customer_id,
        public_id=lead.public_id,
        created_by_user_id=data.get("created_by_user_id"),
        status=QuoteStatus.draft,
        pickup_person_name=data.get("pickup_person_name", lead.contact_name),
        pickup_person_phone=data.get("pickup_person_phone", lead.contact_phone),
        pickup_address=data.get("pickup_address", lead.origin),
        pickup_zip=data.get("pickup_zip", lead.origin_zipcode),
        dropoff_person_name=data.get("dropoff_person_name", lead.contact_name),
        dropoff_person_phone=data.get("dropoff_person_phone", lead.contact_phone),
        dropoff_address=data.get("dropoff_address", lead.destination),
        dropoff_zip=data.get("dropoff_zip", lead.destination_zipcode),
        special_terms=data.get("special_terms"),
        standard_terms=data.get("standard_terms", settings.default_standard_terms),
        valid_until=data.get("valid_until"),
    )
    for side in PARTY_SIDES:
        contacts = getattr(overrides, f"{side}_contacts")
        if contacts:
            set_party_contacts(quote, side, contacts)
        else:
            set_party_contacts(
                quote,
                side,
                [
                    {
                        "name": getattr(quote, f"{side}_person_name"),
                        "phone": getattr(quote, f"{side}_person_phone"),
                    }
                ],
            )
    quote.carrier_fees = parse_amount(overrides.carrier_fees, "carrier_fees")
    quote.broker_fees = parse_amount(overrides.broker_fees, "broker_fees")
    quote.total_tariff = total_tariff(quote.carrier_fees, quote.broker_fees)
    return quote


def _lead_to_quote(db, lead_id, overrides, customer_id, *, span) -> Quote:
    lead = Leads.get(db, lead_id, customer_id)
    lead_pk = lead.id
    span.set_attribute("pipeline.public_id", lead.public_id)

    existing = _existing_quote_for_lead(db, lead_pk)
    if existing:
        span.set_attribute("pipeline.outcome", "existing")
        CONVERSIONS.labels(kind=LEAD_TO_QUOTE, outcome="existing").inc()
        return existing

    workflow.ensure_transition(PipelineEntity.lead, lead.status, LeadStatus.quote)
    quote = _derive_quote(db, lead, overrides or QuoteConversion())

    try:
        with atomic(db):
            _insert_derived(db, quote, "Lead", lead_pk)
            workflow.transition(PipelineEntity.lead, lead, LeadStatus.quote)
    except DuplicateConversionError as exc:
        span.set_attribute("pipeline.outcome", "duplicate")
        return _resolve_duplicate(db, LEAD_TO_QUOTE, exc, _existing_quote_for_lead, lead_pk)

    db.refresh(quote)
    span.set_attribute("pipeline.outcome", "created")
    CONVERSIONS.labels(kind=LEAD_TO_QUOTE, outcome="created").inc()
    logger.info("lead_converted_to_quote lead_id=%s quote_id=%s public_id=%s", lead_pk, quote.id, quote.public_id)
    return quote


def convert_lead_to_quote(
    db: Session,
    lead_id,
    overrides: QuoteConversion | None = None,
    customer_id=None,
) -> Quote:
    """Derive the draft quote for a lead, or return the one already derived."""
    return _run_conversion(
        LEAD_TO_QUOTE,
        {"pipeline.lead_id": str(lead_id)},
        _lead_to_quote,
        db,
        lead_id,
        overrides,
        customer_id,
    )


# ---------------------------------------------------------------------------
# Quote -> Order
# ---------------------------------------------------------------------------


def _acceptance_path(quote: Quote) -> tuple[QuoteStatus, ...]:
    status = workflow.effective_quote_status(quote)
    if status == QuoteStatus.expired:
        raise InvalidTransitionError(code="quote_expired", detail="Quote has expired")
    if status not in _ACCEPTANCE_PATHS:
        workflow.ensure_transition(PipelineEntity.quote, status, QuoteStatus.accepted)
    return _ACCEPTANCE_PATHS[status]


def _lead_path_to_order(lead: Lead) -> tuple[LeadStatus, ...]:
    if lead.status == LeadStatus.lead:
        # Left behind by a write that created the quote without moving the lead.
        return (LeadStatus.quote, LeadStatus.order)
    workflow.ensure_transition(PipelineEntity.lead, lead.status, LeadStatus.order)
    return (LeadStatus.order,)


def _apply_order_overrides(quote: Quote, overrides: OrderConversion) -> None:
    for side in PARTY_SIDES:
        party = getattr(overrides, side)
        if party is None:
            continue
        if party.address is not None:
            setattr(quote, f"{side}_address", party.address)
        if party.zip is not None:
            setattr(quote, f"{side}_zip", party.zip)
        if party.contacts is not None:
            set_party_contacts(quote, side, party.contacts)
    set_quote_fees(quote, overrides.carrier_fees, overrides.broker_fees)


def _quote_to_order(db, quote_id, overrides, customer_id, *, span) -> Order:
    quote = Quotes.get(db, quote_id, customer_id)
    quote_pk = quote.id
    lead = _load_lead(db, quote.lead_id)
    span.set_attribute("pipeline.public_id", lead.public_id)

    existing = _existing_order_for_quote(db, quote_pk)
    if existing:
        if quote.status != QuoteStatus.accepted:
            quote.status = QuoteStatus.accepted
            db.commit()
        span.set_attribute("pipeline.outcome", "existing")
        CONVERSIONS.labels(kind=QUOTE_TO_ORDER, outcome="existing").inc()
        return existing

    quote_steps = _acceptance_path(quote)
    lead_steps = _lead_path_to_order(lead)
    overrides = overrides or OrderConversion()

    order = Order(
        quote_id=quote_pk,
        lead_id=lead.id,
        customer_id=lead.customer_id,
        public_id=lead.public_id,
        contract_type=overrides.contract_type,
        contract_sent=False,
        contract_signed=False,
        change_orders=[],
        status=OrderStatus.pending_signature,
    )

    try:
        with atomic(db):
            _apply_order_overrides(quote, overrides)
            for step in quote_steps:
                workflow.transition(PipelineEntity.quote, quote, step)
            _insert_derived(db, order, "Quote", quote_pk)
            for step in lead_steps:
                workflow.transition(PipelineEntity.lead, lead, step)
    except DuplicateConversionError as exc:
        span.set_attribute("pipeline.outcome", "duplicate")
        return _resolve_duplicate(db, QUOTE_TO_ORDER, exc, _existing_order_for_quote, quote_pk)

    db.refresh(order)
    span.set_attribute("pipeline.outcome", "created")
    CONVERSIONS.labels(kind=QUOTE_TO_ORDER, outcome="created").inc()
    logger.info("quote_converted_to_order quote_id=%s order_id=%s public_id=%s", quote_pk, order.id, order.public_id)
    return order


def convert_quote_to_order(
    db: Session,
    quote_id,
    overrides: OrderConversion | None = None,
    customer_id=None,
) -> Order:
    """Accept a quote and derive its order, or return the order already derived.

    Party and fee overrides are the final negotiated values and are written
    back onto the quote.
    """
    return _run_conversion(
        QUOTE_TO_ORDER,
        {"pipeline.quote_id": str(quote_id)},
        _quote_to_order,
        db,
        quote_id,
        overrides,
        customer_id,
    )


# ---------------------------------------------------------------------------
# Order -> Dispatch
# ---------------------------------------------------------------------------


def _derive_dispatch(order: Order, lead: Lead, quote: Quote, overrides: DispatchConversion) -> Dispatch:
    data = overrides.model_dump(exclude_none=True)
    carrier_fees = parse_amount(data.pop("final_carrier_fees", quote.carrier_fees), "final_carrier_fees")
    broker_fees = parse_amount(data.pop("final_broker_fees", quote.broker_fees), "final_broker_fees")
    data.setdefault("pickup_date", lead.pickup_date)
    data.setdefault("delivery_date", lead.delivery_date)
    return Dispatch(
        order_id=order.id,
        lead_id=lead.id,
        customer_id=order.customer_id,
        public_id=order.public_id,
        status=DispatchStatus.assigned,
        final_carrier_fees=carrier_fees,
        final_broker_fees=broker_fees,
        final_total_tariff=total_tariff(carrier_fees, broker_fees),
        **data,
    )


def _order_to_dispatch(db, order_id, overrides, customer_id, *, span) -> Dispatch:
    order = Orders.get(db, order_id, customer_id)
    order_pk = order.id
    span.set_attribute("pipeline.public_id", order.public_id)

    existing = _existing_dispatch_for_order(db, order_pk)
    if existing:
        span.set_attribute("pipeline.outcome", "existing")
        CONVERSIONS.labels(kind=ORDER_TO_DISPATCH, outcome="existing").inc()
        return existing

    if not order.contract_signed:
        raise InvalidTransitionError(
            code="contract_not_signed",
            detail="Order contract must be signed before dispatch",
        )
    workflow.ensure_transition(PipelineEntity.order, order.status, OrderStatus.in_progress)
    lead = _load_lead(db, order.lead_id)
    workflow.ensure_transition(PipelineEntity.lead, lead.status, LeadStatus.dispatch)
    quote = Quotes.get(db, order.quote_id)

    dispatch = _derive_dispatch(order, lead, quote, overrides or DispatchConversion())

    try:
        with atomic(db):
            _insert_derived(db, dispatch, "Order", order_pk)
            workflow.transition(PipelineEntity.order, order, OrderStatus.in_progress)
            workflow.transition(PipelineEntity.lead, lead, LeadStatus.dispatch)
    except DuplicateConversionError as exc:
        span.set_attribute("pipeline.outcome", "duplicate")
        return _resolve_duplicate(db, ORDER_TO_DISPATCH, exc, _existing_dispatch_for_order, order_pk)

    db.refresh(dispatch)
    span.set_attribute("pipeline.outcome", "created")
    CONVERSIONS.labels(kind=ORDER_TO_DISPATCH, outcome="created").inc()
    logger.info(
        "order_converted_to_dispatch order_id=%s dispatch_id=%s public_id=%s",
        order_pk,
        dispatch.id,
        dispatch.public_id,
    )
    return dispatch


def convert_order_to_dispatch(
    db: Session,
    order_id,
    overrides: DispatchConversion | None = None,
    customer_id=None,
) -> Dispatch:
    """Put a signed order into transit, or return its existing dispatch."""
    return _run_conversion(
        ORDER_TO_DISPATCH,
        {"pipeline.order_id": str(order_id)},
        _order_to_dispatch,
        db,
        order_id,
        overrides,
        customer_id,
    )
