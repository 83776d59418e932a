from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.logic import workflow
from app.logic.financials import parse_amount, total_tariff
from app.models.enums import PipelineEntity, QuoteStatus
from app.models.shipping import Quote
from app.schemas.shipping import QuoteUpdate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid, validate_enum
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

PARTY_SIDES = ("pickup", "dropoff")


def _contact_dicts(contacts) -> list[dict]:
    rows = []
    for contact in contacts or []:
        if hasattr(contact, "model_dump"):
            contact = contact.model_dump()
        rows.append({"name": contact.get("name"), "phone": contact.get("phone")})
    return rows


def set_party_contacts(quote: Quote, side: str, contacts) -> None:
    """Store the ordered contact list for one side of the shipment.

    The first contact is mirrored into the singular ``<side>_person_name`` and
    ``<side>_person_phone`` columns read by older screens.
    """
    rows = _contact_dicts(contacts)
    setattr(quote, f"{side}_contacts", rows)
    if rows:
        setattr(quote, f"{side}_person_name", rows[0]["name"])
        setattr(quote, f"{side}_person_phone", rows[0]["phone"])


def set_quote_fees(quote: Quote, carrier_fees=None, broker_fees=None) -> None:
    """Overwrite the given fees and recompute the total from the stored values."""
    if carrier_fees is not None:
        quote.carrier_fees = parse_amount(carrier_fees, "carrier_fees")
    if broker_fees is not None:
        quote.broker_fees = parse_amount(broker_fees, "broker_fees")
    quote.total_tariff = total_tariff(quote.carrier_fees, quote.broker_fees)


class Quotes(ListResponseMixin):
    @staticmethod
    def get(db: Session, quote_id: str, customer_id: str | None = None) -> Quote:
        quote = db.get(Quote, coerce_uuid(quote_id))
        if not quote or (customer_id is not None and quote.customer_id != coerce_uuid(customer_id)):
            raise NotFoundError(code="quote_not_found", detail="Quote not found")
        return quote

    @staticmethod
    def list(
        db: Session,
        customer_id: str,
        lead_id: str | None = None,
        status: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = db.query(Quote).filter(Quote.customer_id == coerce_uuid(customer_id))
        if lead_id:
            query = query.filter(Quote.lead_id == coerce_uuid(lead_id))
        if status:
            query = query.filter(Quote.status == validate_enum(status, QuoteStatus, "status"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Quote.created_at, "public_id": Quote.public_id},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, customer_id: str, quote_id: str, payload: QuoteUpdate) -> Quote:
        quote = Quotes.get(db, quote_id, customer_id)
        data = payload.model_dump(exclude_unset=True)
        carrier_fees = data.pop("carrier_fees", None)
        broker_fees = data.pop("broker_fees", None)
        for side in PARTY_SIDES:
            key = f"{side}_contacts"
            if key in data:
                set_party_contacts(quote, side, data.pop(key))
        for key, value in data.items():
            setattr(quote, key, value)
        set_quote_fees(quote, carrier_fees, broker_fees)
        db.commit()
        db.refresh(quote)
        return quote

    @staticmethod
    def send(db: Session, customer_id: str, quote_id: str) -> Quote:
        quote = Quotes.get(db, quote_id, customer_id)
        workflow.transition(PipelineEntity.quote, quote, QuoteStatus.sent)
        db.commit()
        db.refresh(quote)
        logger.info("quote_sent quote_id=%s public_id=%s", quote.id, quote.public_id)
        return quote

    @staticmethod
    def reject(db: Session, customer_id: str, quote_id: str) -> Quote:
        quote = Quotes.get(db, quote_id, customer_id)
        if workflow.effective_quote_status(quote) == QuoteStatus.expired:
            workflow.ensure_transition(PipelineEntity.quote, QuoteStatus.expired, QuoteStatus.rejected)
        workflow.transition(PipelineEntity.quote, quote, QuoteStatus.rejected)
        db.commit()
        db.refresh(quote)
        return quote


# Singleton instances
quotes = Quotes()
