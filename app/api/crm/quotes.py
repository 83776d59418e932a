from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.shipping import OrderConversion, OrderRead, QuoteRead, QuoteUpdate
from app.services import conversions as conversion_service
from app.services import quotes as quote_service

router = APIRouter(prefix="/crm/quotes", tags=["crm-quotes"])


@router.get("/{customer_id}", response_model=ListResponse[QuoteRead])
def list_quotes(
    customer_id: str,
    lead_id: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return quote_service.quotes.list_response(
        db,
        customer_id,
        lead_id=lead_id,
        status=status,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{customer_id}/{quote_id}", response_model=QuoteRead)
def get_quote(customer_id: str, quote_id: str, db: Session = Depends(get_db)):
    return quote_service.quotes.get(db, quote_id, customer_id)


@router.patch("/{customer_id}/{quote_id}", response_model=QuoteRead)
def update_quote(customer_id: str, quote_id: str, payload: QuoteUpdate, db: Session = Depends(get_db)):
    return quote_service.quotes.update(db, customer_id, quote_id, payload)


@router.post("/{customer_id}/{quote_id}/send", response_model=QuoteRead)
def send_quote(customer_id: str, quote_id: str, db: Session = Depends(get_db)):
    return quote_service.quotes.send(db, customer_id, quote_id)


@router.post("/{customer_id}/{quote_id}/reject", response_model=QuoteRead)
def reject_quote(customer_id: str, quote_id: str, db: Session = Depends(get_db)):
    return quote_service.quotes.reject(db, customer_id, quote_id)


@router.post("/{customer_id}/{quote_id}/convert-to-order", response_model=OrderRead)
def convert_quote_to_order(
    customer_id: str,
    quote_id: str,
    payload: OrderConversion | None = None,
    db: Session = Depends(get_db),
):
    return conversion_service.convert_quote_to_order(db, quote_id, payload, customer_id=customer_id)
