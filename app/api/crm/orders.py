from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.shipping import ChangeOrderCreate, DispatchConversion, DispatchRead, OrderRead, OrderSign
from app.services import conversions as conversion_service
from app.services import orders as order_service

router = APIRouter(prefix="/crm/orders", tags=["crm-orders"])


@router.get("/{customer_id}", response_model=ListResponse[OrderRead])
def list_orders(
    customer_id: str,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return order_service.orders.list_response(
        db,
        customer_id,
        status=status,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{customer_id}/{order_id}", response_model=OrderRead)
def get_order(customer_id: str, order_id: str, db: Session = Depends(get_db)):
    return order_service.orders.get(db, order_id, customer_id)


@router.post("/{customer_id}/{order_id}/send-contract", response_model=OrderRead)
def send_order_contract(customer_id: str, order_id: str, db: Session = Depends(get_db)):
    return order_service.orders.send_contract(db, customer_id, order_id)


@router.post("/{customer_id}/{order_id}/sign", response_model=OrderRead)
def sign_order(customer_id: str, order_id: str, payload: OrderSign, db: Session = Depends(get_db)):
    return order_service.orders.sign(db, customer_id, order_id, payload)


@router.post("/{customer_id}/{order_id}/change-orders", response_model=OrderRead)
def request_order_change(
    customer_id: str,
    order_id: str,
    payload: ChangeOrderCreate,
    db: Session = Depends(get_db),
):
    return order_service.orders.request_change(db, customer_id, order_id, payload)


@router.post("/{customer_id}/{order_id}/cancel", response_model=OrderRead)
def cancel_order(customer_id: str, order_id: str, db: Session = Depends(get_db)):
    return order_service.orders.cancel(db, customer_id, order_id)


@router.post("/{customer_id}/{order_id}/convert-to-dispatch", response_model=DispatchRead)
def convert_order_to_dispatch(
    customer_id: str,
    order_id: str,
    payload: DispatchConversion | None = None,
    db: Session = Depends(get_db),
):
    return conversion_service.convert_order_to_dispatch(db, order_id, payload, customer_id=customer_id)
