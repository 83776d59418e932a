from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.shipping import DispatchAdvance, DispatchRead, DispatchUpdate
from app.services import dispatches as dispatch_service

router = APIRouter(prefix="/crm/dispatches", tags=["crm-dispatches"])


@router.get("/{customer_id}", response_model=ListResponse[DispatchRead])
def list_dispatches(
    customer_id: str,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return dispatch_service.dispatches.list_response(
        db,
        customer_id,
        status=status,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{customer_id}/{dispatch_id}", response_model=DispatchRead)
def get_dispatch(customer_id: str, dispatch_id: str, db: Session = Depends(get_db)):
    return dispatch_service.dispatches.get(db, dispatch_id, customer_id)


@router.patch("/{customer_id}/{dispatch_id}", response_model=DispatchRead)
def update_dispatch(
    customer_id: str,
    dispatch_id: str,
    payload: DispatchUpdate,
    db: Session = Depends(get_db),
):
    return dispatch_service.dispatches.update(db, customer_id, dispatch_id, payload)


@router.post("/{customer_id}/{dispatch_id}/status", response_model=DispatchRead)
def advance_dispatch(
    customer_id: str,
    dispatch_id: str,
    payload: DispatchAdvance,
    db: Session = Depends(get_db),
):
    return dispatch_service.dispatches.advance(db, customer_id, dispatch_id, payload)
