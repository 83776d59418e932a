from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.shipping import TenantStatsRead
from app.schemas.tenant import (
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    CustomerUserCreate,
    CustomerUserRead,
    CustomerUserUpdate,
)
from app.services import customers as customer_service
from app.services import stats as stats_service

router = APIRouter(prefix="/crm/customers", tags=["crm-customers"])


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(payload: CustomerCreate, db: Session = Depends(get_db)):
    return customer_service.customers.create(db, payload)


@router.get("", response_model=ListResponse[CustomerRead])
def list_customers(
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return customer_service.customers.list_response(
        db, order_by=order_by, order_dir=order_dir, limit=limit, offset=offset
    )


@router.get("/{customer_id}", response_model=CustomerRead)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    return customer_service.customers.get(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerRead)
def update_customer(customer_id: str, payload: CustomerUpdate, db: Session = Depends(get_db)):
    return customer_service.customers.update(db, customer_id, payload)


@router.delete("/{customer_id}",status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: str, db: Session = Depends(get_db)):
    customer_service.customers.delete(db, customer_id)


@router.post(
    "/{customer_id}/users",
    response_model=CustomerUserRead,
    status_code=status.HTTP_201_CREATED,
)
def create_customer_user(customer_id: str, payload: CustomerUserCreate, db: Session = Depends(get_db)):
    return customer_service.customer_users.create(db, customer_id, payload)


@router.get("/{customer_id}/users", response_model=ListResponse[CustomerUserRead])
def list_customer_users(
    customer_id: str,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    customer_service.customers.get(db, customer_id)
    return customer_service.customer_users.list_response(
        db,
        customer_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.put("/{customer_id}/users/{user_id}", response_model=CustomerUserRead)
def update_customer_user(
    customer_id: str,
    user_id: str,
    payload: CustomerUserUpdate,
    db: Session = Depends(get_db),
):
    return customer_service.customer_users.update(db, customer_id, user_id, payload)


@router.delete("/{customer_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer_user(customer_id: str, user_id: str, db: Session = Depends(get_db)):
    customer_service.customer_users.delete(db, customer_id, user_id)


@router.get("/{customer_id}/stats", response_model=TenantStatsRead)
def get_customer_stats(customer_id: str, db: Session = Depends(get_db)):
    return TenantStatsRead.model_validate(stats_service.tenant_stats(db, customer_id))
