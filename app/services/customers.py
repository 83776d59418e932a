from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, PipelineError
from app.models.tenant import Customer, CustomerUser
from app.schemas.tenant import CustomerCreate, CustomerUpdate, CustomerUserCreate, CustomerUserUpdate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Customers(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: CustomerCreate) -> Customer:
        customer = Customer(**payload.model_dump())
        db.add(customer)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise PipelineError(
                code="customer_domain_taken",
                detail="Customer domain already exists",
                status_code=409,
            ) from exc
        db.refresh(customer)
        return customer

    @staticmethod
    def get(db: Session, customer_id: str) -> Customer:
        customer = db.get(Customer, coerce_uuid(customer_id))
        if not customer:
            raise NotFoundError(code="customer_not_found", detail="Customer not found")
        return customer

    @staticmethod
    def list(db: Session, order_by: str, order_dir: str, limit: int, offset: int):
        query = apply_ordering(
            db.query(Customer),
            order_by,
            order_dir,
            {"created_at": Customer.created_at, "name": Customer.name},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, customer_id: str, payload: CustomerUpdate) -> Customer:
        customer = Customers.get(db, customer_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(customer, key, value)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise PipelineError(
                code="customer_domain_taken",
                detail="Customer domain already exists",
                status_code=409,
            ) from exc
        db.refresh(customer)
        return customer

    @staticmethod
    def delete(db: Session, customer_id: str) -> None:
        """Remove the tenant together with its users and pipeline records."""
        customer = Customers.get(db, customer_id)
        db.delete(customer)
        db.commit()
        logger.info("customer_deleted customer_id=%s", customer_id)


class CustomerUsers(ListResponseMixin):
    @staticmethod
    def create(db: Session, customer_id: str, payload: CustomerUserCreate) -> CustomerUser:
        customer = Customers.get(db, customer_id)
        user = CustomerUser(customer_id=customer.id, **payload.model_dump())
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise PipelineError(
                code="customer_user_email_taken",
                detail="A user with this email already exists for the customer",
                status_code=409,
            ) from exc
        db.refresh(user)
        return user

    @staticmethod
    def get(db: Session, customer_id: str, user_id: str) -> CustomerUser:
        user = db.get(CustomerUser, coerce_uuid(user_id))
        if not user or user.customer_id != coerce_uuid(customer_id):
            raise NotFoundError(code="customer_user_not_found", detail="Customer user not found")
        return user

    @staticmethod
    def list(
        db: Session,
        customer_id: str,
        order_by: str = "created_at",
        order_dir: str = "asc",
        limit: int = 100,
        offset: int = 0,
    ):
        query = db.query(CustomerUser).filter(CustomerUser.customer_id == coerce_uuid(customer_id))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": CustomerUser.created_at, "last_name": CustomerUser.last_name},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, customer_id: str, user_id: str, payload: CustomerUserUpdate) -> CustomerUser:
        user = CustomerUsers.get(db, customer_id, user_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(user, key, value)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise PipelineError(
                code="customer_user_email_taken",
                detail="A user with this email already exists for the customer",
                status_code=409,
            ) from exc
        db.refresh(user)
        return user

    @staticmethod
    def delete(db: Session, customer_id: str, user_id: str) -> None:
        """Remove an agent. Their leads and quotes stay, unassigned."""
        user = CustomerUsers.get(db, customer_id, user_id)
        db.delete(user)
        db.commit()
        logger.info("customer_user_deleted customer_id=%s user_id=%s", customer_id, user_id)


# Singleton instances
customers = Customers()
customer_users = CustomerUsers()
