from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.logic import workflow
from app.models.enums import LeadStatus, OrderStatus, PipelineEntity
from app.models.shipping import Lead, Order
from app.schemas.shipping import ChangeOrderCreate, OrderSign
from app.services.common import apply_ordering, apply_pagination, atomic, coerce_uuid, validate_enum
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Orders(ListResponseMixin):
    @staticmethod
    def get(db: Session, order_id: str, customer_id: str | None = None) -> Order:
        order = db.get(Order, coerce_uuid(order_id))
        if not order or (customer_id is not None and order.customer_id != coerce_uuid(customer_id)):
            raise NotFoundError(code="order_not_found", detail="Order not found")
        return order

    @staticmethod
    def list(
        db: Session,
        customer_id: str,
        status: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = db.query(Order).filter(Order.customer_id == coerce_uuid(customer_id))
        if status:
            query = query.filter(Order.status == validate_enum(status, OrderStatus, "status"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Order.created_at, "public_id": Order.public_id},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def send_contract(db: Session, customer_id: str, order_id: str) -> Order:
        """Mark the contract as sent; a re-issued contract clears any earlier signature."""
        order = Orders.get(db, order_id, customer_id)
        if order.status == OrderStatus.change_requested:
            workflow.transition(PipelineEntity.order, order, OrderStatus.pending_signature)
            order.contract_signed = False
            order.contract_signed_at = None
            order.signature_data = None
        elif order.status != OrderStatus.pending_signature:
            workflow.ensure_transition(PipelineEntity.order, order.status, OrderStatus.pending_signature)
        order.contract_sent = True
        order.contract_sent_at = datetime.now(UTC)
        db.commit()
        db.refresh(order)
        logger.info("order_contract_sent order_id=%s public_id=%s", order.id, order.public_id)
        return order

    @staticmethod
    def sign(db: Session, customer_id: str, order_id: str, payload: OrderSign) -> Order:
        order = Orders.get(db, order_id, customer_id)
        workflow.transition(PipelineEntity.order, order, OrderStatus.signed)
        order.contract_signed = True
        order.contract_signed_at = datetime.now(UTC)
        order.signature_data = payload.signature_data
        db.commit()
        db.refresh(order)
        logger.info("order_signed order_id=%s public_id=%s", order.id, order.public_id)
        return order

    @staticmethod
    def request_change(db: Session, customer_id: str, order_id: str, payload: ChangeOrderCreate) -> Order:
        order = Orders.get(db, order_id, customer_id)
        if order.status != OrderStatus.change_requested:
            workflow.transition(PipelineEntity.order, order, OrderStatus.change_requested)
        occurred_at = payload.date or datetime.now(UTC)
        history = list(order.change_orders or [])
        history.append({"description": payload.description, "date": occurred_at.isoformat()})
        # Reassign so the JSON column is flagged dirty.
        order.change_orders = history
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def cancel(db: Session, customer_id: str, order_id: str) -> Order:
        order = Orders.get(db, order_id, customer_id)
        with atomic(db):
            workflow.transition(PipelineEntity.order, order, OrderStatus.cancelled)
            lead = db.get(Lead, order.lead_id)
            if lead and workflow.can_transition(PipelineEntity.lead, lead.status, LeadStatus.cancelled):
                lead.status = LeadStatus.cancelled
        db.refresh(order)
        logger.info("order_cancelled order_id=%s public_id=%s", order.id, order.public_id)
        return order


# Singleton instances
orders = Orders()
