from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.logic import workflow
from app.logic.financials import parse_amount, total_tariff
from app.models.enums import DispatchStatus, LeadStatus, PipelineEntity
from app.models.shipping import Dispatch, Lead
from app.schemas.shipping import DispatchAdvance, DispatchUpdate
from app.services.common import apply_ordering, apply_pagination, atomic, coerce_uuid, validate_enum
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Dispatches(ListResponseMixin):
    @staticmethod
    def get(db: Session, dispatch_id: str, customer_id: str | None = None) -> Dispatch:
        dispatch = db.get(Dispatch, coerce_uuid(dispatch_id))
        if not dispatch or (customer_id is not None and dispatch.customer_id != coerce_uuid(customer_id)):
            raise NotFoundError(code="dispatch_not_found", detail="Dispatch not found")
        return dispatch

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
        query = db.query(Dispatch).filter(Dispatch.customer_id == coerce_uuid(customer_id))
        if status:
            query = query.filter(Dispatch.status == validate_enum(status, DispatchStatus, "status"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Dispatch.created_at,
                "pickup_date": Dispatch.pickup_date,
                "public_id": Dispatch.public_id,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, customer_id: str, dispatch_id: str, payload: DispatchUpdate) -> Dispatch:
        dispatch = Dispatches.get(db, dispatch_id, customer_id)
        data = payload.model_dump(exclude_unset=True)
        if "final_carrier_fees" in data or "final_broker_fees" in data:
            carrier = data.get("final_carrier_fees", dispatch.final_carrier_fees)
            broker = data.get("final_broker_fees", dispatch.final_broker_fees)
            data["final_carrier_fees"] = parse_amount(carrier, "final_carrier_fees")
            data["final_broker_fees"] = parse_amount(broker, "final_broker_fees")
            data["final_total_tariff"] = total_tariff(data["final_carrier_fees"], data["final_broker_fees"])
        for key, value in data.items():
            setattr(dispatch, key, value)
        db.commit()
        db.refresh(dispatch)
        return dispatch

    @staticmethod
    def advance(db: Session, customer_id: str, dispatch_id: str, payload: DispatchAdvance) -> Dispatch:
        """Move the shipment one step along ``assigned -> in_transit -> delivered -> completed``."""
        dispatch = Dispatches.get(db, dispatch_id, customer_id)
        occurred_at = payload.occurred_at or datetime.now(UTC)
        with atomic(db):
            workflow.transition(PipelineEntity.dispatch, dispatch, payload.status)
            if payload.status == DispatchStatus.in_transit:
                dispatch.actual_pickup_date = occurred_at
            elif payload.status == DispatchStatus.delivered:
                dispatch.actual_delivery_date = occurred_at
            elif payload.status == DispatchStatus.completed:
                lead = db.get(Lead, dispatch.lead_id)
                if lead:
                    workflow.transition(PipelineEntity.lead, lead, LeadStatus.completed)
        db.refresh(dispatch)
        logger.info(
            "dispatch_advanced dispatch_id=%s public_id=%s status=%s",
            dispatch.id,
            dispatch.public_id,
            dispatch.status.value,
        )
        return dispatch


# Singleton instances
dispatches = Dispatches()
