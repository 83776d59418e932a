from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, PipelineValidationError
from app.logic import workflow
from app.logic.financials import parse_amount, total_tariff
from app.models.enums import LeadStatus, PipelineEntity
from app.models.shipping import Lead
from app.models.tenant import CustomerUser
from app.schemas.shipping import LeadCreate, LeadUpdate
from app.services.common import apply_ordering, apply_pagination, atomic, coerce_uuid, validate_enum
from app.services.customers import Customers
from app.services.public_ids import insert_with_public_id
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"


def ensure_agent(db: Session, customer_id, user_id) -> CustomerUser:
    user = db.get(CustomerUser, coerce_uuid(user_id))
    if not user or user.customer_id != coerce_uuid(customer_id):
        raise PipelineValidationError(
            code="agent_not_in_customer",
            detail="Assigned user does not belong to this customer",
        )
    return user


def find_by_external_id(db: Session, customer_id, external_id: str) -> Lead | None:
    return (
        db.query(Lead)
        .filter(Lead.customer_id == coerce_uuid(customer_id))
        .filter(Lead.external_id == external_id)
        .first()
    )


class Leads(ListResponseMixin):
    @staticmethod
    def create(
        db: Session,
        customer_id: str,
        payload: LeadCreate,
        created_at: datetime | None = None,
    ) -> Lead:
        """Create a lead, allocating its public identifier.

        A lead whose ``external_id`` is already known for the customer is
        returned as-is instead of being inserted twice.
        """
        customer = Customers.get(db, customer_id)
        data = payload.model_dump()
        if data.get("assigned_user_id"):
            ensure_agent(db, customer.id, data["assigned_user_id"])

        external_id = (data.get("external_id") or "").strip() or None
        data["external_id"] = external_id
        if external_id:
            existing = find_by_external_id(db, customer.id, external_id)
            if existing:
                return existing

        data["carrier_fees"] = parse_amount(data.get("carrier_fees"), "carrier_fees")
        data["broker_fees"] = parse_amount(data.get("broker_fees"), "broker_fees")
        data["total_tariff"] = total_tariff(data["carrier_fees"], data["broker_fees"])
        data["source"] = (data.get("source") or "").strip() or MANUAL_SOURCE
        created = created_at or datetime.now(UTC)

        def _build(public_id: str) -> Lead:
            return Lead(
                customer_id=customer.id,
                public_id=public_id,
                status=LeadStatus.lead,
                created_at=created,
                updated_at=created,
                **data,
            )

        try:
            with atomic(db):
                lead = insert_with_public_id(db, _build, created)
        except IntegrityError:
            # Same external record ingested concurrently.
            existing = find_by_external_id(db, customer.id, external_id) if external_id else None
            if existing is None:
                raise
            return existing
        db.refresh(lead)
        logger.info(
            "lead_created lead_id=%s public_id=%s customer_id=%s source=%s",
            lead.id,
            lead.public_id,
            customer.id,
            lead.source,
        )
        return lead

    @staticmethod
    def get(db: Session, lead_id: str, customer_id: str | None = None) -> Lead:
        lead = db.get(Lead, coerce_uuid(lead_id))
        if not lead or (customer_id is not None and lead.customer_id != coerce_uuid(customer_id)):
            raise NotFoundError(code="lead_not_found", detail="Lead not found")
        return lead

    @staticmethod
    def list(
        db: Session,
        customer_id: str,
        assigned_user_id: str | None = None,
        status: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = db.query(Lead).filter(Lead.customer_id == coerce_uuid(customer_id))
        if assigned_user_id:
            query = query.filter(Lead.assigned_user_id == coerce_uuid(assigned_user_id))
        if status:
            query = query.filter(Lead.status == validate_enum(status, LeadStatus, "status"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Lead.created_at,
                "updated_at": Lead.updated_at,
                "public_id": Lead.public_id,
                "pickup_date": Lead.pickup_date,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, customer_id: str, lead_id: str, payload: LeadUpdate) -> Lead:
        lead = Leads.get(db, lead_id, customer_id)
        data = payload.model_dump(exclude_unset=True)
        if "carrier_fees" in data or "broker_fees" in data:
            carrier = data.get("carrier_fees", lead.carrier_fees)
            broker = data.get("broker_fees", lead.broker_fees)
            data["carrier_fees"] = parse_amount(carrier, "carrier_fees")
            data["broker_fees"] = parse_amount(broker, "broker_fees")
            data["total_tariff"] = total_tariff(data["carrier_fees"], data["broker_fees"])
        for key, value in data.items():
            setattr(lead, key, value)
        db.commit()
        db.refresh(lead)
        return lead

    @staticmethod
    def assign(db: Session, customer_id: str, lead_id: str, user_id: str | None) -> Lead:
        lead = Leads.get(db, lead_id, customer_id)
        if user_id:
            agent = ensure_agent(db, lead.customer_id, user_id)
            lead.assigned_user_id = agent.id
        else:
            lead.assigned_user_id = None
        db.commit()
        db.refresh(lead)
        logger.info("lead_assigned lead_id=%s user_id=%s", lead.id, lead.assigned_user_id)
        return lead

    @staticmethod
    def cancel(db: Session, customer_id: str, lead_id: str) -> Lead:
        lead = Leads.get(db, lead_id, customer_id)
        workflow.transition(PipelineEntity.lead, lead, LeadStatus.cancelled)
        db.commit()
        db.refresh(lead)
        return lead

    @staticmethod
    def delete(db: Session, customer_id: str, lead_id: str) -> None:
        """Physically remove the lead and every record derived from it."""
        lead = Leads.get(db, lead_id, customer_id)
        db.delete(lead)
        db.commit()
        logger.info("lead_deleted lead_id=%s customer_id=%s", lead_id, customer_id)


# Singleton instances
leads = Leads()
