"""Pull leads from an external lead-provider endpoint.

Upstream providers return either a bare JSON array of records or an envelope
object wrapping the array under ``data`` or ``leads``. Each shape has its own
adapter; a payload no adapter recognizes is rejected rather than guessed at.
Records are validated before any lead is written, so a bad record aborts the
whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx
from pydantic import Field, ValidationError, field_validator
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import IngestionError
from app.models.enums import TrailerType, VehicleCondition
from app.models.shipping import Lead
from app.schemas.shipping import LeadCreate, PipelineInput
from app.services.customers import Customers
from app.services.leads import Leads, find_by_external_id
from app.services.observability import INGESTED_LEADS
from app.telemetry import get_tracer

logger = logging.getLogger(__name__)


class ExternalLeadRecord(PipelineInput):
    id: str = Field(min_length=1, max_length=120)
    contact_name: str = Field(min_length=1, max_length=160)
    contact_phone: str = Field(min_length=1, max_length=40)
    contact_email: str | None = Field(default=None, max_length=255)
    vehicle_year: str | None = Field(default=None, max_length=4)
    vehicle_make: str | None = Field(default=None, max_length=80)
    vehicle_model: str | None = Field(default=None, max_length=80)
    vehicle_type: str | None = Field(default=None, max_length=40)
    trailer_type: TrailerType = TrailerType.open
    condition: VehicleCondition = VehicleCondition.run
    origin: str = Field(min_length=1, max_length=255)
    origin_zipcode: str | None = Field(default=None, max_length=12)
    destination: str = Field(min_length=1, max_length=255)
    destination_zipcode: str | None = Field(default=None, max_length=12)
    pickup_date: datetime
    delivery_date: datetime | None = None
    carrier_fees: Decimal | None = Field(default=None, ge=0)
    broker_fees: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None

    @field_validator("id", "vehicle_year", mode="before")
    @classmethod
    def _stringify(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

    def to_lead_create(self, source: str) -> LeadCreate:
        data = self.model_dump(exclude={"id"})
        return LeadCreate(**data, source=source, external_id=self.id)


class PayloadAdapter:
    """Recognizes one upstream payload shape and extracts its raw records."""

    name = "base"

    def matches(self, payload: Any) -> bool:
        raise NotImplementedError

    def records(self, payload: Any) -> list:
        raise NotImplementedError

    def parse(self, payload: Any) -> list[ExternalLeadRecord]:
        parsed = []
        for index, raw in enumerate(self.records(payload)):
            try:
                parsed.append(ExternalLeadRecord.model_validate(raw))
            except ValidationError as exc:
                raise IngestionError(
                    code="invalid_record",
                    detail=f"Record {index} is invalid: {exc.errors()[0].get('msg')}",
                ) from exc
        return parsed


class ArrayPayloadAdapter(PayloadAdapter):
    name = "array"

    def matches(self, payload: Any) -> bool:
        return isinstance(payload, list)

    def records(self, payload: Any) -> list:
        return payload


class EnvelopePayloadAdapter(PayloadAdapter):
    name = "envelope"
    keys = ("data", "leads")

    def _key(self, payload: Any) -> str | None:
        if not isinstance(payload, dict):
            return None
        for key in self.keys:
            if isinstance(payload.get(key), list):
                return key
        return None

    def matches(self, payload: Any) -> bool:
        return self._key(payload) is not None

    def records(self, payload: Any) -> list:
        return payload[self._key(payload)]


ADAPTERS: tuple[PayloadAdapter, ...] = (ArrayPayloadAdapter(), EnvelopePayloadAdapter())


def select_adapter(payload: Any) -> PayloadAdapter:
    for adapter in ADAPTERS:
        if adapter.matches(payload):
            return adapter
    raise IngestionError(
        code="unrecognized_payload",
        detail="Lead provider returned a payload in an unrecognized format",
    )


def fetch_payload(endpoint: str, api_key: str | None = None) -> Any:
    headers = {"Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    try:
        response = httpx.get(endpoint, headers=headers, timeout=settings.ingestion_timeout_seconds)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise IngestionError(
            code="upstream_unavailable",
            detail=f"Lead provider request failed: {exc}",
            status_code=502,
            retryable=True,
        ) from exc
    try:
        return response.json()
    except ValueError as exc:
        raise IngestionError(
            code="unrecognized_payload",
            detail="Lead provider returned a non-JSON response",
        ) from exc


@dataclass
class IngestionResult:
    endpoint: str
    created: list[Lead] = field(default_factory=list)
    skipped: int = 0


def ingest_leads(
    db: Session,
    customer_id: str,
    endpoint: str,
    api_key: str | None = None,
    payload: Any = None,
) -> IngestionResult:
    """Create leads for every new upstream record; known records are skipped."""
    customer = Customers.get(db, customer_id)
    tracer = get_tracer(__name__)
    with tracer.start_as_current_span(
        "lead_ingestion.run",
        attributes={"ingestion.customer_id": str(customer.id), "ingestion.endpoint": endpoint},
    ) as span:
        if payload is None:
            payload = fetch_payload(endpoint, api_key)
        adapter = select_adapter(payload)
        records = adapter.parse(payload)
        span.set_attribute("ingestion.adapter", adapter.name)
        span.set_attribute("ingestion.records", len(records))

        result = IngestionResult(endpoint=endpoint)
        for record in records:
            if find_by_external_id(db, customer.id, record.id):
                result.skipped += 1
                INGESTED_LEADS.labels(outcome="skipped").inc()
                continue
            lead = Leads.create(db, customer.id, record.to_lead_create(source=endpoint))
            result.created.append(lead)
            INGESTED_LEADS.labels(outcome="created").inc()

        logger.info(
            "leads_ingested customer_id=%s endpoint=%s adapter=%s created=%s skipped=%s",
            customer.id,
            endpoint,
            adapter.name,
            len(result.created),
            result.skipped,
        )
        return result
