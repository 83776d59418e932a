"""Request and response schemas for the shipping pipeline.

Input schemas accept both snake_case and camelCase keys: the camelCase alias
of every field is generated from its snake_case name, so one declaration maps
both spellings. Responses are always snake_case.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from app.logic.workflow import effective_quote_status
from app.models.enums import (
    ContractType,
    DispatchStatus,
    LeadPriority,
    LeadStatus,
    OrderStatus,
    QuoteStatus,
    TrailerType,
    VehicleCondition,
)


class PipelineInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContactPerson(PipelineInput):
    name: str | None = Field(default=None, max_length=160)
    phone: str | None = Field(default=None, max_length=40)


class PartyDetails(PipelineInput):
    """Pickup or drop-off side of a shipment."""

    address: str | None = None
    zip: str | None = Field(default=None, max_length=12)
    contacts: list[ContactPerson] | None = None


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


class LeadCreate(PipelineInput):
    assigned_user_id: UUID | None = None
    contact_name: str = Field(min_length=1, max_length=160)
    contact_email: str | None = Field(default=None, max_length=255)
    contact_phone: str = Field(min_length=1, max_length=40)
    carrier_fees: Decimal | None = Field(default=None, ge=0)
    broker_fees: Decimal | None = Field(default=None, ge=0)
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
    priority: LeadPriority = LeadPriority.normal
    notes: str | None = None
    source: str | None = Field(default=None, max_length=500)
    external_id: str | None = Field(default=None, max_length=120)


class LeadUpdate(PipelineInput):
    contact_name: str | None = Field(default=None, min_length=1, max_length=160)
    contact_email: str | None = Field(default=None, max_length=255)
    contact_phone: str | None = Field(default=None, min_length=1, max_length=40)
    carrier_fees: Decimal | None = Field(default=None, ge=0)
    broker_fees: Decimal | None = Field(default=None, ge=0)
    vehicle_year: str | None = Field(default=None, max_length=4)
    vehicle_make: str | None = Field(default=None, max_length=80)
    vehicle_model: str | None = Field(default=None, max_length=80)
    vehicle_type: str | None = Field(default=None, max_length=40)
    trailer_type: TrailerType | None = None
    condition: VehicleCondition | None = None
    origin: str | None = Field(default=None, min_length=1, max_length=255)
    origin_zipcode: str | None = Field(default=None, max_length=12)
    destination: str | None = Field(default=None, min_length=1, max_length=255)
    destination_zipcode: str | None = Field(default=None, max_length=12)
    pickup_date: datetime | None = None
    delivery_date: datetime | None = None
    priority: LeadPriority | None = None
    notes: str | None = None

    @field_validator(
        "contact_name",
        "contact_phone",
        "origin",
        "destination",
        "pickup_date",
        "trailer_type",
        "condition",
        "priority",
    )
    @classmethod
    def _required_when_present(cls, value, info):
        # Omit the key to leave the stored value unchanged.
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class LeadAssign(PipelineInput):
    user_id: UUID | None = None


class LeadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    assigned_user_id: UUID | None
    public_id: str
    contact_name: str
    contact_email: str | None
    contact_phone: str
    carrier_fees: Decimal
    broker_fees: Decimal
    total_tariff: Decimal
    vehicle_year: str | None
    vehicle_make: str | None
    vehicle_model: str | None
    vehicle_type: str | None
    trailer_type: TrailerType
    condition: VehicleCondition
    origin: str
    origin_zipcode: str | None
    destination: str
    destination_zipcode: str | None
    pickup_date: datetime
    delivery_date: datetime | None
    status: LeadStatus
    priority: LeadPriority
    notes: str | None
    source: str
    external_id: str | None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


class QuoteFields(PipelineInput):
    carrier_fees: Decimal | None = Field(default=None, ge=0)
    broker_fees: Decimal | None = Field(default=None, ge=0)
    pickup_person_name: str | None = Field(default=None, max_length=160)
    pickup_person_phone: str | None = Field(default=None, max_length=40)
    pickup_address: str | None = None
    pickup_zip: str | None = Field(default=None, max_length=12)
    pickup_contacts: list[ContactPerson] | None = None
    dropoff_person_name: str | None = Field(default=None, max_length=160)
    dropoff_person_phone: str | None = Field(default=None, max_length=40)
    dropoff_address: str | None = None
    dropoff_zip: str | None = Field(default=None, max_length=12)
    dropoff_contacts: list[ContactPerson] | None = None
    special_terms: str | None = None
    standard_terms: str | None = None
    valid_until: datetime | None = None


class QuoteConversion(QuoteFields):
    """Overrides applied when a lead is converted into a quote."""

    created_by_user_id: UUID | None = None


class QuoteUpdate(QuoteFields):
    pass


class QuoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lead_id: UUID
    customer_id: UUID
    public_id: str
    created_by_user_id: UUID | None
    carrier_fees: Decimal
    broker_fees: Decimal
    total_tariff: Decimal
    pickup_person_name: str | None
    pickup_person_phone: str | None
    pickup_address: str | None
    pickup_zip: str | None
    pickup_contacts: list[ContactPerson] | None
    dropoff_person_name: str | None
    dropoff_person_phone: str | None
    dropoff_address: str | None
    dropoff_zip: str | None
    dropoff_contacts: list[ContactPerson] | None
    special_terms: str | None
    standard_terms: str | None
    status: QuoteStatus
    valid_until: datetime | None
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_status(self) -> QuoteStatus:
        return effective_quote_status(self)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderConversion(PipelineInput):
    """Final negotiated details locked in when a quote becomes an order.

    Party and fee overrides are written back onto the quote.
    """

    contract_type: ContractType = ContractType.standard
    pickup: PartyDetails | None = None
    dropoff: PartyDetails | None = None
    carrier_fees: Decimal | None = Field(default=None, ge=0)
    broker_fees: Decimal | None = Field(default=None, ge=0)


class OrderSign(PipelineInput):
    signature_data: str = Field(min_length=1)


class ChangeOrderCreate(PipelineInput):
    description: str = Field(min_length=1)
    date: datetime | None = None


class ChangeOrderRecord(BaseModel):
    description: str
    date: datetime


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quote_id: UUID
    lead_id: UUID
    customer_id: UUID
    public_id: str
    contract_type: ContractType
    contract_sent: bool
    contract_sent_at: datetime | None
    contract_signed: bool
    contract_signed_at: datetime | None
    signature_data: str | None
    change_orders: list[ChangeOrderRecord] | None
    status: OrderStatus
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Dispatches
# ---------------------------------------------------------------------------


class DispatchFields(PipelineInput):
    carrier_name: str | None = Field(default=None, max_length=160)
    carrier_phone: str | None = Field(default=None, max_length=40)
    carrier_email: str | None = Field(default=None, max_length=255)
    driver_name: str | None = Field(default=None, max_length=160)
    driver_phone: str | None = Field(default=None, max_length=40)
    truck_info: str | None = Field(default=None, max_length=255)
    pickup_date: datetime | None = None
    delivery_date: datetime | None = None
    final_carrier_fees: Decimal | None = Field(default=None, ge=0)
    final_broker_fees: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class DispatchConversion(DispatchFields):
    pass


class DispatchUpdate(DispatchFields):
    pass


class DispatchAdvance(PipelineInput):
    status: DispatchStatus
    occurred_at: datetime | None = None


class DispatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    lead_id: UUID
    customer_id: UUID
    public_id: str
    carrier_name: str | None
    carrier_phone: str | None
    carrier_email: str | None
    driver_name: str | None
    driver_phone: str | None
    truck_info: str | None
    status: DispatchStatus
    pickup_date: datetime | None
    delivery_date: datetime | None
    actual_pickup_date: datetime | None
    actual_delivery_date: datetime | None
    final_carrier_fees: Decimal
    final_broker_fees: Decimal
    final_total_tariff: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Stats and ingestion
# ---------------------------------------------------------------------------


class AgentStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    agent_id: str
    agent_name: str | None
    assigned: int
    booked: int
    revenue: Decimal
    conversion_rate: float


class TenantStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_leads: int
    active_leads: int
    booked_leads: int
    total_revenue: Decimal
    conversion_rate: float
    per_agent: list[AgentStatsRead]


class LeadFetchRequest(PipelineInput):
    api_endpoint: str = Field(min_length=1)
    api_key: str | None = None


class IngestionResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    endpoint: str
    created: list[LeadRead]
    skipped: int
