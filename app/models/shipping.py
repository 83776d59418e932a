import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
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


class Lead(Base):
    """Shipping opportunity; the root of the lead -> quote -> order -> dispatch chain.

    ``public_id`` (``YYYYMM####``) is allocated once on insert and copied
    verbatim onto every record derived from the lead.
    """

    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("public_id", name="uq_leads_public_id"),
        UniqueConstraint("customer_id", "external_id", name="uq_leads_customer_external_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    assigned_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customer_users.id", ondelete="SET NULL")
    )
    public_id: Mapped[str] = mapped_column(String(10), nullable=False)

    contact_name: Mapped[str] = mapped_column(String(160), nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str] = mapped_column(String(40), nullable=False)

    carrier_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    broker_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    total_tariff: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))

    vehicle_year: Mapped[str | None] = mapped_column(String(4))
    vehicle_make: Mapped[str | None] = mapped_column(String(80))
    vehicle_model: Mapped[str | None] = mapped_column(String(80))
    vehicle_type: Mapped[str | None] = mapped_column(String(40))
    trailer_type: Mapped[TrailerType] = mapped_column(Enum(TrailerType), default=TrailerType.open)
    condition: Mapped[VehicleCondition] = mapped_column(Enum(VehicleCondition), default=VehicleCondition.run)

    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    origin_zipcode: Mapped[str | None] = mapped_column(String(12))
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    destination_zipcode: Mapped[str | None] = mapped_column(String(12))
    pickup_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    status: Mapped[LeadStatus] = mapped_column(Enum(LeadStatus), default=LeadStatus.lead)
    priority: Mapped[LeadPriority] = mapped_column(Enum(LeadPriority), default=LeadPriority.normal)
    notes: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str] = mapped_column(String(500), default="manual")
    external_id: Mapped[str | None] = mapped_column(String(120))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    customer = relationship("Customer", back_populates="leads")
    assigned_user = relationship("CustomerUser", back_populates="assigned_leads")
    quote = relationship(
        "Quote", back_populates="lead", uselist=False, cascade="all, delete", passive_deletes=True
    )


class Quote(Base):
    """Priced proposal derived from exactly one lead."""

    __tablename__ = "quotes"
    __table_args__ = (
        UniqueConstraint("lead_id", name="uq_quotes_lead_id"),
        UniqueConstraint("public_id", name="uq_quotes_public_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    public_id: Mapped[str] = mapped_column(String(10), nullable=False)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customer_users.id", ondelete="SET NULL")
    )

    carrier_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    broker_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    total_tariff: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))

    # Singular name/phone fields mirror the first entry of the contacts list.
    pickup_person_name: Mapped[str | None] = mapped_column(String(160))
    pickup_person_phone: Mapped[str | None] = mapped_column(String(40))
    pickup_address: Mapped[str | None] = mapped_column(Text)
    pickup_zip: Mapped[str | None] = mapped_column(String(12))
    pickup_contacts: Mapped[list | None] = mapped_column(JSON)

    dropoff_person_name: Mapped[str | None] = mapped_column(String(160))
    dropoff_person_phone: Mapped[str | None] = mapped_column(String(40))
    dropoff_address: Mapped[str | None] = mapped_column(Text)
    dropoff_zip: Mapped[str | None] = mapped_column(String(12))
    dropoff_contacts: Mapped[list | None] = mapped_column(JSON)

    special_terms: Mapped[str | None] = mapped_column(Text)
    standard_terms: Mapped[str | None] = mapped_column(Text)

    status: Mapped[QuoteStatus] = mapped_column(Enum(QuoteStatus), default=QuoteStatus.draft)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    lead = relationship("Lead", back_populates="quote")
    customer = relationship("Customer", back_populates="quotes")
    order = relationship(
        "Order", back_populates="quote", uselist=False, cascade="all, delete", passive_deletes=True
    )


class Order(Base):
    """Contract derived from exactly one accepted quote."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("quote_id", name="uq_orders_quote_id"),
        UniqueConstraint("public_id", name="uq_orders_public_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quote_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False
    )
    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    public_id: Mapped[str] = mapped_column(String(10), nullable=False)

    contract_type: Mapped[ContractType] = mapped_column(Enum(ContractType), default=ContractType.standard)
    contract_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    contract_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    contract_signed: Mapped[bool] = mapped_column(Boolean, default=False)
    contract_signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    signature_data: Mapped[str | None] = mapped_column(Text)
    change_orders: Mapped[list | None] = mapped_column(JSON)

    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.pending_signature)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    quote = relationship("Quote", back_populates="order")
    lead = relationship("Lead")
    customer = relationship("Customer", back_populates="orders")
    dispatch = relationship(
        "Dispatch", back_populates="order", uselist=False, cascade="all, delete", passive_deletes=True
    )


class Dispatch(Base):
    """Active shipment derived from exactly one signed order."""

    __tablename__ = "dispatches"
    __table_args__ = (
        UniqueConstraint("order_id", name="uq_dispatches_order_id"),
        UniqueConstraint("public_id", name="uq_dispatches_public_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    public_id: Mapped[str] = mapped_column(String(10), nullable=False)

    carrier_name: Mapped[str | None] = mapped_column(String(160))
    carrier_phone: Mapped[str | None] = mapped_column(String(40))
    carrier_email: Mapped[str | None] = mapped_column(String(255))
    driver_name: Mapped[str | None] = mapped_column(String(160))
    driver_phone: Mapped[str | None] = mapped_column(String(40))
    truck_info: Mapped[str | None] = mapped_column(String(255))

    status: Mapped[DispatchStatus] = mapped_column(Enum(DispatchStatus), default=DispatchStatus.assigned)
    pickup_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    actual_pickup_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    actual_delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    final_carrier_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    final_broker_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    final_total_tariff: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))

    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    order = relationship("Order", back_populates="dispatch")
    lead = relationship("Lead")
    customer = relationship("Customer", back_populates="dispatches")
