import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.enums import CustomerStatus, CustomerUserRole, CustomerUserStatus


class Customer(Base):
    """Brokerage organization; the isolation scope for all pipeline records."""

    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("domain", name="uq_customers_domain"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    admin_name: Mapped[str] = mapped_column(String(160), nullable=False)
    admin_email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[CustomerStatus] = mapped_column(Enum(CustomerStatus), default=CustomerStatus.active)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    users = relationship("CustomerUser", back_populates="customer", cascade="all, delete", passive_deletes=True)
    leads = relationship("Lead", back_populates="customer", cascade="all, delete", passive_deletes=True)
    quotes = relationship("Quote", back_populates="customer", cascade="all, delete", passive_deletes=True)
    orders = relationship("Order", back_populates="customer", cascade="all, delete", passive_deletes=True)
    dispatches = relationship("Dispatch", back_populates="customer", cascade="all, delete", passive_deletes=True)


class CustomerUser(Base):
    """Manager (admin) or agent (user) working inside one brokerage."""

    __tablename__ = "customer_users"
    __table_args__ = (UniqueConstraint("customer_id", "email", name="uq_customer_users_customer_email"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    role: Mapped[CustomerUserRole] = mapped_column(Enum(CustomerUserRole), default=CustomerUserRole.user)
    status: Mapped[CustomerUserStatus] = mapped_column(
        Enum(CustomerUserStatus), default=CustomerUserStatus.active
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    customer = relationship("Customer", back_populates="users")
    assigned_leads = relationship("Lead", back_populates="assigned_user", passive_deletes=True)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
