from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.errors import PipelineValidationError
from app.models.enums import LeadStatus

_CENT = Decimal("0.01")

# "booked" is the status older brokerage data used for closed deals.
BOOKED_STATUSES = frozenset({LeadStatus.completed.value, "booked"})
INACTIVE_STATUSES = frozenset({LeadStatus.completed.value, LeadStatus.cancelled.value, "booked"})


def round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_amount(value, field_name: str = "amount") -> Decimal:
    """Parse a fee value; ``None`` and blank strings are zero."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        amount = value
    else:
        raw = str(value).strip()
        if not raw:
            return Decimal("0.00")
        try:
            amount = Decimal(raw)
        except (InvalidOperation, ValueError):
            raise PipelineValidationError(code="invalid_amount", detail=f"Invalid decimal value for {field_name}")
    if not amount.is_finite():
        raise PipelineValidationError(code="invalid_amount", detail=f"Invalid decimal value for {field_name}")
    if amount < 0:
        raise PipelineValidationError(code="negative_amount", detail=f"{field_name} must not be negative")
    return round_money(amount)


def total_tariff(carrier_fees, broker_fees) -> Decimal:
    """Total tariff charged to the shipper: carrier fees plus broker fees."""
    return round_money(parse_amount(carrier_fees, "carrier_fees") + parse_amount(broker_fees, "broker_fees"))


def conversion_rate(booked: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(booked / total, 4)


@dataclass
class AgentStats:
    agent_id: str
    agent_name: str | None
    assigned: int = 0
    booked: int = 0
    revenue: Decimal = Decimal("0.00")

    @property
    def conversion_rate(self) -> float:
        return conversion_rate(self.booked, self.assigned)


@dataclass
class TenantStats:
    total_leads: int = 0
    active_leads: int = 0
    booked_leads: int = 0
    total_revenue: Decimal = Decimal("0.00")
    per_agent: list[AgentStats] = field(default_factory=list)

    @property
    def conversion_rate(self) -> float:
        return conversion_rate(self.booked_leads, self.total_leads)


def _status_value(status) -> str:
    if isinstance(status, enum.Enum):
        return str(status.value)
    return str(status or "")


def compute_tenant_stats(leads: Iterable, agents: Iterable) -> TenantStats:
    """Recompute tenant and per-agent statistics from the full lead set."""
    per_agent: dict[str, AgentStats] = {}
    for agent in agents:
        key = str(agent.id)
        per_agent[key] = AgentStats(agent_id=key, agent_name=getattr(agent, "display_name", None))

    stats = TenantStats()
    for lead in leads:
        status = _status_value(lead.status)
        booked = status in BOOKED_STATUSES
        broker_fees = parse_amount(lead.broker_fees, "broker_fees")

        stats.total_leads += 1
        stats.total_revenue += broker_fees
        if booked:
            stats.booked_leads += 1
        if status not in INACTIVE_STATUSES:
            stats.active_leads += 1

        if lead.assigned_user_id is None:
            continue
        agent_stats = per_agent.get(str(lead.assigned_user_id))
        if agent_stats is None:
            # Lead still points at an agent outside the supplied roster.
            continue
        agent_stats.assigned += 1
        agent_stats.revenue += broker_fees
        if booked:
            agent_stats.booked += 1

    stats.per_agent = list(per_agent.values())
    return stats
