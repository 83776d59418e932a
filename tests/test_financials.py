import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.errors import PipelineValidationError
from app.logic.financials import compute_tenant_stats, conversion_rate, parse_amount, total_tariff
from app.models import LeadStatus
from app.services import stats as stats_service


def _agent(first_name):
    return SimpleNamespace(id=uuid.uuid4(), display_name=f"{first_name} Agent")


def _lead(status, broker_fees="0", assigned=None):
    return SimpleNamespace(
        status=status,
        broker_fees=Decimal(broker_fees),
        assigned_user_id=assigned.id if assigned else None,
    )


def test_total_tariff_adds_fees():
    assert total_tariff(Decimal("800.00"), Decimal("200.00")) == Decimal("1000.00")
    assert total_tariff("450.5", "49.5") == Decimal("500.00")


def test_total_tariff_of_zero_strings_is_zero():
    assert total_tariff("0", "0") == Decimal("0")
    assert total_tariff(None, "") == Decimal("0.00")


def test_parse_amount_rejects_bad_values():
    with pytest.raises(PipelineValidationError) as exc:
        parse_amount("twelve", "carrier_fees")
    assert exc.value.code == "invalid_amount"

    with pytest.raises(PipelineValidationError) as exc:
        parse_amount("-1", "broker_fees")
    assert exc.value.code == "negative_amount"

    with pytest.raises(PipelineValidationError):
        parse_amount("NaN")


def test_parse_amount_rounds_to_cents():
    assert parse_amount("10.005") == Decimal("10.01")


def test_conversion_rate_guards_zero():
    assert conversion_rate(0, 0) == 0.0
    assert conversion_rate(1, 4) == 0.25


def test_agent_without_leads_has_zero_conversion_rate():
    idle = _agent("Idle")
    stats = compute_tenant_stats([], [idle])

    assert stats.per_agent[0].assigned == 0
    assert stats.per_agent[0].conversion_rate == 0.0
    assert stats.conversion_rate == 0.0


def test_tenant_stats_rollup():
    alex = _agent("Alex")
    blair = _agent("Blair")
    leads = [
        _lead(LeadStatus.completed, "150.00", alex),
        _lead(LeadStatus.quote, "100.00", alex),
        _lead("booked", "50.00", blair),
        _lead(LeadStatus.cancelled, "25.00", blair),
        _lead(LeadStatus.lead, "10.00"),
    ]

    stats = compute_tenant_stats(leads, [alex, blair])

    assert stats.total_leads == 5
    assert stats.active_leads == 2
    assert stats.booked_leads == 2
    assert stats.total_revenue == Decimal("335.00")
    assert stats.conversion_rate == 0.4

    by_name = {agent.agent_name: agent for agent in stats.per_agent}
    assert by_name["Alex Agent"].assigned == 2
    assert by_name["Alex Agent"].booked == 1
    assert by_name["Alex Agent"].conversion_rate == 0.5
    assert by_name["Alex Agent"].revenue == Decimal("250.00")
    assert by_name["Blair Agent"].booked == 1
    assert by_name["Blair Agent"].revenue == Decimal("75.00")


def test_tenant_stats_from_database(db_session, customer, make_agent, make_lead):
    agent = make_agent()
    make_agent(first_name="Idle")
    make_lead(assigned_user_id=agent.id, broker_fees=Decimal("300"))
    make_lead(broker_fees=Decimal("120"))

    stats = stats_service.tenant_stats(db_session, customer.id)

    assert stats.total_leads == 2
    assert stats.active_leads == 2
    assert stats.total_revenue == Decimal("420.00")
    assert len(stats.per_agent) == 2
    assigned = next(row for row in stats.per_agent if row.agent_id == str(agent.id))
    assert assigned.assigned == 1
    assert assigned.conversion_rate == 0.0
