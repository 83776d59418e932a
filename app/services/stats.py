from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.logic.financials import TenantStats, compute_tenant_stats
from app.models.enums import CustomerUserRole
from app.models.shipping import Lead
from app.models.tenant import CustomerUser
from app.services.customers import Customers

logger = logging.getLogger(__name__)


def tenant_stats(db: Session, customer_id: str) -> TenantStats:
    """Lead and revenue statistics for one tenant, broken down per agent."""
    customer = Customers.get(db, customer_id)
    leads = db.query(Lead).filter(Lead.customer_id == customer.id).all()
    agents = (
        db.query(CustomerUser)
        .filter(CustomerUser.customer_id == customer.id)
        .filter(CustomerUser.role == CustomerUserRole.user)
        .order_by(CustomerUser.last_name.asc(), CustomerUser.first_name.asc())
        .all()
    )
    stats = compute_tenant_stats(leads, agents)
    logger.debug(
        "tenant_stats customer_id=%s total_leads=%s agents=%s",
        customer.id,
        stats.total_leads,
        len(stats.per_agent),
    )
    return stats
