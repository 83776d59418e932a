"""Pipeline state machine.

Each entity type has an explicit adjacency table. A move that is not listed
is illegal; there are no implicit skips and no self-transitions.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from app.errors import InvalidTransitionError
from app.models.enums import DispatchStatus, LeadStatus, OrderStatus, PipelineEntity, QuoteStatus

_STATE_ENUMS: dict[PipelineEntity, type[enum.Enum]] = {
    PipelineEntity.lead: LeadStatus,
    PipelineEntity.quote: QuoteStatus,
    PipelineEntity.order: OrderStatus,
    PipelineEntity.dispatch: DispatchStatus,
}

TRANSITIONS: dict[PipelineEntity, dict[enum.Enum, frozenset]] = {
    PipelineEntity.lead: {
        LeadStatus.lead: frozenset({LeadStatus.quote, LeadStatus.cancelled}),
        LeadStatus.quote: frozenset({LeadStatus.order, LeadStatus.cancelled}),
        LeadStatus.order: frozenset({LeadStatus.dispatch, LeadStatus.cancelled}),
        LeadStatus.dispatch: frozenset({LeadStatus.completed, LeadStatus.cancelled}),
        LeadStatus.completed: frozenset(),
        LeadStatus.cancelled: frozenset(),
    },
    PipelineEntity.quote: {
        QuoteStatus.draft: frozenset({QuoteStatus.sent}),
        QuoteStatus.sent: frozenset({QuoteStatus.accepted, QuoteStatus.rejected, QuoteStatus.expired}),
        QuoteStatus.accepted: frozenset({QuoteStatus.expired}),
        QuoteStatus.rejected: frozenset(),
        QuoteStatus.expired: frozenset(),
    },
    PipelineEntity.order: {
        OrderStatus.pending_signature: frozenset(
            {OrderStatus.signed, OrderStatus.change_requested, OrderStatus.cancelled}
        ),
        OrderStatus.signed: frozenset(
            {OrderStatus.in_progress, OrderStatus.change_requested, OrderStatus.cancelled}
        ),
        OrderStatus.change_requested: frozenset({OrderStatus.pending_signature, OrderStatus.cancelled}),
        OrderStatus.in_progress: frozenset({OrderStatus.cancelled}),
        OrderStatus.cancelled: frozenset(),
    },
    PipelineEntity.dispatch: {
        DispatchStatus.assigned: frozenset({DispatchStatus.in_transit}),
        DispatchStatus.in_transit: frozenset({DispatchStatus.delivered}),
        DispatchStatus.delivered: frozenset({DispatchStatus.completed}),
        DispatchStatus.completed: frozenset(),
    },
}

# Quote states that lapse once ``valid_until`` has passed.
_EXPIRING_QUOTE_STATES = frozenset({QuoteStatus.sent, QuoteStatus.accepted})


def _coerce_entity(entity_type) -> PipelineEntity | None:
    if isinstance(entity_type, PipelineEntity):
        return entity_type
    try:
        return PipelineEntity(str(entity_type))
    except ValueError:
        return None


def _coerce_state(entity: PipelineEntity, state):
    state_enum = _STATE_ENUMS[entity]
    if isinstance(state, state_enum):
        return state
    if isinstance(state, enum.Enum):
        state = state.value
    try:
        return state_enum(state)
    except ValueError:
        return None


def can_transition(entity_type, current, target) -> bool:
    entity = _coerce_entity(entity_type)
    if entity is None:
        return False
    current_state = _coerce_state(entity, current)
    target_state = _coerce_state(entity, target)
    if current_state is None or target_state is None:
        return False
    return target_state in TRANSITIONS[entity][current_state]


def ensure_transition(entity_type, current, target) -> None:
    if can_transition(entity_type, current, target):
        return
    entity = _coerce_entity(entity_type)
    label = entity.value if entity else str(entity_type)
    raise InvalidTransitionError(
        code="invalid_transition",
        detail=f"{label.capitalize()} cannot move from {_label(current)} to {_label(target)}",
    )


def transition(entity_type, record, target) -> None:
    """Validate and apply ``record.status -> target``."""
    ensure_transition(entity_type, record.status, target)
    record.status = _coerce_state(_coerce_entity(entity_type), target)


def is_terminal(entity_type, state) -> bool:
    entity = _coerce_entity(entity_type)
    if entity is None:
        return False
    coerced = _coerce_state(entity, state)
    if coerced is None:
        return False
    return not TRANSITIONS[entity][coerced]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_quote_expired(status: QuoteStatus, valid_until: datetime | None, now: datetime | None = None) -> bool:
    if valid_until is None or status not in _EXPIRING_QUOTE_STATES:
        return False
    return _as_utc(valid_until) < (now or datetime.now(UTC))


def effective_quote_status(quote, now: datetime | None = None) -> QuoteStatus:
    """Quote status as of ``now``; expiry is evaluated at read time and never persisted."""
    if is_quote_expired(quote.status, quote.valid_until, now):
        return QuoteStatus.expired
    return quote.status


def _label(state) -> str:
    if isinstance(state, enum.Enum):
        return str(state.value)
    return str(state)
