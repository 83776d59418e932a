import enum


class CustomerStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    pending = "pending"


class CustomerUserRole(enum.Enum):
    admin = "admin"
    user = "user"
    viewer = "viewer"


class CustomerUserStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


class PipelineEntity(enum.Enum):
    lead = "lead"
    quote = "quote"
    order = "order"
    dispatch = "dispatch"


class LeadStatus(enum.Enum):
    lead = "lead"
    quote = "quote"
    order = "order"
    dispatch = "dispatch"
    completed = "completed"
    cancelled = "cancelled"


class LeadPriority(enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class TrailerType(enum.Enum):
    open = "open"
    enclosed = "enclosed"


class VehicleCondition(enum.Enum):
    run = "run"
    inop = "inop"


class QuoteStatus(enum.Enum):
    draft = "draft"
    sent = "sent"
    accepted = "accepted"
    rejected = "rejected"
    expired = "expired"


class ContractType(enum.Enum):
    standard = "standard"
    with_cc = "with_cc"
    without_cc = "without_cc"


class OrderStatus(enum.Enum):
    pending_signature = "pending_signature"
    signed = "signed"
    in_progress = "in_progress"
    change_requested = "change_requested"
    cancelled = "cancelled"


class DispatchStatus(enum.Enum):
    assigned = "assigned"
    in_transit = "in_transit"
    delivered = "delivered"
    completed = "completed"
