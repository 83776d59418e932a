from app.models.enums import (  # noqa: F401
    ContractType,
    CustomerStatus,
    CustomerUserRole,
    CustomerUserStatus,
    DispatchStatus,
    LeadPriority,
    LeadStatus,
    OrderStatus,
    PipelineEntity,
    QuoteStatus,
    TrailerType,
    VehicleCondition,
)
from app.models.shipping import Dispatch, Lead, Order, Quote  # noqa: F401
from app.models.tenant import Customer, CustomerUser  # noqa: F401
