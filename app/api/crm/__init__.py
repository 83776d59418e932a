from fastapi import APIRouter

from app.api.crm.customers import router as customers_router
from app.api.crm.dispatches import router as dispatches_router
from app.api.crm.leads import router as leads_router
from app.api.crm.orders import router as orders_router
from app.api.crm.quotes import router as quotes_router

router = APIRouter(tags=["crm"])
router.include_router(customers_router)
router.include_router(leads_router)
router.include_router(quotes_router)
router.include_router(orders_router)
router.include_router(dispatches_router)

__all__ = ["router"]
