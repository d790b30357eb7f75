"""
HTTP routes for the ReGain API.
"""

from fastapi import APIRouter

from regain.routes.auth import router as auth_router
from regain.routes.orders import router as orders_router
from regain.routes.sites import router as sites_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(sites_router)
router.include_router(orders_router)

__all__ = ["router"]
