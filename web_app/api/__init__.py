"""JSON API routers."""

from fastapi import APIRouter

from .routes import router as core_router
from .admin import router as admin_router

api_router = APIRouter()
api_router.include_router(core_router)
api_router.include_router(admin_router)

__all__ = ["api_router"]
