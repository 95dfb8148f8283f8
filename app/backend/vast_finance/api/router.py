"""Top-level API router."""

from fastapi import APIRouter

from vast_finance.api.routes.health import router as health_router
from vast_finance.api.routes.me import router as me_router
from vast_finance.api.routes.targets import router as targets_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(targets_router)
