"""HTTP routers."""

from fastapi import APIRouter

from . import health, inventory, repairs

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(repairs.router)
api_router.include_router(inventory.router)
