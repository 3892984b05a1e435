"""
API v1 router that aggregates all endpoint routers.
"""

from fastapi import APIRouter

from costcalc.api.v1.endpoints import (
    health,
    projects,
    currency_rates,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(
    projects.router,
    prefix="/projects",
    tags=["projects"],
)
api_router.include_router(
    currency_rates.router,
    prefix="/currency-rates",
    tags=["currency-rates"],
)
