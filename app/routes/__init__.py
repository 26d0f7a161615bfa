"""APIRouter registration for the survey service."""

from __future__ import annotations

from fastapi import APIRouter

from app.routes.admin import router as admin_router
from app.routes.health import router as health_router
from app.routes.survey import router as survey_router

api_router = APIRouter()
api_router.include_router(survey_router, tags=["Checkout survey"])
api_router.include_router(admin_router, tags=["Admin"])
api_router.include_router(health_router, tags=["Health"])

__all__ = ["api_router"]
