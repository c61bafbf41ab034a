"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from scopegate.api import admin, health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
