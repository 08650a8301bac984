"""Main API router that registers all sub-routers.

This module aggregates all domain-specific routers into a single router
that gets mounted in main.py.
"""

from fastapi import APIRouter

from apps.drive import router as drive_router
from apps.health import router as health_router
from apps.retrieval import router as retrieval_router

# Create main API router
router = APIRouter()

# Register all domain routers
router.include_router(health_router)
router.include_router(drive_router)
router.include_router(retrieval_router)
