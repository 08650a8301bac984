"""Health module - service liveness."""

from apps.health.routes import router

__all__ = ["router"]
