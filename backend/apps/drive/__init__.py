"""Drive module - pass-through listing and download."""

from apps.drive.routes import router

__all__ = ["router"]
