"""API routers."""
from .assessment import router

__all__ = ["router"]
