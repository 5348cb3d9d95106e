"""API routers."""
from .system import router as system_router

__all__ = ["system_router"]
