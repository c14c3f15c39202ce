"""API routers."""

from .auth import router as auth_router
from .cases import router as cases_router

__all__ = ["auth_router", "cases_router"]
