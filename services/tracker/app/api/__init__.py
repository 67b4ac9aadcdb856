"""API routers."""

from app.api.redirect import router as redirect_router
from app.api.v1.router import router as v1_router

__all__ = ["redirect_router", "v1_router"]
