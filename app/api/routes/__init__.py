from __future__ import annotations

from app.api.routes.credentials import router as credentials_router
from app.api.routes.health import router as health_router
from app.api.routes.search import router as search_router

__all__ = ["credentials_router", "health_router", "search_router"]
