"""API routes package."""

from app.routes.alerts import admin_router as admin_alerts_router
from app.routes.alerts import router as alerts_router
from app.routes.dates import router as dates_router
from app.routes.health import router as health_router

__all__ = ["admin_alerts_router", "alerts_router", "dates_router", "health_router"]
