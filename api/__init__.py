"""
API Module
FastAPI routers for the DoseKeeper application
"""

from api.users import router as users_router
from api.medications import router as medications_router
from api.schedules import router as schedules_router
from api.doses import router as doses_router
from api.adherence import router as adherence_router
from api.reminders import router as reminders_router

from api.deps import (
    get_db,
    get_current_user_id,
    services,
)


__all__ = [
    # Routers
    "users_router",
    "medications_router",
    "schedules_router",
    "doses_router",
    "adherence_router",
    "reminders_router",
    # Dependencies
    "get_db",
    "get_current_user_id",
    "services",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(users_router, prefix=prefix)
    app.include_router(medications_router, prefix=prefix)
    app.include_router(schedules_router, prefix=prefix)
    app.include_router(doses_router, prefix=prefix)
    app.include_router(adherence_router, prefix=prefix)
    app.include_router(reminders_router, prefix=prefix)
