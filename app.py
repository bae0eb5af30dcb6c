"""
DoseKeeper Backend
FastAPI application for medication schedules, dose tracking and reminders
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings, timing_config
from database import init_db, DatabaseHealthCheck
from api import include_routers
from services.adherence_service import configured_policy

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup and report the active dose timing policy"""
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} starting ({settings.ENV})")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Could not initialise the dose database: {e}")
        raise

    logger.info(
        f"Dose timing: due window {timing_config.DUE_WINDOW_MINUTES}m, "
        f"grace {timing_config.DEFAULT_GRACE_PERIOD_MINUTES}m, "
        f"cutoff {timing_config.DEFAULT_MISSED_DOSE_CUTOFF_MINUTES}m, "
        f"late-taken policy {configured_policy().value}"
    )

    yield

    logger.info(f"{settings.APP_NAME} stopped")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## DoseKeeper API

    Medication schedules, dose tracking and adherence.

    - **Schedules**: Daily or weekday-specific dose times per medication
    - **Doses**: Live status for every dose (upcoming, due, overdue, missed, taken)
    - **Actions**: Take, skip or snooze a dose
    - **Adherence**: Percentages, streaks and a monthly calendar
    - **Reminders**: What to notify now and what to schedule later
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

include_routers(app, prefix=settings.API_PREFIX)


# ==================== EXCEPTION HANDLERS ====================

def _error_response(status_code: int, message: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(500, str(exc) if settings.DEBUG else "An unexpected error occurred")


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Liveness probe"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Database status, row counts and the dose timing defaults in effect"""
    db_connected = DatabaseHealthCheck.is_connected()
    database = {
        "status": "up" if db_connected else "down",
        "backend": settings.DATABASE_URL.split(":", 1)[0],
    }
    if db_connected:
        database["tables"] = DatabaseHealthCheck.get_table_counts()

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {"database": database},
        "config": {
            "due_window_minutes": timing_config.DUE_WINDOW_MINUTES,
            "default_grace_period_minutes": timing_config.DEFAULT_GRACE_PERIOD_MINUTES,
            "default_reminder_window_minutes": timing_config.DEFAULT_REMINDER_WINDOW_MINUTES,
            "default_missed_dose_cutoff_minutes": timing_config.DEFAULT_MISSED_DOSE_CUTOFF_MINUTES,
            "late_taken_policy": configured_policy().value,
            "reminder_poll_seconds": settings.REMINDER_POLL_SECONDS
        },
        "version": settings.APP_VERSION
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
