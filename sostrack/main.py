"""
SOS Tracker - FastAPI application entry point.

Serves the roster of tracked users with their last known positions, fans
SOS alerts out to connected dashboards over a websocket, and asks an
external routing provider for directions to a selected user.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sostrack.alerts import AlertChannel
from sostrack.config import settings
from sostrack.database import init_db
from sostrack.dependencies import channel, get_alert_channel
from sostrack.errors import TrackerError
from sostrack.logging_config import setup_logging
from sostrack.routes import directions, sos, users, ws

setup_logging()
logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------- ERRORS ----------------

@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return await request_validation_exception_handler(request, exc)


# ---------------- LIFECYCLE ----------------

@app.on_event("shutdown")
async def shutdown_event():
    channel.close_all()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ---------------- ROUTES ----------------

@app.get("/")
def health_check(alert_channel: AlertChannel = Depends(get_alert_channel)):
    return {
        "status": "online",
        "system": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "alert_subscribers": alert_channel.subscriber_count,
    }


app.include_router(users.router)
app.include_router(sos.router)
app.include_router(ws.router)
app.include_router(directions.router)
