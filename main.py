"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logfire

from config import settings
from database import check_db_connection, get_db_info
from observability.logfire_config import LogfireConfig
from api.routes import (
    email_logs_router,
    email_rules_router,
    forms_router,
    submissions_router,
    templates_router,
)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    LogfireConfig.initialize(token=settings.logfire_token)

    logfire.info(
        "Starting BookingOps API Server",
        environment=settings.environment,
        debug=settings.debug,
        email_transport=settings.email_transport,
    )

    db_info = get_db_info()
    if db_info["status"] == "connected":
        logfire.info("Database connection successful", url=db_info["url"], dialect=db_info["dialect"])
    else:
        logfire.error("Database connection failed", url=db_info["url"], status=db_info["status"])

    if settings.email_transport == "sendgrid" and not settings.sendgrid_api_key:
        logfire.error(
            "SendGrid transport selected without an API key",
            hint="Set SENDGRID_API_KEY or EMAIL_TRANSPORT=console",
        )

    logfire.info("BookingOps API Server startup complete")

    yield

    logfire.info("Shutting down BookingOps API Server")


app = FastAPI(
    title="BookingOps API",
    description="Form intake and rule-driven email notifications",
    version=API_VERSION,
    lifespan=lifespan,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================

@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, str]:
    """Health status of the application and database, for load balancers."""
    db_connected = check_db_connection()

    return {
        "status": "healthy" if db_connected else "degraded",
        "service": "bookingops-api",
        "version": API_VERSION,
        "database": "connected" if db_connected else "disconnected",
        "environment": settings.environment,
    }


@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    return {
        "name": "BookingOps API",
        "version": API_VERSION,
        "description": "Form intake and rule-driven email notifications",
        "docs": "/docs",
        "health": "/health",
    }


# ============================================================================
# API Routers
# ============================================================================

# Public form intake (enqueues rule processing on Celery)
app.include_router(submissions_router)

# Form metadata for the editors
app.include_router(forms_router)

# Rule management, dry runs and job status
app.include_router(email_rules_router)

# Template preview
app.include_router(templates_router)

# Delivery diagnostics
app.include_router(email_logs_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
