"""
FastAPI Application Entry Point.

This is the main application file for the Business OS Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from bizos.app.core.config import settings
from bizos.app.api.v1.router import router as api_v1_router
from bizos.app.db.session import engine, Base
from bizos.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from bizos.app.core.observability import ObservabilityMiddleware, configure_logging
from bizos.app.core.redis_client import ping_redis, close_redis

# Import models to ensure they are registered with Base
from bizos.app.models.user import User
from bizos.app.models.audit_log import AuditLog
from bizos.app.models.account import Account
from bizos.app.models.transaction import Transaction
from bizos.app.models.ledger_entry import LedgerEntry
from bizos.app.models.contact import Contact
from bizos.app.models.customer_ledger_entry import CustomerLedgerEntry
from bizos.app.models.outlet import Outlet
from bizos.app.models.loyalty_log import LoyaltyLog
from bizos.app.models.maintenance_lock import MaintenanceLock

configure_logging(settings.log_level)
logger = logging.getLogger("bizos.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create tables on startup; release the database pool and Redis
    connections on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await close_redis()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Double-entry ledger, customer credit and loyalty backend",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "ok" if await ping_redis() else "unavailable",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Business OS Backend API",
        "docs": "/docs",
        "health": "/health",
    }
