"""
FastAPI application entry point.
Configures routes, middleware, error handlers and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import init_db, close_db, check_db
from app.logging_config import configure_logging
from app.services.errors import BillingError

from app.api.payments import router as payments_router
from app.api.subscriptions import router as subscriptions_router
from app.api.catalog import router as catalog_router
from app.api.practice import router as practice_router
from app.api.cards import router as cards_router
from app.api.webhooks.razorpay import router as razorpay_router
from app.api.admin.plans import router as admin_plans_router
from app.api.admin.reports import router as admin_reports_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    configure_logging()
    logger.info(f"Starting up {settings.app_name} ({settings.app_env})...")

    # Production schema is managed by alembic
    if settings.is_development:
        await init_db()

    yield

    await close_db()
    logger.info("Shutting down...")


app = FastAPI(
    title="BiologyKingdom API",
    description="Exam preparation: PYQ practice and plan subscriptions",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


@app.exception_handler(BillingError)
async def billing_exception_handler(request: Request, exc: BillingError):
    """Expected failures render as {success: false, error}."""
    content = {"success": False, "error": exc.message}
    if settings.is_development and exc.__cause__ is not None:
        content["message"] = str(exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=content)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    content = {"success": False, "error": "Internal Server Error"}
    if settings.is_development:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# CORS middleware
origins = [
    "https://biologykingdom.com",
    "https://www.biologykingdom.com",
]
if settings.is_development:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Liveness plus database connectivity."""
    database = await check_db()
    return {
        "status": "healthy" if database != "error" else "degraded",
        "app": settings.app_name,
        "env": settings.app_env,
        "database": database,
    }


app.include_router(payments_router)
app.include_router(subscriptions_router)
app.include_router(catalog_router)
app.include_router(practice_router)
app.include_router(cards_router)

# Register webhook routes
app.include_router(
    razorpay_router,
    prefix="/webhooks",
    tags=["webhooks"],
)

# Register admin routes
app.include_router(
    admin_plans_router,
    prefix="/admin",
    tags=["admin"],
)
app.include_router(
    admin_reports_router,
    prefix="/admin",
    tags=["admin"],
)
