"""Budget Gamer Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from budgetgamer.api.v1.router import api_v1_router
from budgetgamer.config import settings
from budgetgamer.core.exceptions import BudgetGamerException
from budgetgamer.db.session import async_session_factory, engine
from budgetgamer.models.base import Base
from budgetgamer.schemas import ErrorResponse
from budgetgamer.scrapers.register_adapters import register_all_adapters
from budgetgamer.scrapers.scheduler import CronScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[CronScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    # Startup
    logger.info("Starting Budget Gamer API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    try:
        # Import all models so they register with Base.metadata
        from budgetgamer.models import article, game  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified/created")
    except Exception as e:
        logger.error(f"Database init failed: {e}", exc_info=True)

    logger.info("Registering scraper adapters...")
    register_all_adapters()

    if settings.ENABLE_SCHEDULER and settings.ENVIRONMENT != "test":
        logger.info("Initializing cron scheduler...")
        scheduler = CronScheduler(async_session_factory)
        scheduler.start()
    else:
        logger.info("In-process scheduler disabled; relying on /api/v1/cron triggers")

    yield

    # Shutdown
    logger.info("Shutting down Budget Gamer API server...")
    if scheduler:
        logger.info("Stopping cron scheduler...")
        scheduler.stop()

    await engine.dispose()


app = FastAPI(
    title="Budget Gamer API",
    description="Free game, subscription game and giveaway article aggregator",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BudgetGamerException)
async def budget_gamer_exception_handler(request: Request, exc: BudgetGamerException):
    """Render domain errors as the standard error envelope."""
    body = ErrorResponse.from_exception(exc)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Budget Gamer API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
