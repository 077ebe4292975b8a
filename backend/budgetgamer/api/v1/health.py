"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.dependencies import get_db
from budgetgamer.schemas import HealthCheckResponse
from budgetgamer.scrapers.factory import AdapterFactory, get_adapter_factory

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    factory: AdapterFactory = Depends(get_adapter_factory),
):
    """Return service health status.

    Reports database connectivity and the adapters available to the
    scheduler.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return HealthCheckResponse(
        status="ok" if db_status == "ok" else "degraded",
        database=db_status,
        adapters=factory.get_registered_slugs(),
    )
