"""Scheduler trigger endpoints.

An external cron service calls these with ``Authorization: Bearer
<CRON_SECRET>``.  Each schedule fans out to its adapters concurrently, every
adapter in its own database session, and answers with the per-adapter report.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from budgetgamer.dependencies import get_session_factory, verify_cron_secret
from budgetgamer.schemas import AdapterTallySchema, ApiResponse, ScheduleReportSchema
from budgetgamer.scrapers.factory import AdapterFactory, get_adapter_factory
from budgetgamer.scrapers.scheduler import SCHEDULES, run_adapter_isolated, run_schedule

router = APIRouter(dependencies=[Depends(verify_cron_secret)])


async def _run_named_schedule(
    name: str,
    session_factory: async_sessionmaker[AsyncSession],
    factory: AdapterFactory,
) -> ApiResponse[ScheduleReportSchema]:
    report = await run_schedule(session_factory, SCHEDULES[name], factory)
    return ApiResponse(data=ScheduleReportSchema(schedule=name, **report.to_dict()))


@router.get("/daily", response_model=ApiResponse[ScheduleReportSchema])
async def run_daily(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    factory: AdapterFactory = Depends(get_adapter_factory),
):
    """Reddit, Amazon Prime, Epic, Humble Choice and PS Plus."""
    return await _run_named_schedule("daily", session_factory, factory)


@router.get("/thursday", response_model=ApiResponse[ScheduleReportSchema])
async def run_thursday(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    factory: AdapterFactory = Depends(get_adapter_factory),
):
    """Weekly rotation refresh: Amazon Prime and Epic."""
    return await _run_named_schedule("thursday", session_factory, factory)


@router.get("/run/{adapter_slug}", response_model=ApiResponse[AdapterTallySchema])
async def run_single_adapter(
    adapter_slug: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    factory: AdapterFactory = Depends(get_adapter_factory),
):
    """Run one scheduled adapter and return its tally.

    Submission-only adapters (Steam, GOG, ...) need a link and are not
    runnable here.
    """
    if not factory.has_scheduled_adapter(adapter_slug):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No scheduled adapter registered for: {adapter_slug}",
        )

    tally = await run_adapter_isolated(session_factory, adapter_slug, factory)
    return ApiResponse(data=AdapterTallySchema(**tally))
