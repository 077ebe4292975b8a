"""Link submission endpoint."""

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.dependencies import get_db
from budgetgamer.schemas import ApiResponse, ErrorResponse, SubmissionData, SubmissionRequest
from budgetgamer.scrapers.factory import AdapterFactory, get_adapter_factory
from budgetgamer.services.submission_service import SubmissionService

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "",
    response_model=ApiResponse[SubmissionData],
    status_code=status.HTTP_201_CREATED,
    summary="Submit a game or article link",
    responses={
        400: {"model": ErrorResponse, "description": "Malformed, unsupported or disallowed link"},
        409: {"model": ErrorResponse, "description": "Link already stored"},
        422: {"model": ErrorResponse, "description": "Game is not free"},
        502: {"model": ErrorResponse, "description": "Provider could not be read"},
    },
)
async def submit_link(
    body: SubmissionRequest,
    db: AsyncSession = Depends(get_db),
    factory: AdapterFactory = Depends(get_adapter_factory),
):
    """Store the game or article behind ``body.url``.

    Game links are classified by store and fetched through that store's
    adapter; article links must belong to an allowed domain.  Rejections are
    rendered as ``ErrorResponse`` by the application exception handler.
    """
    logger.info("submission_received", type=body.type.value, url=body.url)
    result = await SubmissionService(db, factory=factory).submit(body.url, body.type)
    return ApiResponse(
        data=SubmissionData(entity_kind=result.entity_kind, provider=result.provider, id=result.id)
    )
