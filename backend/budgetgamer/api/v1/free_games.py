"""Free games listing endpoint."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.dependencies import get_db
from budgetgamer.schemas import ApiResponse, FreeGameResponse
from budgetgamer.services.offer_service import OfferService

router = APIRouter()


@router.get("", response_model=ApiResponse[List[FreeGameResponse]])
async def list_free_games(db: AsyncSession = Depends(get_db)):
    """Free games available right now, soonest-ending first."""
    games = await OfferService(db).list_available_free_games()
    return ApiResponse(data=[FreeGameResponse.model_validate(g) for g in games])
