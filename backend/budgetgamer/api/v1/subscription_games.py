"""Subscription games listing endpoint."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.dependencies import get_db
from budgetgamer.schemas import ApiResponse, SubscriptionGameResponse
from budgetgamer.services.offer_service import OfferService

router = APIRouter()


@router.get("", response_model=ApiResponse[List[SubscriptionGameResponse]])
async def list_subscription_games(db: AsyncSession = Depends(get_db)):
    """Prime, Humble Choice and PS Plus games in their current window."""
    games = await OfferService(db).list_available_subscription_games()
    return ApiResponse(data=[SubscriptionGameResponse.model_validate(g) for g in games])
