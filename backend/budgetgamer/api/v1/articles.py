"""Articles listing endpoint."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.dependencies import get_db
from budgetgamer.schemas import ApiResponse, ArticleResponse
from budgetgamer.services.offer_service import OfferService

router = APIRouter()


@router.get("", response_model=ApiResponse[List[ArticleResponse]])
async def list_articles(db: AsyncSession = Depends(get_db)):
    articles = await OfferService(db).list_available_articles()
    return ApiResponse(data=[ArticleResponse.model_validate(a) for a in articles])
