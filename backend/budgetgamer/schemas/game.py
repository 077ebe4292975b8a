"""Free game and subscription game response schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class OfferResponse(BaseModel):
    """Fields shared by every offer listing."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    cover: str
    cover_portrait: str
    description: str
    developer: str
    publisher: Optional[str] = None
    platform_ids: List[str]
    provider_id: str
    provider_url: str
    start_date: datetime
    end_date: datetime
    release_date: Optional[datetime] = None
    created_at: datetime


class FreeGameResponse(OfferResponse):
    """Free game listing."""

    free: bool


class SubscriptionGameResponse(OfferResponse):
    """Subscription game listing."""
