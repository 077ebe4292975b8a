"""Article response schema."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ArticleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    cover: str
    link: str
    domain: str
    start_date: datetime
    end_date: datetime
    created_at: datetime
