"""Health check response schema."""

from typing import List

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    database: str
    adapters: List[str] = []
