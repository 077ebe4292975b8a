"""Pydantic schemas for the Budget Gamer API.

All request/response models are defined here for easy import.
"""

from budgetgamer.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from budgetgamer.schemas.game import FreeGameResponse, OfferResponse, SubscriptionGameResponse
from budgetgamer.schemas.article import ArticleResponse
from budgetgamer.schemas.submission import SubmissionData, SubmissionRequest
from budgetgamer.schemas.cron import AdapterTallySchema, ScheduleReportSchema
from budgetgamer.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Games
    "OfferResponse",
    "FreeGameResponse",
    "SubscriptionGameResponse",
    # Articles
    "ArticleResponse",
    # Submissions
    "SubmissionRequest",
    "SubmissionData",
    # Cron
    "AdapterTallySchema",
    "ScheduleReportSchema",
    # Health
    "HealthCheckResponse",
]
