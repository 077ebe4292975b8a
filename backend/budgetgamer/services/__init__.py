"""Business logic services."""

from budgetgamer.services.offer_service import OfferService, SaveOutcome, SaveResult, BatchOutcome
from budgetgamer.services.article_service import ArticleService
from budgetgamer.services.link_preview import LinkPreview, LinkPreviewResolver
from budgetgamer.services.submission_service import SubmissionService, SubmissionType, SubmissionResult

__all__ = [
    "OfferService",
    "SaveOutcome",
    "SaveResult",
    "BatchOutcome",
    "ArticleService",
    "LinkPreview",
    "LinkPreviewResolver",
    "SubmissionService",
    "SubmissionType",
    "SubmissionResult",
]
