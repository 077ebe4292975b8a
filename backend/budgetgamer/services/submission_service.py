"""User link submissions.

A submission is either a game link, routed through the link classifier to
the matching provider adapter, or an article link, routed through the
article service.  Every rejection is a typed ``BudgetGamerException``.
"""

import enum
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.core.exceptions import (
    AlreadyExistsError,
    BudgetGamerException,
    NotSupportedYetError,
    ScraperError,
    UnsupportedLinkError,
)
from budgetgamer.models import FreeGame, SubscriptionGame
from budgetgamer.scrapers.base import EntityKind
from budgetgamer.scrapers.factory import AdapterFactory, get_adapter_factory
from budgetgamer.scrapers.utils.links import LinkKind, classify
from budgetgamer.services.article_service import ArticleService
from budgetgamer.services.link_preview import LinkPreviewResolver
from budgetgamer.services.offer_service import OfferService, SaveOutcome

logger = structlog.get_logger(__name__)


class SubmissionType(str, enum.Enum):
    GAME = "game"
    ARTICLE = "article"


@dataclass
class SubmissionResult:
    entity_kind: str
    provider: str
    id: UUID


class SubmissionService:
    """Accepts a single URL plus a type tag and stores the resulting record."""

    def __init__(
        self,
        db: AsyncSession,
        factory: Optional[AdapterFactory] = None,
        resolver: Optional[LinkPreviewResolver] = None,
    ):
        self.db = db
        self.factory = factory or get_adapter_factory()
        self.offer_service = OfferService(db)
        self.article_service = ArticleService(db, resolver)
        self.logger = logger.bind(service="submission_service")

    async def submit(self, url: str, submission_type: SubmissionType) -> SubmissionResult:
        if submission_type == SubmissionType.ARTICLE:
            return await self.submit_article(url)
        return await self.submit_game(url)

    async def submit_article(self, url: str) -> SubmissionResult:
        article = await self.article_service.create_from_link(url)
        return SubmissionResult(entity_kind=EntityKind.ARTICLE.value, provider=article.domain, id=article.id)

    async def submit_game(self, url: str) -> SubmissionResult:
        """Classify, check for conflicts, fetch and persist a game link.

        Raises:
            InvalidLinkError: Malformed URL
            UnsupportedLinkError: No game pattern matches
            NotSupportedYetError: Epic Games links
            AlreadyExistsError: The provider_url is already stored
            NotFreeError: The provider reports the game is not free
            ScraperError: Any other failure while fetching the game
        """
        url = (url or "").strip()
        classification = classify(url)
        if not classification.is_game:
            raise UnsupportedLinkError(url)
        if classification.kind == LinkKind.EPIC_GAMES:
            raise NotSupportedYetError(classification.provider_name)

        adapter = self.factory.create_adapter(classification.kind)
        if adapter is None:
            raise UnsupportedLinkError(url)
        model = SubscriptionGame if adapter.entity_kind == EntityKind.SUBSCRIPTION_GAME else FreeGame

        # Humble submissions may join several links; the first is canonical
        provider_url = url.split(",")[0].strip()
        if await self.offer_service.exists(model, provider_url=provider_url):
            raise AlreadyExistsError("Game", provider_url)

        provider = classification.provider_name
        self.logger.info("processing_game_submission", provider=classification.kind, url=url)
        try:
            offer = await adapter.fetch_offer(url)
        except BudgetGamerException:
            raise
        except Exception as e:
            self.logger.error("game_submission_failed", provider=classification.kind, error=str(e), exc_info=True)
            raise ScraperError(provider, f"Failed to process {provider} game: {e}") from e
        finally:
            await adapter.cleanup()

        result = await self.offer_service.save(offer, model, adapter.dedup_policy, adapter.dedup_key(offer))
        if result.outcome == SaveOutcome.SKIPPED:
            raise AlreadyExistsError("Game", offer.provider_url)

        return SubmissionResult(entity_kind=adapter.entity_kind.value, provider=classification.kind, id=result.record.id)
