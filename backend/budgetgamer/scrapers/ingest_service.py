"""Ingestion orchestration service.

Connects the adapter layer with the persistence gate: runs one adapter,
feeds its records through the gate under the adapter's dedup policy and
tallies what happened.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.core.exceptions import AlreadyExistsError
from budgetgamer.models import FreeGame, SubscriptionGame
from budgetgamer.scrapers.base import BaseAdapter, DedupPolicy, EntityKind
from budgetgamer.scrapers.factory import AdapterFactory, get_adapter_factory
from budgetgamer.services.article_service import ArticleService
from budgetgamer.services.link_preview import LinkPreviewResolver
from budgetgamer.services.offer_service import OfferService, SaveOutcome

logger = structlog.get_logger(__name__)


@dataclass
class AdapterTally:
    """Per-adapter run statistics."""

    adapter: str
    total: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class IngestService:
    """Runs adapters and persists their output.

    Per-item failures are tallied and never abort the run; an adapter that
    cannot run at all raises to the caller.
    """

    def __init__(
        self,
        db: AsyncSession,
        factory: Optional[AdapterFactory] = None,
        resolver: Optional[LinkPreviewResolver] = None,
    ):
        """Initialize ingest service.

        Args:
            db: Async database session
            factory: Adapter factory, the global one by default
            resolver: Preview resolver used for article sources
        """
        self.db = db
        self.factory = factory or get_adapter_factory()
        self.offer_service = OfferService(db)
        self.article_service = ArticleService(db, resolver)
        self.logger = logger.bind(service="ingest_service")

    async def run_adapter(self, slug: str) -> AdapterTally:
        """Run a single adapter and persist its results.

        Raises:
            ValueError: If no adapter is registered under ``slug``
            AdapterFailure: If the adapter cannot run at all
        """
        adapter = self.factory.create_adapter(slug)
        if adapter is None:
            raise ValueError(f"No adapter registered for: {slug}")

        self.logger.info("running_adapter", adapter=slug)
        try:
            if adapter.entity_kind == EntityKind.ARTICLE:
                tally = await self._ingest_articles(adapter)
            else:
                tally = await self._ingest_offers(adapter)
        except Exception as e:
            self.logger.error("adapter_run_failed", adapter=slug, error=str(e), exc_info=True)
            raise
        finally:
            await adapter.cleanup()

        self.logger.info("adapter_run_complete", **tally.to_dict())
        return tally

    async def _ingest_offers(self, adapter: BaseAdapter) -> AdapterTally:
        offers = await adapter.fetch_offers()
        tally = AdapterTally(
            adapter=adapter.slug,
            total=len(offers) + len(adapter.failures),
            failed=len(adapter.failures),
            errors=list(adapter.failures),
        )
        model = SubscriptionGame if adapter.entity_kind == EntityKind.SUBSCRIPTION_GAME else FreeGame

        if adapter.dedup_policy == DedupPolicy.REPLACE_BATCH:
            try:
                outcome = await self.offer_service.replace_batch(offers, model, adapter.provider_id)
                tally.added += outcome.added
                tally.skipped += outcome.skipped
            except Exception as e:
                tally.failed += len(offers)
                tally.errors.append(f"batch: {e}")
                self.logger.error("batch_replace_failed", adapter=adapter.slug, error=str(e), exc_info=True)
            return tally

        for offer in offers:
            try:
                async with self.db.begin_nested():
                    result = await self.offer_service.save(
                        offer, model, adapter.dedup_policy, adapter.dedup_key(offer)
                    )
            except Exception as e:
                tally.failed += 1
                tally.errors.append(f"{offer.name}: {e}")
                self.logger.error("offer_processing_failed", name=offer.name[:50], error=str(e), exc_info=True)
                continue

            if result.outcome == SaveOutcome.ADDED:
                tally.added += 1
            elif result.outcome == SaveOutcome.UPDATED:
                tally.updated += 1
            else:
                tally.skipped += 1

        return tally

    async def _ingest_articles(self, adapter: BaseAdapter) -> AdapterTally:
        links = await adapter.fetch_links()
        tally = AdapterTally(
            adapter=adapter.slug,
            total=len(links) + len(adapter.failures),
            failed=len(adapter.failures),
            errors=list(adapter.failures),
        )

        for link in links:
            try:
                async with self.db.begin_nested():
                    await self.article_service.create_from_link(link)
                tally.added += 1
            except AlreadyExistsError:
                tally.skipped += 1
            except Exception as e:
                tally.failed += 1
                tally.errors.append(f"{link}: {e}")
                self.logger.warning("article_processing_failed", link=link, error=str(e))

        return tally
