"""Offer persistence gate and availability queries.

Every write of a normalized offer goes through ``OfferService.save`` (or
``replace_batch`` for full monthly snapshots), which decides between insert,
update and skip according to the adapter's dedup policy.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, Union

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.models import Article, FreeGame, SubscriptionGame
from budgetgamer.models.base import utcnow
from budgetgamer.scrapers.base import DedupPolicy, NormalizedOffer
from budgetgamer.scrapers.utils.links import encode_spaces

logger = structlog.get_logger(__name__)

OfferModel = Union[Type[FreeGame], Type[SubscriptionGame]]

# Columns whose upstream values may carry unescaped spaces
ENCODED_COLUMNS = ("cover", "cover_portrait", "provider_url")


class SaveOutcome(str, enum.Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class SaveResult:
    """What the gate did with one offer, and the row it touched."""

    outcome: SaveOutcome
    record: Any


@dataclass
class BatchOutcome:
    """Result of a batch replace."""

    added: int = 0
    purged: int = 0
    skipped: int = 0


class OfferService:
    """Deduplicating writes and availability reads for offer tables."""

    def __init__(self, db: AsyncSession):
        """Initialize offer service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="offer_service")

    @staticmethod
    def prepare_columns(offer: NormalizedOffer, model: OfferModel) -> Dict[str, Any]:
        """Column values for ``model`` with spaces percent-encoded."""
        values = offer.to_columns()
        for column in ENCODED_COLUMNS:
            values[column] = encode_spaces(values[column])
        if model is FreeGame:
            values["free"] = offer.free
        return values

    @staticmethod
    def prepare_key(key: Dict[str, Any]) -> Dict[str, Any]:
        return {
            column: encode_spaces(value) if column in ENCODED_COLUMNS else value
            for column, value in key.items()
        }

    async def find_existing(self, model, key: Dict[str, Any]):
        """First row of ``model`` matching every column in ``key``."""
        query = select(model)
        for column, value in self.prepare_key(key).items():
            query = query.where(getattr(model, column) == value)
        result = await self.db.execute(query.limit(1))
        return result.scalars().first()

    async def exists(self, model, **key) -> bool:
        return await self.find_existing(model, key) is not None

    async def save(
        self,
        offer: NormalizedOffer,
        model: OfferModel,
        policy: DedupPolicy = DedupPolicy.SKIP_ON_EXISTS,
        key: Optional[Dict[str, Any]] = None,
    ) -> SaveResult:
        """Insert ``offer`` unless an equivalent row exists.

        Args:
            offer: Normalized offer from an adapter
            model: FreeGame or SubscriptionGame
            policy: SKIP_ON_EXISTS leaves an existing row untouched,
                UPDATE_ON_EXISTS overwrites its fields and keeps its id
            key: Columns identifying an equivalent row (default provider_url)

        Returns:
            SaveResult with the outcome and the stored (or existing) row
        """
        if policy == DedupPolicy.REPLACE_BATCH:
            raise ValueError("REPLACE_BATCH offers must go through replace_batch()")

        values = self.prepare_columns(offer, model)
        existing = await self.find_existing(model, key or {"provider_url": offer.provider_url})

        if existing is not None:
            if policy == DedupPolicy.UPDATE_ON_EXISTS:
                for column, value in values.items():
                    setattr(existing, column, value)
                await self.db.flush()
                self.logger.debug("offer_updated", name=offer.name, id=str(existing.id))
                return SaveResult(SaveOutcome.UPDATED, existing)

            self.logger.debug("offer_exists", name=offer.name, provider_url=values["provider_url"])
            return SaveResult(SaveOutcome.SKIPPED, existing)

        record = model(**values)
        self.db.add(record)
        await self.db.flush()
        self.logger.debug("offer_added", name=offer.name, id=str(record.id))
        return SaveResult(SaveOutcome.ADDED, record)

    async def replace_batch(
        self,
        offers: Sequence[NormalizedOffer],
        model: OfferModel,
        provider_id: str,
    ) -> BatchOutcome:
        """Replace every ``provider_id`` row of ``model`` with ``offers``.

        If the batch's first provider_url is already stored, the batch is
        considered ingested and nothing changes.  Otherwise the purge and the
        inserts run in one savepoint, so either all of them land or none do.
        """
        if not offers:
            return BatchOutcome()

        first_url = offers[0].provider_url
        if await self.exists(model, provider_url=first_url):
            self.logger.info("batch_already_ingested", provider_id=provider_id, first_url=first_url)
            return BatchOutcome(skipped=len(offers))

        async with self.db.begin_nested():
            result = await self.db.execute(
                delete(model).where(model.provider_id == provider_id)
            )
            self.db.add_all(model(**self.prepare_columns(offer, model)) for offer in offers)
            await self.db.flush()

        outcome = BatchOutcome(added=len(offers), purged=result.rowcount or 0)
        self.logger.info(
            "batch_replaced",
            provider_id=provider_id,
            added=outcome.added,
            purged=outcome.purged,
        )
        return outcome

    async def list_available(self, model, now: Optional[datetime] = None) -> List[Any]:
        """Rows live at ``now`` (both window ends inclusive), soonest-ending first."""
        now = (now or utcnow()).astimezone(timezone.utc)
        result = await self.db.execute(
            select(model)
            .where(model.start_date <= now, model.end_date >= now)
            .order_by(model.end_date.asc())
        )
        return list(result.scalars().all())

    async def list_available_free_games(self, now: Optional[datetime] = None) -> List[FreeGame]:
        return await self.list_available(FreeGame, now)

    async def list_available_subscription_games(self, now: Optional[datetime] = None) -> List[SubscriptionGame]:
        return await self.list_available(SubscriptionGame, now)

    async def list_available_articles(self, now: Optional[datetime] = None) -> List[Article]:
        return await self.list_available(Article, now)
