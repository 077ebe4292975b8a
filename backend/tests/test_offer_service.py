"""Tests for the persistence gate and availability queries."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from budgetgamer.models import Article, FreeGame, SubscriptionGame
from budgetgamer.scrapers.base import DedupPolicy
from budgetgamer.services.offer_service import OfferService, SaveOutcome

from conftest import NOW, as_utc, make_offer


async def count(db, model, *criteria) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


# ============================================================================
# DEDUP POLICIES
# ============================================================================

class TestSave:
    """Test insert / skip / update decisions."""

    async def test_insert_then_skip(self, test_db):
        """Test a second save of the same provider_url leaves one row."""
        service = OfferService(test_db)
        offer = make_offer()

        first = await service.save(offer, FreeGame, DedupPolicy.SKIP_ON_EXISTS)
        second = await service.save(offer, FreeGame, DedupPolicy.SKIP_ON_EXISTS)

        assert first.outcome == SaveOutcome.ADDED
        assert second.outcome == SaveOutcome.SKIPPED
        assert second.record.id == first.record.id
        assert await count(test_db, FreeGame) == 1

    async def test_update_keeps_id(self, test_db):
        """Test an Epic-style update overwrites fields but not the id."""
        service = OfferService(test_db)
        original = make_offer(provider_id="epic_games", provider_url="https://store.epicgames.com/en-US/p/x")
        first = await service.save(original, FreeGame, DedupPolicy.UPDATE_ON_EXISTS)

        refreshed = make_offer(
            provider_id="epic_games",
            provider_url="https://store.epicgames.com/en-US/p/x",
            end_date=NOW + timedelta(days=10),
            description="New description",
        )
        second = await service.save(refreshed, FreeGame, DedupPolicy.UPDATE_ON_EXISTS)

        assert second.outcome == SaveOutcome.UPDATED
        assert second.record.id == first.record.id
        row = (await test_db.execute(select(FreeGame))).scalar_one()
        assert row.description == "New description"
        assert as_utc(row.end_date) == NOW + timedelta(days=10)

    async def test_custom_key(self, test_db):
        """Test a name + provider key treats differently linked copies as one."""
        service = OfferService(test_db)
        key = lambda o: {"name": o.name, "provider_id": o.provider_id}
        a = make_offer(name="Prime Game", provider_id="amazon_games", provider_url="https://gaming.amazon.com/a?ref=1")
        b = make_offer(name="Prime Game", provider_id="amazon_games", provider_url="https://gaming.amazon.com/a?ref=2")

        await service.save(a, SubscriptionGame, DedupPolicy.SKIP_ON_EXISTS, key(a))
        result = await service.save(b, SubscriptionGame, DedupPolicy.SKIP_ON_EXISTS, key(b))

        assert result.outcome == SaveOutcome.SKIPPED
        assert await count(test_db, SubscriptionGame) == 1

    async def test_spaces_encoded(self, test_db):
        """Test covers and links are stored with %20 and still deduplicate."""
        service = OfferService(test_db)
        offer = make_offer(
            cover="https://cdn.example.com/a b.jpg",
            provider_url="https://www.humblebundle.com/store/search?search=a b",
        )

        first = await service.save(offer, FreeGame)
        second = await service.save(offer, FreeGame)

        assert first.record.cover == "https://cdn.example.com/a%20b.jpg"
        assert first.record.provider_url.endswith("search=a%20b")
        assert second.outcome == SaveOutcome.SKIPPED

    async def test_free_flag_only_on_free_games(self, test_db):
        service = OfferService(test_db)
        result = await service.save(make_offer(free=True), FreeGame)
        assert result.record.free is True

        sub = await service.save(make_offer(provider_id="amazon_games", free=True), SubscriptionGame)
        assert not hasattr(sub.record, "free")

    async def test_replace_batch_policy_rejected(self, test_db):
        with pytest.raises(ValueError):
            await OfferService(test_db).save(make_offer(), SubscriptionGame, DedupPolicy.REPLACE_BATCH)


# ============================================================================
# BATCH REPLACE
# ============================================================================

def choice(name: str):
    return make_offer(
        name=name,
        provider_id="humble_bundle",
        provider_url=f"https://www.humblebundle.com/store/search?search={name.lower()}",
        free=False,
    )


class TestReplaceBatch:
    """Test the Humble Choice monthly snapshot swap."""

    async def test_purges_previous_month(self, test_db):
        """Test old provider rows go, other providers stay."""
        service = OfferService(test_db)
        await service.save(choice("Old"), SubscriptionGame)
        await service.save(make_offer(provider_id="amazon_games"), SubscriptionGame)

        outcome = await service.replace_batch([choice("New1"), choice("New2")], SubscriptionGame, "humble_bundle")

        assert (outcome.added, outcome.purged, outcome.skipped) == (2, 1, 0)
        names = set((await test_db.execute(
            select(SubscriptionGame.name).where(SubscriptionGame.provider_id == "humble_bundle")
        )).scalars())
        assert names == {"New1", "New2"}
        assert await count(test_db, SubscriptionGame, SubscriptionGame.provider_id == "amazon_games") == 1

    async def test_idempotent(self, test_db):
        """Test replaying the same month changes nothing."""
        service = OfferService(test_db)
        batch = [choice("New1"), choice("New2")]
        await service.replace_batch(batch, SubscriptionGame, "humble_bundle")

        outcome = await service.replace_batch(batch, SubscriptionGame, "humble_bundle")

        assert (outcome.added, outcome.skipped) == (0, 2)
        assert await count(test_db, SubscriptionGame) == 2

    async def test_all_or_nothing(self, test_db):
        """Test a failing insert keeps the previous month intact."""
        service = OfferService(test_db)
        await service.save(choice("Old"), SubscriptionGame)
        broken = choice("Broken")
        broken.name = None

        with pytest.raises(IntegrityError):
            await service.replace_batch([choice("New1"), broken], SubscriptionGame, "humble_bundle")

        names = list((await test_db.execute(select(SubscriptionGame.name))).scalars())
        assert names == ["Old"]

    async def test_empty_batch(self, test_db):
        outcome = await OfferService(test_db).replace_batch([], SubscriptionGame, "humble_bundle")
        assert outcome.added == outcome.purged == outcome.skipped == 0


# ============================================================================
# AVAILABILITY
# ============================================================================

class TestListAvailable:
    """Test the inclusive availability window."""

    async def test_boundaries_inclusive(self, test_db):
        """Test rows show at exactly start and end, not a microsecond past end."""
        service = OfferService(test_db)
        offer = make_offer()
        await service.save(offer, FreeGame)

        assert len(await service.list_available_free_games(offer.start_date)) == 1
        assert len(await service.list_available_free_games(offer.end_date)) == 1
        assert await service.list_available_free_games(offer.end_date + timedelta(microseconds=1)) == []
        assert await service.list_available_free_games(offer.start_date - timedelta(microseconds=1)) == []

    async def test_ordered_by_end_date(self, test_db):
        service = OfferService(test_db)
        await service.save(make_offer(name="Later", provider_url="https://x.example/later", end_date=NOW + timedelta(days=5)), FreeGame)
        await service.save(make_offer(name="Sooner", provider_url="https://x.example/sooner", end_date=NOW + timedelta(days=1)), FreeGame)
        await service.save(make_offer(name="Expired", provider_url="https://x.example/old", start_date=NOW - timedelta(days=9), end_date=NOW - timedelta(days=2)), FreeGame)

        rows = await service.list_available_free_games(NOW)

        assert [r.name for r in rows] == ["Sooner", "Later"]

    async def test_articles(self, test_db):
        test_db.add(Article(
            title="Giveaway",
            description="",
            cover="",
            link="https://gleam.io/x",
            domain="gleam.io",
            start_date=NOW - timedelta(days=1),
            end_date=NOW + timedelta(days=6),
        ))
        await test_db.flush()

        rows = await OfferService(test_db).list_available_articles(NOW)
        assert [r.link for r in rows] == ["https://gleam.io/x"]
