"""HTTP API tests against the FastAPI app with overridden dependencies."""

from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from budgetgamer.config import settings
from budgetgamer.dependencies import get_db, get_session_factory
from budgetgamer.main import app
from budgetgamer.models.base import utcnow
from budgetgamer.models import FreeGame
from budgetgamer.scrapers.adapters import AmazonPrimeAdapter, HumbleChoiceAdapter
from budgetgamer.scrapers.factory import get_adapter_factory
from budgetgamer.services.offer_service import OfferService

from conftest import CRON_SECRET, NOW, make_factory, make_offer
from test_adapters import CHOICE_CATALOG, choice_page, epic_element

AUTH = {"Authorization": f"Bearer {CRON_SECRET}"}


def steam_handler(discount: int):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/appdetails":
            return httpx.Response(200, json={"1234": {"success": True, "data": {
                "name": "Some Game",
                "price_overview": {"discount_percent": discount},
            }}})
        return httpx.Response(200, text="<html></html>")

    return handler


@pytest.fixture
def fixed_now(monkeypatch):
    for module in ("steam", "humble_choice", "epic_games", "amazon_prime"):
        monkeypatch.setattr(f"budgetgamer.scrapers.adapters.{module}.utcnow", lambda: NOW)


@pytest_asyncio.fixture
async def api(test_db, session_factory):
    """Client builder: ``api(handler, pages)`` returns an AsyncClient wired to fakes."""
    clients = []

    async def override_get_db():
        yield test_db

    def build(handler=None, pages=None) -> httpx.AsyncClient:
        factory = make_factory(handler, pages)
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_session_factory] = lambda: session_factory
        app.dependency_overrides[get_adapter_factory] = lambda: factory
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield build

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()


# ============================================================================
# CRON
# ============================================================================

class TestCronEndpoints:
    """Test the scheduler trigger endpoints."""

    @pytest.mark.parametrize("path", ["/api/v1/cron/daily", "/api/v1/cron/thursday", "/api/v1/cron/run/epic_games"])
    async def test_missing_secret(self, api, path):
        response = await api().get(path)
        assert response.status_code == 401

    async def test_wrong_secret(self, api):
        response = await api().get("/api/v1/cron/daily", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401

    async def test_unset_secret_rejects_everything(self, api, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        response = await api().get("/api/v1/cron/daily", headers={"Authorization": "Bearer "})
        assert response.status_code == 401

    async def test_thursday_report(self, api, fixed_now):
        """Test Amazon failing is reported next to Epic's tally."""
        game = epic_element("Free Now", NOW - timedelta(days=1), NOW + timedelta(days=6), slug="free-now")
        handler = lambda request: httpx.Response(200, json={"data": {"Catalog": {"searchStore": {"elements": [game]}}}})

        response = await api(handler).get("/api/v1/cron/thursday", headers=AUTH)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["schedule"] == "thursday"
        assert (data["successful"], data["failed"]) == (1, 1)
        assert data["results"]["epic_games"]["added"] == 1
        assert data["results"]["amazon_prime"]["status"] == "rejected"

    async def test_run_single_adapter(self, api, fixed_now):
        client = api(pages={HumbleChoiceAdapter.MEMBERSHIP_URL: choice_page(CHOICE_CATALOG)})

        response = await client.get("/api/v1/cron/run/humble_choice", headers=AUTH)

        assert response.status_code == 200
        tally = response.json()["data"]
        assert (tally["adapter"], tally["added"], tally["failed"]) == ("humble_choice", 2, 1)

    async def test_run_unknown_adapter(self, api):
        response = await api().get("/api/v1/cron/run/nope", headers=AUTH)
        assert response.status_code == 404

    @pytest.mark.parametrize("slug", ["steam", "gog", "humble_bundle", "playstation"])
    async def test_run_submission_only_adapter(self, api, slug):
        """Test adapters that need a submitted link are not runnable on a schedule."""
        response = await api().get(f"/api/v1/cron/run/{slug}", headers=AUTH)
        assert response.status_code == 404


# ============================================================================
# SUBMISSIONS
# ============================================================================

class TestSubmissionEndpoint:
    """Test error envelopes and success payloads of link submission."""

    async def submit(self, client, url, kind="game"):
        return await client.post("/api/v1/submissions", json={"url": url, "type": kind})

    @pytest.mark.parametrize("url,kind,status,code", [
        ("not a url", "game", 400, "bad_format"),
        ("https://notallowed.com/x", "game", 400, "unsupported_source"),
        ("https://store.epicgames.com/en-US/p/some-game/", "game", 400, "not_supported_yet"),
        ("https://notallowed.com/x", "article", 400, "domain_not_allowed"),
    ])
    async def test_rejections(self, api, url, kind, status, code):
        response = await self.submit(api(), url, kind)

        assert response.status_code == status
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == code

    async def test_not_free(self, api, fixed_now):
        response = await self.submit(api(steam_handler(50)), "https://store.steampowered.com/app/1234/")
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "not_free"

    async def test_accepted_then_conflict(self, api, fixed_now):
        client = api(steam_handler(100))

        created = await self.submit(client, "https://store.steampowered.com/app/1234/")
        duplicate = await self.submit(client, "https://store.steampowered.com/app/1234/")

        assert created.status_code == 201
        data = created.json()["data"]
        assert (data["entity_kind"], data["provider"]) == ("free_game", "steam")
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["code"] == "already_exists"

    async def test_unknown_type(self, api):
        response = await self.submit(api(), "https://store.steampowered.com/app/1234/", kind="video")
        assert response.status_code == 422


# ============================================================================
# LISTINGS AND HEALTH
# ============================================================================

class TestListings:
    """Test availability listings."""

    async def test_free_games_lists_live_rows(self, api, test_db):
        now = utcnow()
        service = OfferService(test_db)
        await service.save(make_offer(name="Live", start_date=now - timedelta(days=1), end_date=now + timedelta(days=1)), FreeGame)
        await service.save(make_offer(
            name="Gone",
            provider_url="https://store.steampowered.com/app/99/",
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ), FreeGame)

        response = await api().get("/api/v1/free-games")

        assert response.status_code == 200
        assert [g["name"] for g in response.json()["data"]] == ["Live"]

    async def test_empty_listings(self, api):
        client = api()
        for path in ("/api/v1/subscription-games", "/api/v1/articles"):
            response = await client.get(path)
            assert response.status_code == 200
            assert response.json() == {"status": "success", "data": []}

    async def test_health(self, api):
        response = await api().get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "ok"
        assert "steam" in body["adapters"]
        assert AmazonPrimeAdapter.slug in body["adapters"]
