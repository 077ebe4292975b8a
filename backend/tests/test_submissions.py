"""Tests for link previews, article creation and user submissions."""

from datetime import timedelta

import httpx
import pytest
from sqlalchemy import func, select

from budgetgamer.core.exceptions import (
    AlreadyExistsError,
    DomainNotAllowedError,
    InvalidLinkError,
    NotFreeError,
    NotSupportedYetError,
    ScraperError,
    UnsupportedLinkError,
)
from budgetgamer.models import Article, FreeGame
from budgetgamer.scrapers.utils.links import DEFAULT_COVERS
from budgetgamer.services.article_service import ArticleService
from budgetgamer.services.link_preview import REDDIT_PLACEHOLDER_ICON, LinkPreviewResolver, parse_preview
from budgetgamer.services.submission_service import SubmissionService, SubmissionType

from conftest import NOW, as_utc, make_factory, mock_client

TWEET = "https://twitter.com/someone/status/1"

OG_PAGE = """
<html><head>
  <title>Fallback title</title>
  <meta property="og:title" content="Free game giveaway">
  <meta property="og:description" content="Grab it while it lasts">
  <meta property="og:image" content="/media/cover.jpg">
</head></html>
"""


class RecordingHandler:
    """MockTransport handler that remembers every request."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def resolver_for(handler) -> LinkPreviewResolver:
    return LinkPreviewResolver(http_client=mock_client(handler))


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


# ============================================================================
# PREVIEW RESOLVER
# ============================================================================

class TestParsePreview:
    """Test Open Graph extraction and fallbacks."""

    def test_open_graph(self):
        preview = parse_preview(OG_PAGE, "https://twitter.com/someone/status/1")
        assert preview.title == "Free game giveaway"
        assert preview.description == "Grab it while it lasts"
        assert preview.cover == "https://twitter.com/media/cover.jpg"

    def test_title_and_icon_fallback(self):
        page = '<html><head><title> Plain </title><link rel="icon" href="/favicon.ico"></head></html>'
        preview = parse_preview(page, "https://gleam.io/abc/")
        assert preview.title == "Plain"
        assert preview.description is None
        assert preview.cover == "https://gleam.io/favicon.ico"

    def test_reddit_placeholder_discarded(self):
        page = f'<meta property="og:image" content="{REDDIT_PLACEHOLDER_ICON}">'
        assert parse_preview(page, "https://www.reddit.com/r/x").cover is None


class TestLinkPreviewResolver:
    """Test fetching previews with per-domain identity."""

    async def test_twitter_uses_crawler_identity(self):
        handler = RecordingHandler(httpx.Response(200, text=OG_PAGE))
        preview = await resolver_for(handler).resolve(TWEET)

        assert preview.title == "Free game giveaway"
        assert handler.requests[0].headers["user-agent"] == "googlebot"

    async def test_disallowed_domain_never_fetched(self):
        handler = RecordingHandler(httpx.Response(200, text=OG_PAGE))
        with pytest.raises(DomainNotAllowedError):
            await resolver_for(handler).resolve("https://notallowed.com/x")
        assert handler.requests == []

    async def test_upstream_error_gives_empty_preview(self):
        preview = await resolver_for(RecordingHandler(httpx.Response(503))).resolve(TWEET)
        assert preview.title is None and preview.cover is None


# ============================================================================
# ARTICLES
# ============================================================================

class TestArticleService:
    """Test article validation, defaults and the visibility window."""

    async def test_twitter_article_created(self, test_db):
        """Test a tweet is stored with its preview and a seven day window."""
        handler = RecordingHandler(httpx.Response(200, text=OG_PAGE))
        service = ArticleService(test_db, resolver_for(handler))

        article = await service.create_from_link(TWEET, now=NOW)

        assert article.title == "Free game giveaway"
        assert article.domain == "twitter.com"
        assert article.cover == "https://twitter.com/media/cover.jpg"
        assert as_utc(article.start_date) == NOW
        assert as_utc(article.end_date) == NOW + timedelta(days=7)

    async def test_defaults_when_preview_empty(self, test_db):
        service = ArticleService(test_db, resolver_for(RecordingHandler(httpx.Response(500))))

        article = await service.create_from_link("https://gleam.io/abc/giveaway", now=NOW)

        assert article.title == "Article from gleam.io"
        assert article.description == "An article from gleam.io"
        assert article.cover == DEFAULT_COVERS["gleam"]

    async def test_disallowed_domain_rejected_before_fetch(self, test_db):
        handler = RecordingHandler(httpx.Response(200, text=OG_PAGE))
        service = ArticleService(test_db, resolver_for(handler))

        with pytest.raises(DomainNotAllowedError):
            await service.create_from_link("https://notallowed.com/x")
        assert handler.requests == []
        assert await count(test_db, Article) == 0

    async def test_allowed_domain_in_path_rejected(self, test_db):
        """Test only the host decides, not an allowed domain elsewhere in the URL."""
        handler = RecordingHandler(httpx.Response(200, text=OG_PAGE))
        service = ArticleService(test_db, resolver_for(handler))

        with pytest.raises(DomainNotAllowedError):
            await service.create_from_link("https://evil.example.com/page?next=twitter.com/x")
        assert handler.requests == []
        assert await count(test_db, Article) == 0

    async def test_duplicate_rejected_before_fetch(self, test_db):
        handler = RecordingHandler(httpx.Response(200, text=OG_PAGE))
        service = ArticleService(test_db, resolver_for(handler))
        await service.create_from_link(TWEET)

        with pytest.raises(AlreadyExistsError):
            await service.create_from_link(TWEET)
        assert len(handler.requests) == 1
        assert await count(test_db, Article) == 1

    async def test_malformed_link(self, test_db):
        with pytest.raises(InvalidLinkError):
            await ArticleService(test_db).create_from_link("twitter dot com")


# ============================================================================
# SUBMISSIONS
# ============================================================================

STEAM_URL = "https://store.steampowered.com/app/1234/"


def steam_handler(discount: int):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/appdetails":
            return httpx.Response(200, json={"1234": {"success": True, "data": {
                "name": "Some Game",
                "price_overview": {"discount_percent": discount},
                "platforms": {"windows": True},
            }}})
        return httpx.Response(200, text='<div class="game_purchase_discount_quantity">before Nov 7 @ 10:00am</div>')

    return handler


@pytest.fixture
def steam_now(monkeypatch):
    monkeypatch.setattr("budgetgamer.scrapers.adapters.steam.utcnow", lambda: NOW)


class TestSubmissionService:
    """Test game and article submissions end to end."""

    async def test_free_steam_game_stored(self, test_db, steam_now):
        service = SubmissionService(test_db, factory=make_factory(steam_handler(100)))

        result = await service.submit(STEAM_URL, SubmissionType.GAME)

        assert result.entity_kind == "free_game"
        assert result.provider == "steam"
        row = (await test_db.execute(select(FreeGame))).scalar_one()
        assert row.id == result.id
        assert row.free is True

    async def test_discounted_steam_game_rejected(self, test_db, steam_now):
        """Test a 50% discount stores nothing."""
        service = SubmissionService(test_db, factory=make_factory(steam_handler(50)))

        with pytest.raises(NotFreeError):
            await service.submit(STEAM_URL, SubmissionType.GAME)
        assert await count(test_db, FreeGame) == 0

    async def test_existing_game_rejected_before_fetch(self, test_db, steam_now):
        handler = RecordingHandler(httpx.Response(500))
        first = SubmissionService(test_db, factory=make_factory(steam_handler(100)))
        await first.submit(STEAM_URL, SubmissionType.GAME)

        second = SubmissionService(test_db, factory=make_factory(handler))
        with pytest.raises(AlreadyExistsError):
            await second.submit(STEAM_URL, SubmissionType.GAME)
        assert handler.requests == []

    async def test_epic_not_supported_yet(self, test_db):
        service = SubmissionService(test_db, factory=make_factory())
        with pytest.raises(NotSupportedYetError):
            await service.submit("https://store.epicgames.com/en-US/p/some-game/", SubmissionType.GAME)

    async def test_article_link_as_game_unsupported(self, test_db):
        service = SubmissionService(test_db, factory=make_factory())
        with pytest.raises(UnsupportedLinkError):
            await service.submit(TWEET, SubmissionType.GAME)

    async def test_adapter_crash_becomes_scraper_error(self, test_db):
        """Test unexpected adapter errors surface as processing failures."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = SubmissionService(test_db, factory=make_factory(handler))

        with pytest.raises(ScraperError) as exc_info:
            await service.submit(STEAM_URL, SubmissionType.GAME)
        assert "Failed to process Steam game" in str(exc_info.value)

    async def test_article_submission(self, test_db):
        resolver = resolver_for(RecordingHandler(httpx.Response(200, text=OG_PAGE)))
        service = SubmissionService(test_db, factory=make_factory(), resolver=resolver)

        result = await service.submit(TWEET, SubmissionType.ARTICLE)

        assert result.entity_kind == "article"
        assert result.provider == "twitter.com"
        assert await count(test_db, Article) == 1
