"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from budgetgamer.models.base import Base
from budgetgamer.scrapers.base import NormalizedOffer
from budgetgamer.scrapers.factory import AdapterFactory
from budgetgamer.scrapers.register_adapters import register_all_adapters

CRON_SECRET = os.environ["CRON_SECRET"]


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create an in-memory SQLite database session for testing."""
    async with session_factory() as session:
        yield session


# ============================================================================
# FAKE UPSTREAMS
# ============================================================================

class FakeBrowser:
    """Stands in for a BrowserSession: serves canned HTML by URL prefix.

    A page value that is an exception instance is raised instead, the way a
    selector timeout would surface.
    """

    def __init__(self, pages: Dict[str, Union[str, Exception]]):
        self.pages = pages
        self.requests: List[str] = []
        self.opened = 0

    async def fetch_rendered_page(self, url: str, wait_for: Optional[str] = None, hover: Optional[str] = None) -> str:
        self.requests.append(url)
        for prefix, page in self.pages.items():
            if url.startswith(prefix):
                if isinstance(page, Exception):
                    raise page
                return page
        raise TimeoutError(f"Timeout waiting for {wait_for} on {url}")

    def factory(self):
        """Browser factory suitable for ``AdapterFactory(browser_factory=...)``."""

        @asynccontextmanager
        async def open_browser():
            self.opened += 1
            yield self

        return open_browser


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """httpx client answering every request through ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


def make_factory(
    handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    pages: Optional[Dict[str, Union[str, Exception]]] = None,
) -> AdapterFactory:
    """Adapter factory with every adapter registered against fake upstreams."""
    browser = FakeBrowser(pages or {})
    client = mock_client(handler or (lambda request: httpx.Response(404)))
    factory = AdapterFactory(browser_factory=browser.factory(), http_client=client)
    factory.browser = browser  # handy for assertions
    return register_all_adapters(factory)


# ============================================================================
# SAMPLE DATA
# ============================================================================

NOW = datetime(2026, 11, 1, 12, 0, tzinfo=timezone.utc)


def make_offer(**overrides) -> NormalizedOffer:
    """A valid normalized offer; any field can be overridden."""
    values = dict(
        name="Test Game",
        provider_id="steam",
        provider_url="https://store.steampowered.com/app/1234/",
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=3),
        cover="https://cdn.example.com/cover.jpg",
        cover_portrait="https://cdn.example.com/portrait.jpg",
        description="A test game",
        developer="Test Studio",
        publisher="Test Publisher",
        platform_ids=["windows"],
        free=True,
    )
    values.update(overrides)
    return NormalizedOffer(**values)


def as_utc(value: datetime) -> datetime:
    """SQLite hands datetimes back naive; they are stored as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
