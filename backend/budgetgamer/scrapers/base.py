"""Base adapter interface.

All provider-specific adapters inherit from BaseAdapter (or one of its
API/scraper specialisations) and implement the fetch method matching how
they are driven:

- ``fetch_offers()`` for scheduled batch adapters (Epic, Humble Choice, ...)
- ``fetch_offer(url)`` for single-link submissions (Steam, GOG, ...)
- ``fetch_links()`` for article sources (Reddit)
"""

import enum
from abc import ABC
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx
import structlog

from budgetgamer.models.game import PROVIDER_IDS
from budgetgamer.scrapers.utils.user_agents import DESKTOP_USER_AGENT


logger = structlog.get_logger(__name__)


class DedupPolicy(str, enum.Enum):
    """What the persistence gate does when an incoming offer already exists."""

    SKIP_ON_EXISTS = "skip_on_exists"
    UPDATE_ON_EXISTS = "update_on_exists"
    REPLACE_BATCH = "replace_batch"


class EntityKind(str, enum.Enum):
    """Which table an adapter's records land in."""

    FREE_GAME = "free_game"
    SUBSCRIPTION_GAME = "subscription_game"
    ARTICLE = "article"


@dataclass
class NormalizedOffer:
    """Normalized offer record returned by every game adapter."""

    name: str
    provider_id: str
    provider_url: str
    start_date: datetime
    end_date: datetime
    cover: str = ""
    cover_portrait: str = ""
    description: str = ""
    developer: str = ""
    publisher: Optional[str] = None
    platform_ids: List[str] = field(default_factory=list)
    free: bool = False
    release_date: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)  # Provider-specific extras, not persisted

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name:
            raise ValueError("name is required")
        if not self.provider_url:
            raise ValueError("provider_url is required")
        if self.provider_id not in PROVIDER_IDS:
            raise ValueError(f"Invalid provider_id: {self.provider_id}")
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")

    def to_columns(self) -> Dict[str, Any]:
        """Column values shared by the free_games and subscription_games tables."""
        return {
            "name": self.name,
            "cover": self.cover,
            "cover_portrait": self.cover_portrait,
            "description": self.description,
            "developer": self.developer,
            "publisher": self.publisher,
            "platform_ids": list(self.platform_ids),
            "provider_id": self.provider_id,
            "provider_url": self.provider_url,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "release_date": self.release_date,
        }


class BaseAdapter(ABC):
    """Abstract base class for all provider adapters (API and scraper).

    Subclasses declare where their records go and how duplicates are handled
    through class attributes, and override the fetch method(s) they support.
    """

    slug: str = ""  # Registry key, e.g. "steam", "humble_choice"
    provider_id: str = "none"  # Value stored in provider_id
    entity_kind: EntityKind = EntityKind.FREE_GAME
    dedup_policy: DedupPolicy = DedupPolicy.SKIP_ON_EXISTS
    adapter_type: str = ""  # 'api' or 'scraper'

    def __init__(self):
        """Initialize the adapter with dependency injection points."""
        self.http_client: Optional[httpx.AsyncClient] = None  # Injected by factory or tests
        self.timeout: float = 30.0
        self.failures: List[str] = []
        self.logger = logger.bind(adapter=self.slug)

    async def fetch_offers(self) -> List[NormalizedOffer]:
        """Fetch the provider's current batch of offers.

        Returns:
            List of NormalizedOffer objects. Items that fail individually are
            recorded in ``self.failures`` and left out.

        Raises:
            AdapterFailure: If the source cannot be read at all
        """
        raise NotImplementedError(f"{type(self).__name__} has no scheduled batch")

    async def fetch_offer(self, url: str) -> NormalizedOffer:
        """Fetch and normalize a single submitted offer.

        Raises:
            NotFreeError: If the offer is not eligible
            ScraperError: If the upstream page or API cannot be read
        """
        raise NotImplementedError(f"{type(self).__name__} does not accept submissions")

    async def fetch_links(self) -> List[str]:
        """Fetch candidate article links (article sources only)."""
        raise NotImplementedError(f"{type(self).__name__} is not an article source")

    @classmethod
    def has_scheduled_batch(cls) -> bool:
        """True for adapters the scheduler can run (batch offers or article links)."""
        return (
            cls.fetch_offers is not BaseAdapter.fetch_offers
            or cls.fetch_links is not BaseAdapter.fetch_links
        )

    def dedup_key(self, offer: NormalizedOffer) -> Dict[str, Any]:
        """Columns identifying an already-ingested equivalent of ``offer``."""
        return {"provider_url": offer.provider_url}

    def _record_failure(self, label: str, error: Exception) -> None:
        """Remember a per-item failure without aborting the batch."""
        message = f"{label}: {error}"
        self.failures.append(message)
        self.logger.error("item_failed", item=label, error=str(error))

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or a short-lived one closed on exit."""
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": DESKTOP_USER_AGENT},
        ) as client:
            yield client

    async def _get_json(self, url: str, **kwargs) -> Any:
        """GET a JSON document.

        Raises:
            httpx.HTTPStatusError: If the API returns an error status
            httpx.TransportError: On network errors and timeouts
        """
        async with self._client() as client:
            response = await client.get(url, **kwargs)
            response.raise_for_status()
            return response.json()

    async def _get_text(self, url: str, **kwargs) -> str:
        """GET a page body as text."""
        async with self._client() as client:
            response = await client.get(url, **kwargs)
            response.raise_for_status()
            return response.text

    async def cleanup(self) -> None:
        """Clean up resources."""
        self.failures = []


class BaseAPIAdapter(BaseAdapter):
    """Base class for adapters that only talk to HTTP APIs and static pages."""

    adapter_type = "api"


class BaseScraperAdapter(BaseAdapter):
    """Base class for adapters that need a rendered page from a headless browser.

    The browser is an injected factory returning an async context manager
    (``BrowserSession`` in production).  At most one browser is open per
    adapter invocation: nested ``_browser_scope()`` calls reuse it.
    """

    adapter_type = "scraper"

    def __init__(self):
        """Initialize scraper adapter."""
        super().__init__()
        self.browser_factory: Optional[Callable[[], Any]] = None  # Injected
        self._browser = None

    @asynccontextmanager
    async def _browser_scope(self):
        """Yield the open browser session, opening one if none is active."""
        if self._browser is not None:
            yield self._browser
            return
        if self.browser_factory is None:
            raise RuntimeError("Browser factory must be injected by the adapter factory")

        async with self.browser_factory() as browser:
            self._browser = browser
            try:
                yield browser
            finally:
                self._browser = None

    async def _fetch_rendered_page(
        self,
        url: str,
        wait_for: Optional[str] = None,
        hover: Optional[str] = None,
    ) -> str:
        """Return the rendered HTML of ``url`` after ``wait_for`` appears."""
        self.logger.info("scraping_url", url=url)
        async with self._browser_scope() as browser:
            return await browser.fetch_rendered_page(url, wait_for=wait_for, hover=hover)
