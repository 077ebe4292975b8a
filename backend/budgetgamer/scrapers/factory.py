"""Factory for creating and managing adapter instances."""

from typing import Any, Callable, Dict, Optional, Type

import httpx
import structlog

from budgetgamer.config import settings
from budgetgamer.scrapers.base import BaseAdapter, BaseScraperAdapter
from budgetgamer.scrapers.utils.browser_manager import get_browser_session


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Registry of adapter classes keyed by adapter slug.

    Provides dependency injection for the browser factory, HTTP client and
    request timeout so tests can swap any of them.
    """

    def __init__(
        self,
        browser_factory: Optional[Callable[[], Any]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the adapter factory.

        Args:
            browser_factory: Returns an async context manager exposing
                ``fetch_rendered_page``; defaults to a Playwright session
            http_client: Shared client; adapters open their own when None
        """
        self.browser_factory = browser_factory or get_browser_session
        self.http_client = http_client
        self._adapter_registry: Dict[str, Type[BaseAdapter]] = {}

    def register_adapter(self, slug: str, adapter_class: Type[BaseAdapter]) -> None:
        """Register an adapter class under ``slug``.

        Raises:
            ValueError: If the class is not a BaseAdapter
        """
        if not issubclass(adapter_class, BaseAdapter):
            raise ValueError(f"Adapter class must inherit from BaseAdapter: {adapter_class}")

        self._adapter_registry[slug] = adapter_class
        logger.debug("adapter_registered", slug=slug, adapter_type=adapter_class.adapter_type)

    def create_adapter(self, slug: str) -> Optional[BaseAdapter]:
        """Create and configure an adapter instance.

        Returns:
            Configured adapter instance, or None if not registered
        """
        adapter_class = self._adapter_registry.get(slug)
        if not adapter_class:
            logger.warning("adapter_not_found", slug=slug)
            return None

        adapter = adapter_class()

        # Inject dependencies
        adapter.timeout = settings.HTTP_TIMEOUT_SECONDS
        adapter.http_client = self.http_client
        if isinstance(adapter, BaseScraperAdapter):
            adapter.browser_factory = self.browser_factory

        logger.debug("adapter_created", slug=slug, adapter_type=adapter.adapter_type)
        return adapter

    def get_registered_slugs(self) -> list[str]:
        """Slugs of all registered adapters."""
        return list(self._adapter_registry.keys())

    def has_adapter(self, slug: str) -> bool:
        return slug in self._adapter_registry

    def has_scheduled_adapter(self, slug: str) -> bool:
        """True if ``slug`` is registered and runs without a submitted link."""
        adapter_class = self._adapter_registry.get(slug)
        return adapter_class is not None and adapter_class.has_scheduled_batch()


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance."""
    return adapter_factory
