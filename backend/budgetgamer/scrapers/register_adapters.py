"""Register all adapters with the factory.

Imported during application startup (and by the CLI) so every adapter
slug resolves through ``get_adapter_factory()``.
"""

from typing import Optional

import structlog

from budgetgamer.scrapers.factory import AdapterFactory, get_adapter_factory
from budgetgamer.scrapers.adapters import (
    # Submission adapters
    SteamAdapter,
    GOGAdapter,
    HumbleAdapter,
    PlayStationAdapter,
    # Scheduled batch adapters
    HumbleChoiceAdapter,
    PSPlusAdapter,
    EpicGamesAdapter,
    AmazonPrimeAdapter,
    # Article sources
    RedditAdapter,
)

logger = structlog.get_logger(__name__)

ALL_ADAPTERS = (
    SteamAdapter,
    GOGAdapter,
    HumbleAdapter,
    PlayStationAdapter,
    HumbleChoiceAdapter,
    PSPlusAdapter,
    EpicGamesAdapter,
    AmazonPrimeAdapter,
    RedditAdapter,
)


def register_all_adapters(factory: Optional[AdapterFactory] = None) -> AdapterFactory:
    """Register every adapter under its slug.

    Args:
        factory: Factory to populate; the global one by default

    Returns:
        The populated factory
    """
    factory = factory or get_adapter_factory()

    for adapter_class in ALL_ADAPTERS:
        factory.register_adapter(adapter_class.slug, adapter_class)

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_slugs()),
        slugs=factory.get_registered_slugs(),
    )
    return factory
