"""Scraper adapters, their registry and the ingestion pipeline."""

from budgetgamer.scrapers.base import (
    BaseAdapter,
    BaseAPIAdapter,
    BaseScraperAdapter,
    DedupPolicy,
    EntityKind,
    NormalizedOffer,
)

__all__ = [
    "BaseAdapter",
    "BaseAPIAdapter",
    "BaseScraperAdapter",
    "DedupPolicy",
    "EntityKind",
    "NormalizedOffer",
]
