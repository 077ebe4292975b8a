"""SQLAlchemy models for Budget Gamer.

All models are imported here so ``Base.metadata`` knows every table.
"""

from budgetgamer.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from budgetgamer.models.game import (
    FreeGame,
    SubscriptionGame,
    OfferColumnsMixin,
    ProviderId,
    PROVIDER_IDS,
)
from budgetgamer.models.article import Article

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "OfferColumnsMixin",
    "FreeGame",
    "SubscriptionGame",
    "Article",
    "ProviderId",
    "PROVIDER_IDS",
]
