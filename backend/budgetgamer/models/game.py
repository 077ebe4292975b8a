"""Free game and subscription game models.

Both tables share the offer columns through ``OfferColumnsMixin``; a free
game additionally records whether it is a 100% discount giveaway.
"""

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from budgetgamer.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ProviderId(str, enum.Enum):
    """Fixed vocabulary of storefronts an offer can come from."""

    STEAM = "steam"
    GOG = "gog"
    EPIC_GAMES = "epic_games"
    HUMBLE_BUNDLE = "humble_bundle"
    AMAZON_GAMES = "amazon_games"
    PLAYSTATION = "playstation"
    ORIGIN = "origin"
    BATTLE = "battle"
    NONE = "none"


PROVIDER_IDS = frozenset(p.value for p in ProviderId)


class OfferColumnsMixin:
    """Columns common to every offer table."""

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    cover: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_portrait: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    developer: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    publisher: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    platform_ids: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered platform tags, e.g. ['windows', 'mac_os']",
    )

    provider_id: Mapped[str] = mapped_column(String(30), nullable=False)
    provider_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Canonical external link, natural dedup key within a provider",
    )

    # Availability window
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    release_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @declared_attr.directive
    def __table_args__(cls):
        table = cls.__tablename__
        return (
            Index(f"{table}_name_idx", "name"),
            Index(f"{table}_start_date_idx", "start_date"),
            Index(f"{table}_end_date_idx", "end_date"),
            Index(f"{table}_provider_url_idx", "provider_url"),
        )


class FreeGame(UUIDPrimaryKeyMixin, TimestampMixin, OfferColumnsMixin, Base):
    """Time-limited free game (giveaway or otherwise free listing)."""

    __tablename__ = "free_games"

    free: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="True for a 100% discount giveaway",
    )

    def __repr__(self) -> str:
        return f"<FreeGame(id={self.id}, name='{self.name}', provider_id='{self.provider_id}')>"


class SubscriptionGame(UUIDPrimaryKeyMixin, TimestampMixin, OfferColumnsMixin, Base):
    """Game granted through a recurring subscription (Prime, Choice, PS Plus)."""

    __tablename__ = "subscription_games"

    def __repr__(self) -> str:
        return f"<SubscriptionGame(id={self.id}, name='{self.name}', provider_id='{self.provider_id}')>"
