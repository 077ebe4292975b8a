"""Epic Games Store weekly free games adapter.

Uses the public ``freeGamesPromotions`` endpoint backing the store's
free games page.  Epic rotates the same catalog slugs week to week, so
existing rows are updated in place.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from budgetgamer.core.exceptions import AdapterFailure
from budgetgamer.scrapers.base import BaseAPIAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import parse_release_date, utcnow


class EpicGamesAdapter(BaseAPIAdapter):
    """Epic Games Store giveaways."""

    slug = "epic_games"
    provider_id = "epic_games"
    entity_kind = EntityKind.FREE_GAME
    dedup_policy = DedupPolicy.UPDATE_ON_EXISTS

    PROMOTIONS_URL = "https://store-site-backend-static-ipv4.ak.epicgames.com/freeGamesPromotions"
    PRODUCT_URL = "https://store.epicgames.com/en-US/p/{slug}"

    async def fetch_offers(self) -> List[NormalizedOffer]:
        """Fetch the catalog and keep games free right now.

        Raises:
            AdapterFailure: If the endpoint fails or its shape changed
        """
        try:
            data = await self._get_json(self.PROMOTIONS_URL)
            elements = data["data"]["Catalog"]["searchStore"]["elements"]
        except Exception as e:
            raise AdapterFailure(self.slug, f"Failed to fetch Epic Games: {e}") from e

        now = utcnow()
        offers: List[NormalizedOffer] = []
        for game in elements:
            try:
                offer = self.normalize(game, now)
            except (KeyError, TypeError, ValueError) as e:
                self._record_failure(str(game.get("title") or "unknown"), e)
                continue
            if offer is not None:
                offers.append(offer)

        self.logger.info("epic_games_fetched", catalog=len(elements), free=len(offers))
        return offers

    def normalize(self, game: Dict[str, Any], now: datetime) -> Optional[NormalizedOffer]:
        """Offer for a catalog element, or None if it is not free right now."""
        window = promotion_window(game)
        if window is None:
            return None
        start_date, end_date = window
        if not (start_date <= now < end_date):
            return None

        discount_price = game["price"]["totalPrice"]["discountPrice"]
        if discount_price != 0:
            return None

        url = self.product_url(game)
        images = game.get("keyImages") or []
        if not url or len(images) < 2:
            self.logger.debug("epic_game_incomplete", title=game.get("title"))
            return None

        seller = (game.get("seller") or {}).get("name") or ""
        return NormalizedOffer(
            name=game["title"],
            provider_id=self.provider_id,
            provider_url=url,
            start_date=start_date,
            end_date=end_date,
            cover=images[0].get("url", ""),
            cover_portrait=images[1].get("url", ""),
            description=game.get("description") or "",
            developer=seller,
            publisher=seller or None,
            platform_ids=["windows"],
            free=True,
            release_date=parse_release_date(game.get("effectiveDate")),
        )

    def product_url(self, game: Dict[str, Any]) -> str:
        slug = game.get("productSlug")
        if not slug:
            mappings = (game.get("catalogNs") or {}).get("mappings") or []
            slug = mappings[0].get("pageSlug") if mappings else None
        return self.PRODUCT_URL.format(slug=slug) if slug else ""


def promotion_window(game: Dict[str, Any]) -> Optional[Tuple[datetime, datetime]]:
    """Current promotional window, else the next upcoming one."""
    promotions = game.get("promotions") or {}
    for key in ("promotionalOffers", "upcomingPromotionalOffers"):
        groups = promotions.get(key) or []
        if not groups:
            continue
        offers = groups[0].get("promotionalOffers") or []
        if not offers:
            return None
        promo = offers[0]
        if (promo.get("discountSetting") or {}).get("discountPercentage") is None:
            return None
        start_date = parse_release_date(promo["startDate"])
        end_date = parse_release_date(promo["endDate"])
        if start_date is None or end_date is None:
            return None
        return start_date, end_date
    return None
