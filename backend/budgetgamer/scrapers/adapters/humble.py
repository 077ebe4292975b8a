"""Humble Store adapter for single-game submissions."""

from datetime import timedelta
from typing import Any, Dict, List

from budgetgamer.core.exceptions import NotFreeError, ScraperError
from budgetgamer.scrapers.base import BaseAPIAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import normalize_platforms, strip_html, utcnow
from budgetgamer.scrapers.utils.links import extract_humble_slugs


class HumbleAdapter(BaseAPIAdapter):
    """Free Humble Store listings submitted by (possibly comma-joined) link."""

    slug = "humble_bundle"
    provider_id = "humble_bundle"
    entity_kind = EntityKind.FREE_GAME
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS

    LOOKUP_URL = "https://www.humblebundle.com/store/api/lookup"
    DEFAULT_OFFER_DAYS = 7

    async def fetch_offer(self, url: str) -> NormalizedOffer:
        """Look the slugs up and accept the first product only at price 0.

        Raises:
            ScraperError: If no slug can be extracted or the lookup is empty
            NotFreeError: If the product has a price
        """
        slugs = extract_humble_slugs(url)
        if not slugs:
            raise ScraperError("Humble Bundle", "Could not extract game ID from URL")

        results = await self._lookup(slugs)
        if not results:
            raise ScraperError("Humble Bundle", "Invalid Humble Bundle API response")

        game = results[0]
        name = game.get("human_name") or slugs[0]
        amount = (game.get("current_price") or {}).get("amount")
        if amount != 0:
            raise NotFreeError(name, "not free on the Humble Store")

        first_url = url.split(",")[0].strip()
        now = utcnow()
        return self.normalize(game, first_url, now, now + timedelta(days=self.DEFAULT_OFFER_DAYS))

    def normalize(self, game: Dict[str, Any], url: str, start_date, end_date) -> NormalizedOffer:
        developers = game.get("developers") or []
        publishers = game.get("publishers") or []
        return NormalizedOffer(
            name=game.get("human_name", ""),
            provider_id=self.provider_id,
            provider_url=url,
            start_date=start_date,
            end_date=end_date,
            cover=game.get("large_capsule", ""),
            cover_portrait=game.get("large_capsule", ""),
            description=strip_html(game.get("description")),
            developer=developers[0].get("developer-name", "") if developers else "",
            publisher=publishers[0].get("publisher-name") if publishers else None,
            platform_ids=normalize_platforms(game.get("platforms") or []),
            free=True,
        )

    async def _lookup(self, slugs: List[str]) -> List[Dict[str, Any]]:
        params = [("products[]", slug) for slug in slugs]
        params += [("request", "1"), ("edit_mode", "false")]
        data = await self._get_json(self.LOOKUP_URL, params=params)
        return data.get("result") or []
