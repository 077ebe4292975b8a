"""Steam Store adapter.

Game metadata comes from the unofficial Steam Store API; the promotional
end date is only published on the store page itself.
Documentation: https://steamapi.xpaw.me/ (community documentation)
"""

import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from budgetgamer.core.exceptions import NotFreeError, ScraperError
from budgetgamer.scrapers.base import BaseAPIAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import (
    normalize_platforms,
    parse_release_date,
    parse_steam_end_date,
    utcnow,
)
from budgetgamer.scrapers.utils.links import STEAM_PATTERN


class SteamAdapter(BaseAPIAdapter):
    """Steam 100% discount giveaways submitted by link."""

    slug = "steam"
    provider_id = "steam"
    entity_kind = EntityKind.FREE_GAME
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS

    # API Configuration
    API_BASE_URL = "https://store.steampowered.com/api"
    APP_DETAILS_ENDPOINT = "/appdetails"
    STORE_PAGE_URL = "https://store.steampowered.com/app/{app_id}/"

    # Skips the age gate on mature titles
    AGE_GATE_COOKIE = "birthtime=631152001; lastagecheckage=1-0-1990; wants_mature_content=1"

    END_DATE_SELECTOR = ".game_purchase_discount_quantity"
    DEFAULT_OFFER_DAYS = 4
    # Banner months this far behind the current month belong to next year
    YEAR_ROLLOVER_MONTHS = 6

    async def fetch_offer(self, url: str) -> NormalizedOffer:
        """Fetch a Steam app and accept it only at a 100% discount.

        Raises:
            ScraperError: If the app id or details cannot be resolved
            NotFreeError: If the discount is not 100%
        """
        match = STEAM_PATTERN.search(url)
        if not match:
            raise ScraperError("Steam", "Could not extract Steam app ID")
        app_id = match.group(1)

        app_data = await self._call_app_details_api(app_id)
        if not app_data:
            raise ScraperError("Steam", f"Could not fetch Steam game details for {app_id}")

        name = app_data.get("name") or app_id
        discount = self.discount_percent(app_data)
        if discount != 100:
            self.logger.info("steam_not_free", app_id=app_id, discount_percent=discount)
            raise NotFreeError(name, f"discounted {discount:g}%, not 100%")

        now = utcnow()
        end_text = await self._scrape_end_date_text(app_id)
        end_date = parse_steam_end_date(end_text, now) if end_text else None
        if end_date is not None and now.month - end_date.month > self.YEAR_ROLLOVER_MONTHS:
            # "before Jan 2" read in December belongs to next year
            end_date = next_year(end_date)
        if end_date is None:
            end_date = now + timedelta(days=self.DEFAULT_OFFER_DAYS)

        self.logger.info("steam_offer_fetched", app_id=app_id, end_date=end_date.isoformat())
        return self.normalize(app_data, url, now, end_date)

    def normalize(self, app_data: Dict[str, Any], url: str, start_date, end_date) -> NormalizedOffer:
        """Build the offer record from an appdetails payload."""
        platforms = app_data.get("platforms") or {}
        screenshots = app_data.get("screenshots") or []
        release = (app_data.get("release_date") or {}).get("date")

        return NormalizedOffer(
            name=app_data.get("name", ""),
            provider_id=self.provider_id,
            provider_url=url,
            start_date=start_date,
            end_date=end_date,
            cover=app_data.get("header_image", ""),
            cover_portrait=screenshots[0].get("path_full", "") if screenshots else "",
            description=app_data.get("short_description", ""),
            developer=_first(app_data.get("developers")),
            publisher=_first(app_data.get("publishers")) or None,
            platform_ids=normalize_platforms(name for name, supported in platforms.items() if supported),
            free=True,
            release_date=parse_release_date(release),
            metadata={"app_id": app_data.get("steam_appid"), "is_free": app_data.get("is_free", False)},
        )

    @staticmethod
    def discount_percent(app_data: Dict[str, Any]) -> float:
        """Discount from price_overview, else the first package's savings text."""
        price_overview = app_data.get("price_overview")
        if price_overview:
            return float(price_overview.get("discount_percent", 0))

        package_groups = app_data.get("package_groups") or []
        if package_groups:
            subs = package_groups[0].get("subs") or []
            if subs and subs[0].get("percent_savings_text"):
                numeric = re.sub(r"[^0-9.\-]+", "", subs[0]["percent_savings_text"])
                try:
                    return abs(float(numeric))
                except ValueError:
                    return 0.0
        return 0.0

    async def _call_app_details_api(self, app_id: str) -> Optional[Dict[str, Any]]:
        """Call the appdetails endpoint.

        Returns:
            The app's ``data`` object, or None if Steam reports no success
        """
        payload = await self._get_json(
            f"{self.API_BASE_URL}{self.APP_DETAILS_ENDPOINT}",
            params={"appids": app_id},
        )
        entry = (payload or {}).get(str(app_id)) or {}
        if not entry.get("success"):
            self.logger.warning("steam_app_not_found", app_id=app_id)
            return None
        return entry.get("data")

    async def _scrape_end_date_text(self, app_id: str) -> Optional[str]:
        """Text of the discount banner on the store page, if present."""
        html = await self._get_text(
            self.STORE_PAGE_URL.format(app_id=app_id),
            headers={"Cookie": self.AGE_GATE_COOKIE},
        )
        return extract_end_date_text(html)


def extract_end_date_text(html: str) -> Optional[str]:
    """Discount banner text ("... before Nov 7 @ 10:00am") from a store page."""
    soup = BeautifulSoup(html, "html.parser")
    element = soup.select_one(SteamAdapter.END_DATE_SELECTOR)
    if element is None:
        return None
    return element.get_text(" ", strip=True)


def next_year(value: datetime) -> datetime:
    """Same wall-clock moment a year later; Feb 29 becomes Feb 28."""
    try:
        return value.replace(year=value.year + 1)
    except ValueError:
        return value.replace(year=value.year + 1, day=28)


def _first(values: Optional[List[str]]) -> str:
    return values[0] if values else ""
