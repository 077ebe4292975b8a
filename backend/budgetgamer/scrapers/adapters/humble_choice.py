"""Humble Choice monthly catalog adapter.

The membership page embeds the month's picks as JSON in a button attribute.
The catalog is a complete monthly snapshot, so the batch replaces whatever
humble_bundle subscription rows were stored before.
"""

import json
import re
from datetime import timedelta
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from budgetgamer.core.exceptions import AdapterFailure
from budgetgamer.scrapers.base import BaseScraperAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import strip_html, utcnow


CHOICE_DATA_SELECTOR = "button.js-read-our-recommendation[data-content-choice-data]"
STORE_SEARCH_URL = "https://www.humblebundle.com/store/search?sort=bestselling&search="

_PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`'~()]")
_PLATFORMS = {"windows": "windows", "mac": "mac_os", "linux": "linux"}

# Window approximating "this month's" catalog without a real grant date
WINDOW_LOOKBACK = timedelta(days=30)
WINDOW_LENGTH = timedelta(days=60)


class HumbleChoiceAdapter(BaseScraperAdapter):
    """Humble Choice current month, stored as subscription games."""

    slug = "humble_choice"
    provider_id = "humble_bundle"
    entity_kind = EntityKind.SUBSCRIPTION_GAME
    dedup_policy = DedupPolicy.REPLACE_BATCH

    MEMBERSHIP_URL = "https://www.humblebundle.com/membership?hmb_source=search_bar"

    async def fetch_offers(self) -> List[NormalizedOffer]:
        """Scrape the membership page for this month's titles.

        Raises:
            AdapterFailure: If the embedded catalog cannot be found or decoded
        """
        async with self._browser_scope():
            html = await self._fetch_rendered_page(self.MEMBERSHIP_URL, wait_for=CHOICE_DATA_SELECTOR)

        try:
            catalog = extract_choice_data(html)
        except ValueError as e:
            raise AdapterFailure(self.slug, str(e)) from e

        start_date = utcnow() - WINDOW_LOOKBACK
        end_date = start_date + WINDOW_LENGTH

        offers: List[NormalizedOffer] = []
        for choice_id, game in catalog.items():
            try:
                offers.append(self.normalize(game, start_date, end_date))
            except (KeyError, TypeError, ValueError) as e:
                self._record_failure(str(game.get("title") or choice_id), e)

        self.logger.info("humble_choice_fetched", count=len(offers), failed=len(self.failures))
        return offers

    def normalize(self, game: Dict[str, Any], start_date, end_date) -> NormalizedOffer:
        title = game["title"]
        platforms = [_PLATFORMS[p] for p in game.get("platforms") or [] if p in _PLATFORMS]
        copy = (game.get("recommendation_copy_dict") or {}).get("copy")
        return NormalizedOffer(
            name=title,
            provider_id=self.provider_id,
            provider_url=store_search_url(title),
            start_date=start_date,
            end_date=end_date,
            cover=game.get("image", ""),
            cover_portrait=game.get("image", ""),
            description=strip_html(copy),
            developer="",
            publisher=None,
            platform_ids=platforms or ["windows"],
            free=False,
        )


def extract_choice_data(html: str) -> Dict[str, Dict[str, Any]]:
    """Decode the ``data-content-choice-data`` attribute of the membership page.

    Raises:
        ValueError: If the attribute is missing or is not a JSON object
    """
    soup = BeautifulSoup(html, "html.parser")
    button = soup.select_one(CHOICE_DATA_SELECTOR)
    if button is None:
        raise ValueError("Humble Choice catalog not found on membership page")
    data = json.loads(button["data-content-choice-data"] or "{}")
    if not isinstance(data, dict):
        raise ValueError("Humble Choice catalog is not an object")
    return data


def store_search_url(title: str) -> str:
    """Best-effort store search link built from the first three title words."""
    words = _PUNCTUATION.sub("", title.lower()).split()
    return STORE_SEARCH_URL + "%20".join(words[:3])
