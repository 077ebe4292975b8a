"""PlayStation Plus monthly games adapter.

Reads the month's Essential titles from the "what's new" page, finds each
one's store product through the store search, then resolves the product
with the PlayStation adapter in the same browser.
"""

import json
from typing import List
from urllib.parse import quote

from bs4 import BeautifulSoup

from budgetgamer.core.exceptions import AdapterFailure, ScraperError
from budgetgamer.scrapers.adapters.playstation import PlayStationAdapter
from budgetgamer.scrapers.base import DedupPolicy, EntityKind, NormalizedOffer


MONTHLY_SECTION_SELECTOR = ".cmp-experiencefragment--your-latest-monthly-games"
TITLE_SELECTOR = ".txt-style-medium-title.txt-block-paragraph__title"
SEARCH_GRID_SELECTOR = ".psw-grid-list.psw-l-grid"
ESSENTIAL_TIER = "Essential"


class PSPlusAdapter(PlayStationAdapter):
    """PS Plus Essential monthly games, stored as subscription games."""

    slug = "ps_plus"
    provider_id = "playstation"
    entity_kind = EntityKind.SUBSCRIPTION_GAME
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS
    require_free = False

    WHATS_NEW_URL = "https://www.playstation.com/en-gb/ps-plus/whats-new/#monthly-games"
    SEARCH_URL = "https://store.playstation.com/en-gb/search/{query}"
    PRODUCT_URL = "https://store.playstation.com/en-gb/product/{product_id}"

    async def fetch_offers(self) -> List[NormalizedOffer]:
        """Resolve every Essential monthly title to a product offer.

        Raises:
            AdapterFailure: If the monthly titles section cannot be read
        """
        offers: List[NormalizedOffer] = []
        async with self._browser_scope():
            try:
                html = await self._fetch_rendered_page(self.WHATS_NEW_URL, wait_for=MONTHLY_SECTION_SELECTOR)
            except Exception as e:
                raise AdapterFailure(self.slug, f"monthly games section not found: {e}") from e

            titles = parse_monthly_titles(html)
            self.logger.info("ps_plus_titles_found", titles=titles)

            product_ids: List[str] = []
            for title in titles:
                try:
                    search_html = await self._fetch_rendered_page(
                        self.SEARCH_URL.format(query=quote(title)),
                        wait_for=SEARCH_GRID_SELECTOR,
                        hover=SEARCH_GRID_SELECTOR,
                    )
                    for product_id in parse_essential_results(search_html):
                        if product_id not in product_ids:
                            product_ids.append(product_id)
                except Exception as e:
                    self._record_failure(title, e)

            for product_id in product_ids:
                url = self.PRODUCT_URL.format(product_id=product_id)
                try:
                    details = await self.fetch_product(product_id)
                    if details is None:
                        raise ScraperError("PlayStation", f"Could not fetch product {product_id}")
                    offers.append(self.normalize(details, url))
                except Exception as e:
                    self._record_failure(url, e)

        return offers


def parse_monthly_titles(html: str) -> List[str]:
    """Titles listed in the monthly games section."""
    soup = BeautifulSoup(html, "html.parser")
    titles = []
    for element in soup.select(TITLE_SELECTOR):
        text = element.get_text(" ", strip=True)
        if text:
            titles.append(text)
    return titles


def parse_essential_results(html: str) -> List[str]:
    """Product ids of search results tagged with the Essential tier."""
    soup = BeautifulSoup(html, "html.parser")
    product_ids = []
    for item in soup.select(f"{SEARCH_GRID_SELECTOR} li"):
        link = item.select_one("div > a")
        if link is None or not link.get("data-telemetry-meta"):
            continue
        try:
            product_id = json.loads(link["data-telemetry-meta"]).get("id")
        except ValueError:
            continue

        section = item.select_one("div > a > div > section")
        tag = section.find("div") if section else None
        if product_id and tag is not None and tag.get_text(strip=True) == ESSENTIAL_TIER:
            product_ids.append(product_id)
    return product_ids
