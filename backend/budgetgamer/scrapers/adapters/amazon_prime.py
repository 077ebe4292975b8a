"""Amazon Prime Gaming free games adapter.

The catalog is a client-rendered React app, so both the offer grid and the
per-game detail pages go through the headless browser.  Detail pages are
fetched concurrently; a failing card never takes the batch down.
"""

import asyncio
from datetime import timedelta
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from budgetgamer.config import settings
from budgetgamer.core.exceptions import AdapterFailure
from budgetgamer.scrapers.base import BaseScraperAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import (
    parse_days_remaining,
    parse_release_date,
    start_of_month,
    utcnow,
)


CARD_SELECTOR = (
    '[data-a-target="offer-list-FGWP_FULL"] .offer-list__content__grid '
    '.tw-block [data-a-target="item-card"]'
)
FOOTER_SELECTOR = '[data-a-target="prime-footer"]'
DETAIL_READY_SELECTOR = "h2.tw-amazon-ember-light.tw-font-size-2"
DESCRIPTION_SELECTORS = (
    ".highlight-card__overlay__content",
    ".highlight-card__overlay",
    ".highlight-card__content",
)
DESCRIPTION_EXTRA_SELECTOR = "div.tw-font-size-5.tw-typeset p.tw-amazon-ember-light.tw-md-font-size-4"
PUBLISHER_SELECTOR = '[data-a-target="gms-content-supertext"] h2'

# Prime grants are monthly; the real grant date is not published
DEFAULT_OFFER_DAYS = 30


class AmazonPrimeAdapter(BaseScraperAdapter):
    """Prime Gaming free games, stored as subscription games."""

    slug = "amazon_prime"
    provider_id = "amazon_games"
    entity_kind = EntityKind.SUBSCRIPTION_GAME
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS

    BASE_URL = "https://gaming.amazon.com"
    CATALOG_URL = "https://gaming.amazon.com/home?filter=Game"

    def __init__(self):
        super().__init__()
        self.detail_concurrency = settings.AMAZON_DETAIL_CONCURRENCY

    def dedup_key(self, offer: NormalizedOffer) -> Dict[str, Any]:
        # Detail links carry tracking refs; the title is the stable identity
        return {"name": offer.name, "provider_id": offer.provider_id}

    async def fetch_offers(self) -> List[NormalizedOffer]:
        """Scrape the catalog grid and each card's detail page.

        Raises:
            AdapterFailure: If the catalog grid never renders
        """
        async with self._browser_scope():
            try:
                html = await self._fetch_rendered_page(
                    self.CATALOG_URL,
                    wait_for=CARD_SELECTOR,
                    hover=FOOTER_SELECTOR,
                )
            except Exception as e:
                raise AdapterFailure(self.slug, f"offer grid not found: {e}") from e

            cards = parse_offer_cards(html)
            self.logger.info("amazon_cards_found", count=len(cards))

            semaphore = asyncio.Semaphore(max(1, self.detail_concurrency))
            results = await asyncio.gather(
                *(self._build_offer(card, semaphore) for card in cards)
            )

        return [offer for offer in results if offer is not None]

    async def _build_offer(self, card: Dict[str, str], semaphore: asyncio.Semaphore) -> Optional[NormalizedOffer]:
        try:
            details: Dict[str, Any] = {}
            if card["link"]:
                async with semaphore:
                    detail_html = await self._fetch_rendered_page(card["link"], wait_for=DETAIL_READY_SELECTOR)
                details = parse_detail_page(detail_html)
            return self.normalize(card, details)
        except Exception as e:
            self._record_failure(card.get("title") or card.get("link") or "unknown", e)
            return None

    def normalize(self, card: Dict[str, str], details: Dict[str, Any]) -> NormalizedOffer:
        now = utcnow()
        days = parse_days_remaining(card.get("ends", "")) or DEFAULT_OFFER_DAYS
        start_date = start_of_month(now)
        return NormalizedOffer(
            name=card["title"],
            provider_id=self.provider_id,
            provider_url=card["link"] or self.CATALOG_URL,
            start_date=start_date,
            end_date=now + timedelta(days=days),
            cover=card.get("cover", ""),
            cover_portrait=card.get("cover", ""),
            description=details.get("description", ""),
            developer=details.get("developer", ""),
            publisher=details.get("publisher") or None,
            platform_ids=["windows"],
            free=False,
            release_date=details.get("release_date"),
        )


def parse_offer_cards(html: str) -> List[Dict[str, str]]:
    """Title, cover, end label and detail link of every offer card."""
    soup = BeautifulSoup(html, "html.parser")
    cards = []
    for element in soup.select(CARD_SELECTOR):
        title = element.select_one("h3")
        image = element.select_one("img.tw-image")
        ends = element.select_one("p.tw-c-text-white.tw-font-size-7")
        link = element.select_one("a")
        if title is None or not title.get_text(strip=True):
            continue
        cards.append({
            "title": title.get_text(strip=True),
            "cover": image.get("src", "") if image else "",
            "ends": ends.get_text(strip=True) if ends else "",
            "link": _absolute_url(link.get("href", "")) if link else "",
        })
    return cards


def _absolute_url(href: str) -> str:
    if not href or href.startswith("http"):
        return href or ""
    return AmazonPrimeAdapter.BASE_URL + href


def _labelled_value(soup: BeautifulSoup, label: str) -> str:
    """Text following a "Developer" / "Publisher" style label."""
    for element in soup.find_all(["dt", "p", "span", "h3", "div"]):
        if element.get_text(strip=True).lower() == label.lower():
            sibling = element.find_next_sibling()
            if sibling is not None:
                return sibling.get_text(" ", strip=True)
    return ""


def parse_detail_page(html: str) -> Dict[str, Any]:
    """Description, publisher, developer and release date of a detail page."""
    soup = BeautifulSoup(html, "html.parser")

    lead = ""
    for selector in DESCRIPTION_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            lead = element.get_text("\n", strip=True).replace("\n\n", ". ")
            break
    extra_el = soup.select_one(DESCRIPTION_EXTRA_SELECTOR)
    extra = extra_el.get_text(" ", strip=True) if extra_el else ""
    description = ". ".join(part for part in (lead, extra) if part)

    publisher_el = soup.select_one(PUBLISHER_SELECTOR)
    publisher = publisher_el.get_text(strip=True) if publisher_el else _labelled_value(soup, "Publisher")

    return {
        "description": description,
        "publisher": publisher,
        "developer": _labelled_value(soup, "Developer"),
        "release_date": parse_release_date(_labelled_value(soup, "Release date")),
    }
