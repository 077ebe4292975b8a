"""GOG giveaway scraper adapter.

The product page (JS-rendered) tells whether a game is currently a giveaway;
the homepage countdown tells how long for.  Canonical metadata comes from
GOG's public catalog and product APIs.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from budgetgamer.core.exceptions import NotFreeError, ScraperError
from budgetgamer.scrapers.base import BaseScraperAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import normalize_platforms, parse_countdown, strip_html, utcnow


TITLE_SELECTOR = ".productcard-basics.hide-when-content-is-expanded .productcard-basics__title"
GIVEAWAY_SELECTOR = ".cart-button__state-giveaway span.cart-button__state-default"
COUNTDOWN_SELECTOR = ".giveaway__countdown"
GIVEAWAY_LABEL = "Go to giveaway"


class GOGAdapter(BaseScraperAdapter):
    """GOG giveaways submitted by link."""

    slug = "gog"
    provider_id = "gog"
    entity_kind = EntityKind.FREE_GAME
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS

    GIVEAWAY_URL = "https://www.gog.com/#giveaway"
    SEARCH_URL = "https://embed.gog.com/games/ajax/filtered"
    PRODUCT_URL = "https://api.gog.com/products/{product_id}"
    DEFAULT_OFFER_DAYS = 7

    async def fetch_offer(self, url: str) -> NormalizedOffer:
        """Resolve a GOG product link into a giveaway offer.

        Raises:
            ScraperError: If the title cannot be read or is unknown to the catalog
            NotFreeError: If neither the page nor the catalog marks it free
        """
        async with self._browser_scope():
            product_html = await self._fetch_rendered_page(url, wait_for=TITLE_SELECTOR)
            title, page_says_free = parse_product_page(product_html)
            if not title:
                raise ScraperError("GOG", "Could not find game title")

            countdown = None
            if page_says_free:
                countdown = await self._scrape_countdown()

        product = await self.search_product(title)
        if product is None:
            raise ScraperError("GOG", f"Game not found in GOG catalog: {title}")

        catalog_says_free = (product.get("price") or {}).get("discountPercentage") == 100
        if not page_says_free and not catalog_says_free:
            raise NotFreeError(title, "not a GOG giveaway")

        description = await self._fetch_description(product["id"])

        now = utcnow()
        end_date = now + (countdown if countdown else timedelta(days=self.DEFAULT_OFFER_DAYS))
        return self.normalize(product, url, description, now, end_date)

    def normalize(self, product: Dict[str, Any], url: str, description: str, start_date, end_date) -> NormalizedOffer:
        image = product.get("image") or ""
        cover = f"https:{image}.jpg" if image else ""
        released = product.get("releaseDate")
        return NormalizedOffer(
            name=product["title"],
            provider_id=self.provider_id,
            provider_url=url,
            start_date=start_date,
            end_date=end_date,
            cover=cover,
            cover_portrait=cover,
            description=description,
            developer=product.get("developer") or "",
            publisher=product.get("publisher") or None,
            platform_ids=normalize_platforms(product.get("supportedOperatingSystems") or []),
            free=True,
            release_date=datetime.fromtimestamp(released, tz=timezone.utc) if released else None,
            metadata={"gog_id": str(product["id"])},
        )

    async def _scrape_countdown(self) -> Optional[timedelta]:
        """Time left on the homepage giveaway banner."""
        try:
            html = await self._fetch_rendered_page(
                self.GIVEAWAY_URL,
                wait_for=COUNTDOWN_SELECTOR,
                hover=".main-footer",
            )
        except Exception as e:
            # A missing banner falls back to the default window
            self.logger.warning("gog_countdown_not_found", error=str(e))
            return None
        return parse_countdown_page(html)

    async def search_product(self, title: str) -> Optional[Dict[str, Any]]:
        """Catalog entry whose title matches exactly."""
        data = await self._get_json(self.SEARCH_URL, params={"mediaType": "game", "search": title})
        for product in data.get("products") or []:
            if product.get("title") == title:
                return product
        self.logger.warning("gog_search_no_match", title=title, found=data.get("totalGamesFound", 0))
        return None

    async def _fetch_description(self, product_id) -> str:
        data = await self._get_json(
            self.PRODUCT_URL.format(product_id=product_id),
            params={"expand": "description"},
        )
        full = (data.get("description") or {}).get("full") or ""
        return strip_html(full.replace("\n", " "))


def parse_product_page(html: str):
    """Return (title, is_giveaway) from a rendered GOG product page."""
    soup = BeautifulSoup(html, "html.parser")
    title_el = soup.select_one(TITLE_SELECTOR)
    title = title_el.get_text(strip=True) if title_el else ""
    giveaway_el = soup.select_one(GIVEAWAY_SELECTOR)
    is_free = bool(giveaway_el) and giveaway_el.get_text(strip=True) == GIVEAWAY_LABEL
    return title, is_free


def parse_countdown_page(html: str) -> Optional[timedelta]:
    soup = BeautifulSoup(html, "html.parser")
    element = soup.select_one(COUNTDOWN_SELECTOR)
    return parse_countdown(element.get_text(" ", strip=True)) if element else None
