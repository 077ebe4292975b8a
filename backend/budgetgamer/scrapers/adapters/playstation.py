"""PlayStation Store product adapter.

Tries the legacy chihiro container API first and falls back to the JSON
cache the store page embeds in its script tags.
"""

import json
from datetime import timedelta
from typing import Any, Dict, Iterator, List, Optional

import httpx
from bs4 import BeautifulSoup

from budgetgamer.core.exceptions import NotFreeError, ScraperError
from budgetgamer.scrapers.base import BaseScraperAdapter, DedupPolicy, EntityKind, NormalizedOffer
from budgetgamer.scrapers.utils.dates import (
    normalize_platforms,
    parse_release_date,
    start_of_month,
    strip_html,
)
from budgetgamer.scrapers.utils.links import PLAYSTATION_PATTERN


IMAGE_HOST = "https://image.api.playstation.com/"
LEGACY_IMAGE_HOST = "https://apollo2.dl.playstation.net/"

# Monthly cadence assumed for every PlayStation offer: granted on the 1st,
# claimable for 30 days
OFFER_WINDOW = timedelta(days=30)


class PlayStationAdapter(BaseScraperAdapter):
    """Free PlayStation Store products submitted by link."""

    slug = "playstation"
    provider_id = "playstation"
    entity_kind = EntityKind.FREE_GAME
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS

    API_URL = "https://store.playstation.com/store/api/chihiro/00_09_000/container/gb/en/999/{product_id}"
    PRODUCT_PAGE_URL = "https://store.playstation.com/en-gb/product/{product_id}/"

    # Submissions must be free; PS Plus catalog entries are not
    require_free = True

    async def fetch_offer(self, url: str) -> NormalizedOffer:
        """Resolve a product link.

        Raises:
            ScraperError: If neither the API nor the page yields the product
            NotFreeError: If ``require_free`` and the product has a price
        """
        match = PLAYSTATION_PATTERN.search(url)
        if not match:
            raise ScraperError("PlayStation", "Could not extract game ID from URL")
        product_id = match.group(3)

        details = await self.fetch_product(product_id)
        if details is None:
            raise ScraperError("PlayStation", f"Could not fetch product {product_id}")

        if self.require_free and not details["free"]:
            raise NotFreeError(details["name"] or product_id, "not free on the PlayStation Store")

        return self.normalize(details, url)

    def normalize(self, details: Dict[str, Any], url: str) -> NormalizedOffer:
        start_date = start_of_month()
        return NormalizedOffer(
            name=details["name"],
            provider_id=self.provider_id,
            provider_url=url,
            start_date=start_date,
            end_date=start_date + OFFER_WINDOW,
            cover=details["cover"],
            cover_portrait=details["cover_portrait"],
            description=details["description"],
            developer=details["developer"],
            publisher=details["publisher"] or None,
            platform_ids=details["platform_ids"],
            free=details["free"],
            release_date=details["release_date"],
        )

    async def fetch_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Product details from the API, else from the rendered store page."""
        try:
            data = await self._get_json(self.API_URL.format(product_id=product_id))
            return parse_api_product(data)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            self.logger.warning("ps_api_failed", product_id=product_id, error=str(e))

        html = await self._fetch_rendered_page(
            self.PRODUCT_PAGE_URL.format(product_id=product_id),
            wait_for="script",
        )
        return parse_product_page(html, product_id)


def _image_url(url: str) -> str:
    return url.replace(LEGACY_IMAGE_HOST, IMAGE_HOST) if url else ""


def _platforms(values) -> List[str]:
    if isinstance(values, str):
        values = values.split(",")
    return normalize_platforms(str(v).replace("™", "") for v in values or [])


def parse_api_product(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map a chihiro container response onto the product detail fields."""
    if not data.get("name"):
        raise ValueError("chihiro response has no product name")

    images = [_image_url(image.get("url", "")) for image in data.get("images") or []]
    if len(images) > 1:
        cover_portrait, cover = images[0], images[1]
    elif images:
        cover_portrait = cover = images[0]
    else:
        cover_portrait = cover = ""

    provider_name = data.get("provider_name") or ""
    return {
        "name": data["name"],
        "cover": cover,
        "cover_portrait": cover_portrait,
        "description": strip_html(data.get("long_desc")),
        "developer": provider_name,
        "publisher": provider_name,
        "platform_ids": _platforms(data.get("playable_platform")),
        "free": (data.get("default_sku") or {}).get("price") == 0,
        "release_date": parse_release_date(data.get("release_date")),
    }


def _script_payloads(soup: BeautifulSoup) -> Iterator[Any]:
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if not text or not text.strip().startswith("{"):
            continue
        try:
            yield json.loads(text)
        except ValueError:
            continue


def parse_product_page(html: str, product_id: str) -> Optional[Dict[str, Any]]:
    """Extract product details from the page's embedded JSON cache.

    Returns None when the product entry or its price cannot be found.
    """
    soup = BeautifulSoup(html, "html.parser")
    product_key = f"Product:{product_id}"

    product: Dict[str, Any] = {}
    price = None
    for payload in _script_payloads(soup):
        if not isinstance(payload, dict):
            continue
        entry = (payload.get("cache") or {}).get(product_key)
        if isinstance(entry, dict):
            product.update(entry)
        offers = payload.get("offers")
        if price is None and isinstance(offers, dict) and "price" in offers:
            price = offers["price"]

    if not product.get("name") or price is None:
        return None

    cover = cover_portrait = ""
    for media in product.get("media") or []:
        if media.get("role") == "MASTER":
            cover_portrait = media.get("url", "")
        elif media.get("role") == "GAMEHUB_COVER_ART":
            cover = media.get("url", "")

    description = ""
    for entry in product.get("descriptions") or []:
        if entry.get("type") == "LONG":
            description = strip_html(entry.get("value"))
            break

    publisher = product.get("publisherName") or ""
    return {
        "name": product["name"],
        "cover": cover or cover_portrait,
        "cover_portrait": cover_portrait,
        "description": description,
        "developer": publisher,
        "publisher": publisher,
        "platform_ids": _platforms(product.get("platforms")),
        "free": float(price) == 0,
        "release_date": parse_release_date(product.get("releaseDate")),
    }
