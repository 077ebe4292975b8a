"""Open Graph preview resolver for article links."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import httpx
import structlog
from bs4 import BeautifulSoup

from budgetgamer.config import settings
from budgetgamer.core.exceptions import DomainNotAllowedError
from budgetgamer.scrapers.utils.links import is_allowed_article_domain
from budgetgamer.scrapers.utils.user_agents import get_user_agent_for

logger = structlog.get_logger(__name__)

# Reddit serves its app icon when a post has no preview image
REDDIT_PLACEHOLDER_ICON = "https://www.redditstatic.com/new-icon.png"


@dataclass
class LinkPreview:
    """Metadata scraped from a page. Missing fields stay None."""

    title: Optional[str] = None
    description: Optional[str] = None
    cover: Optional[str] = None


class LinkPreviewResolver:
    """Fetch a page with the domain's preferred identity and read its metadata."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self.http_client = http_client
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def resolve(self, url: str) -> LinkPreview:
        """Resolve ``url`` into a preview.

        Raises:
            DomainNotAllowedError: If ``url`` is outside the article domains.
                Checked before any request is made.
        """
        if not is_allowed_article_domain(url):
            raise DomainNotAllowedError(url)

        headers = {"User-Agent": get_user_agent_for(url)}
        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, headers=headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            # Articles still get stored with defaults
            logger.warning("link_preview_failed", url=url, error=str(e))
            return LinkPreview()

        return parse_preview(response.text, str(response.url))


def _meta(soup: BeautifulSoup, *names: str) -> Optional[str]:
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
        if tag and tag.get("content", "").strip():
            return tag["content"].strip()
    return None


def parse_preview(html: str, base_url: str = "") -> LinkPreview:
    """Read Open Graph metadata with <title>, description and icon fallbacks."""
    soup = BeautifulSoup(html, "html.parser")

    title = _meta(soup, "og:title", "twitter:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip() or None

    description = _meta(soup, "og:description", "description", "twitter:description")

    cover = _meta(soup, "og:image", "twitter:image")
    if not cover:
        icon = soup.find("link", rel=lambda rel: rel and "icon" in rel)
        if icon and icon.get("href"):
            cover = icon["href"]
    if cover and base_url:
        cover = urljoin(base_url, cover)
    if cover == REDDIT_PLACEHOLDER_ICON:
        cover = None

    return LinkPreview(title=title, description=description, cover=cover)
