"""Reddit giveaway article source.

Authenticates with the installed-client OAuth grant and searches a few
curated subreddits for the last day's giveaway posts.  Each post's outbound
URL becomes a candidate article link.
"""

from typing import Any, Dict, List, Optional

import httpx

from budgetgamer.config import settings
from budgetgamer.core.exceptions import AdapterFailure
from budgetgamer.scrapers.base import BaseAPIAdapter, DedupPolicy, EntityKind


TOKEN_URL = (
    "https://www.reddit.com/api/v1/access_token"
    "?grant_type=https://oauth.reddit.com/grants/installed_client"
    "&device_id=00000000000000000000"
)

# (subreddit, query, limit, required flair)
SEARCHES = (
    ("GiftofGames", "[OFFER]", 10, None),
    ("FreeGameFindings", "giveaway", 5, None),
    ("steam_giveaway", "giveaway", 5, "OPEN"),
)


class RedditAdapter(BaseAPIAdapter):
    """Candidate giveaway article links from Reddit."""

    slug = "reddit"
    provider_id = "none"
    entity_kind = EntityKind.ARTICLE
    dedup_policy = DedupPolicy.SKIP_ON_EXISTS

    SEARCH_URL = "https://oauth.reddit.com/r/{subreddit}/search/"

    def __init__(self, auth_token: Optional[str] = None):
        super().__init__()
        self.auth_token = settings.REDDIT_AUTH_TOKEN if auth_token is None else auth_token

    async def fetch_links(self) -> List[str]:
        """Outbound URLs of today's giveaway posts.

        Raises:
            AdapterFailure: If no access token can be obtained
        """
        token = await self._get_access_token()
        headers = {"Authorization": f"Bearer {token}"}

        links: List[str] = []
        for subreddit, query, limit, flair in SEARCHES:
            try:
                data = await self._get_json(
                    self.SEARCH_URL.format(subreddit=subreddit),
                    params={
                        "q": query,
                        "type": "link",
                        "t": "day",
                        "sort": "new",
                        "limit": limit,
                        "restrict_sr": "on",
                    },
                    headers=headers,
                )
            except (httpx.HTTPError, ValueError) as e:
                self._record_failure(f"r/{subreddit}", e)
                continue
            links.extend(extract_post_links(data, flair))

        self.logger.info("reddit_links_fetched", count=len(links))
        return links

    async def _get_access_token(self) -> str:
        try:
            async with self._client() as client:
                response = await client.post(
                    TOKEN_URL,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Basic {self.auth_token}=",
                    },
                )
                response.raise_for_status()
                token = response.json().get("access_token")
        except (httpx.HTTPError, ValueError) as e:
            raise AdapterFailure(self.slug, f"Failed to get Reddit API token: {e}") from e

        if not token:
            raise AdapterFailure(self.slug, "Failed to get Reddit API token")
        return token


def extract_post_links(data: Dict[str, Any], required_flair: Optional[str] = None) -> List[str]:
    """Outbound URLs from a listing, optionally only posts with ``required_flair``."""
    links = []
    for child in (data.get("data") or {}).get("children") or []:
        post = child.get("data") or {}
        if required_flair is not None and post.get("link_flair_text") != required_flair:
            continue
        if post.get("url"):
            links.append(post["url"])
    return links
