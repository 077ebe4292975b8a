"""Link classification and domain helpers.

``classify()`` runs an ordered list of matchers over a submitted URL and
returns the first hit.  The order matters: a Humble store link is a game
before it is an article, so game matchers come first.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from budgetgamer.core.exceptions import InvalidLinkError, UnsupportedLinkError


class LinkKind:
    """Classification results. Values double as adapter slugs for game links."""

    STEAM = "steam"
    EPIC_GAMES = "epic_games"
    PLAYSTATION = "playstation"
    HUMBLE_BUNDLE = "humble_bundle"
    GOG = "gog"
    ARTICLE = "article"


GAME_KINDS = frozenset({
    LinkKind.STEAM,
    LinkKind.EPIC_GAMES,
    LinkKind.PLAYSTATION,
    LinkKind.HUMBLE_BUNDLE,
    LinkKind.GOG,
})

# Human readable provider names used in error messages
PROVIDER_NAMES = {
    LinkKind.STEAM: "Steam",
    LinkKind.EPIC_GAMES: "Epic Games",
    LinkKind.PLAYSTATION: "PlayStation",
    LinkKind.HUMBLE_BUNDLE: "Humble Bundle",
    LinkKind.GOG: "GOG",
    LinkKind.ARTICLE: "Article",
}

URL_PATTERN = re.compile(
    r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=,]*)$",
    re.IGNORECASE,
)

STEAM_PATTERN = re.compile(r"store\.steampowered\.com/app/(\d+)", re.IGNORECASE)
EPIC_PATTERN = re.compile(r"store\.epicgames\.com/([a-zA-Z]+(-[a-zA-Z]+))+/.*/")
PLAYSTATION_PATTERN = re.compile(r"store\.playstation\.com/([a-zA-Z]+(-[a-zA-Z]+)+)/product/([^/?#]+)")
HUMBLE_STORE_PATTERN = re.compile(r"humblebundle\.com/store/([^/?#,]+)")
GOG_PATTERNS = (
    re.compile(r"gog\.com/.*/game/([^/?#]+)"),
    re.compile(r"gog\.com/game/([^/?#]+)"),
)

# Article sources, in the order the default cover lookup checks them
ARTICLE_DOMAINS: Tuple[Tuple[str, str], ...] = (
    ("twitter", "twitter.com"),
    ("humblebundle", "humblebundle.com"),
    ("gleam", "gleam.io"),
    ("reddit", "reddit.com"),
    ("facebook", "facebook.com"),
)

_COVER_BASE = "https://firebasestorage.googleapis.com/v0/b/budget-gamer-debug.appspot.com/o/defaultImages%2F"
DEFAULT_COVERS = {
    "twitter": _COVER_BASE + "twitter.jpg?alt=media&token=92f9aade-f7a2-4bc9-b645-d5a8f8a9bb63",
    "humblebundle": _COVER_BASE + "humbleBundle.jpg?alt=media&token=be57d6e8-c715-45cd-a1f4-5855635afef5",
    "gleam": _COVER_BASE + "gleam.jpg?alt=media&token=7916b299-78bf-479d-b1d3-568e459a28ef",
    "reddit": _COVER_BASE + "reddit.jpg?alt=media&token=df915d1e-e68c-4d45-95a3-d1c1c8755fb6",
    "facebook": _COVER_BASE + "facebook.jpg?alt=media&token=abcf3d70-22cc-457f-bc25-5f82e67c5ad3",
}
FALLBACK_COVER = _COVER_BASE + "default.jpg?alt=media&token=37aef14b-5e4a-49ea-bd5c-e074feb9013b"


@dataclass
class LinkClassification:
    """Result of classifying a submitted link."""

    kind: str
    url: str
    external_id: Optional[str] = None
    slugs: List[str] = field(default_factory=list)  # Humble comma-joined submissions

    @property
    def is_game(self) -> bool:
        return self.kind in GAME_KINDS

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAMES[self.kind]


def is_valid_url(url: str) -> bool:
    """Return True for a well-formed http(s) URL."""
    return bool(url) and bool(URL_PATTERN.match(url.strip()))


def classify(url: str) -> LinkClassification:
    """Classify a submitted link by provider.

    Args:
        url: Raw URL as submitted

    Returns:
        LinkClassification for the first matching pattern

    Raises:
        InvalidLinkError: If the value is not a URL
        UnsupportedLinkError: If no pattern matches
    """
    url = (url or "").strip()
    if not is_valid_url(url):
        raise InvalidLinkError(url)

    match = STEAM_PATTERN.search(url)
    if match:
        return LinkClassification(LinkKind.STEAM, url, external_id=match.group(1))

    if EPIC_PATTERN.search(url):
        return LinkClassification(LinkKind.EPIC_GAMES, url)

    match = PLAYSTATION_PATTERN.search(url)
    if match:
        return LinkClassification(LinkKind.PLAYSTATION, url, external_id=match.group(3))

    if HUMBLE_STORE_PATTERN.search(url):
        slugs = extract_humble_slugs(url)
        return LinkClassification(
            LinkKind.HUMBLE_BUNDLE,
            url,
            external_id=slugs[0] if slugs else None,
            slugs=slugs,
        )

    for pattern in GOG_PATTERNS:
        match = pattern.search(url)
        if match:
            return LinkClassification(LinkKind.GOG, url, external_id=match.group(1))

    if is_allowed_article_domain(url):
        return LinkClassification(LinkKind.ARTICLE, url)

    raise UnsupportedLinkError(url)


def extract_humble_slugs(url: str) -> List[str]:
    """Return the store slugs of a single or comma-joined Humble submission."""
    slugs = []
    for part in url.split(","):
        match = HUMBLE_STORE_PATTERN.search(part.strip())
        if match:
            slugs.append(match.group(1))
    return slugs


def is_allowed_article_domain(url: str) -> bool:
    """Return True if ``url``'s host is one of the article source domains."""
    return _article_source(url) is not None


def host_matches(url: str, domain: str) -> bool:
    """True when ``url``'s host is ``domain`` or one of its subdomains."""
    host = (urlparse(url.strip()).hostname or "").lower()
    return host == domain or host.endswith("." + domain)


def _article_source(url: str) -> Optional[str]:
    for name, domain in ARTICLE_DOMAINS:
        if host_matches(url, domain):
            return name
    return None


def extract_domain(url: str) -> str:
    """Hostname of ``url`` with the leading 'www.' stripped."""
    hostname = urlparse(url).hostname or ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def default_cover_for(url: str) -> str:
    """Placeholder cover image for an article from ``url``'s domain."""
    source = _article_source(url)
    return DEFAULT_COVERS.get(source, FALLBACK_COVER)


def encode_spaces(value: Optional[str]) -> Optional[str]:
    """Percent-encode literal spaces, which some CDNs emit unescaped."""
    if value is None:
        return None
    return value.replace(" ", "%20")
