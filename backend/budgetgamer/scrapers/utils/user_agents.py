"""Request identities used when fetching third-party pages.

Some hosts only return their Open Graph metadata to crawlers they
recognise, so the identity depends on the destination host.
"""

from budgetgamer.scrapers.utils.links import host_matches


DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
TWITTER_USER_AGENT = "googlebot"
REDDIT_USER_AGENT = "WhatsApp/2.22.18.75 A"

HOST_USER_AGENTS = (
    ("twitter.com", TWITTER_USER_AGENT),
    ("reddit.com", REDDIT_USER_AGENT),
)


def get_user_agent_for(url: str) -> str:
    """Return the User-Agent to send when previewing ``url``."""
    for domain, user_agent in HOST_USER_AGENTS:
        if host_matches(url, domain):
            return user_agent
    return DESKTOP_USER_AGENT
