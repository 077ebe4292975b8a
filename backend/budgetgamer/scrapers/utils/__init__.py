"""Utility modules for scrapers."""

from budgetgamer.scrapers.utils.user_agents import get_user_agent_for, DESKTOP_USER_AGENT
from budgetgamer.scrapers.utils.links import (
    LinkClassification,
    LinkKind,
    classify,
    default_cover_for,
    encode_spaces,
    extract_domain,
    is_allowed_article_domain,
    is_valid_url,
)

__all__ = [
    "get_user_agent_for",
    "DESKTOP_USER_AGENT",
    "LinkClassification",
    "LinkKind",
    "classify",
    "default_cover_for",
    "encode_spaces",
    "extract_domain",
    "is_allowed_article_domain",
    "is_valid_url",
]
