"""Article creation from submitted or discovered links."""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetgamer.config import settings
from budgetgamer.core.exceptions import AlreadyExistsError, DomainNotAllowedError, InvalidLinkError
from budgetgamer.models import Article
from budgetgamer.models.base import utcnow
from budgetgamer.scrapers.utils.links import (
    default_cover_for,
    extract_domain,
    is_allowed_article_domain,
    is_valid_url,
)
from budgetgamer.services.link_preview import LinkPreviewResolver

logger = structlog.get_logger(__name__)


class ArticleService:
    """Validates, previews and stores articles."""

    def __init__(self, db: AsyncSession, resolver: Optional[LinkPreviewResolver] = None):
        self.db = db
        self.resolver = resolver or LinkPreviewResolver()
        self.logger = logger.bind(service="article_service")

    async def link_exists(self, link: str) -> bool:
        result = await self.db.execute(select(Article.id).where(Article.link == link).limit(1))
        return result.first() is not None

    async def create_from_link(self, link: str, now: Optional[datetime] = None) -> Article:
        """Store an article for ``link``.

        Validation and the conflict check both happen before the page is
        fetched.

        Raises:
            InvalidLinkError: If ``link`` is not a URL
            DomainNotAllowedError: If the domain is not an article source
            AlreadyExistsError: If the link is already stored
        """
        link = (link or "").strip()
        if not is_valid_url(link):
            raise InvalidLinkError(link)
        if not is_allowed_article_domain(link):
            raise DomainNotAllowedError(link)
        if await self.link_exists(link):
            raise AlreadyExistsError("Article", link)

        preview = await self.resolver.resolve(link)
        domain = extract_domain(link)
        now = now or utcnow()

        article = Article(
            title=preview.title or f"Article from {domain}",
            description=preview.description or f"An article from {domain}",
            cover=preview.cover or default_cover_for(link),
            link=link,
            domain=domain,
            start_date=now,
            end_date=now + timedelta(days=settings.ARTICLE_VISIBILITY_DAYS),
        )
        self.db.add(article)
        await self.db.flush()

        self.logger.info("article_created", id=str(article.id), domain=domain)
        return article
