"""Article model for giveaway posts and announcements."""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from budgetgamer.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Article(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """External giveaway article from an allowed domain.

    ``link`` is unique per allowed domain (checked by the application, not the
    database).  Visibility is the [start_date, end_date] window.
    """

    __tablename__ = "articles"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover: Mapped[str] = mapped_column(Text, nullable=False, default="")
    link: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, comment="Hostname without 'www.'")

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("articles_title_idx", "title"),
        Index("articles_link_idx", "link"),
        Index("articles_start_date_idx", "start_date"),
        Index("articles_end_date_idx", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<Article(id={self.id}, domain='{self.domain}', title='{self.title[:50]}')>"
