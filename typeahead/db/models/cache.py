"""SQLAlchemy model backing the persistent search result cache."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from typeahead.db.base import Base


class CachedSearchResult(Base):
    __tablename__ = "search_results"
    __table_args__ = (UniqueConstraint("key"),)

    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    # Epoch milliseconds.
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ttl_ms: Mapped[int | None] = mapped_column(BigInteger)


__all__ = ["CachedSearchResult"]
