"""Shared content pool: drill items reusable across learners."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import List

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drillcraft.db.base_class import Base


class ContentOrigin(str, enum.Enum):
    GEMINI = "gemini"
    FALLBACK = "fallback"


class ContentItem(Base):
    """A generated sentence pair, owned by the pool and never deleted."""

    __tablename__ = "content_pool"

    id: Mapped[str] = mapped_column(String(80), primary_key=True)
    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    target_text: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str | None] = mapped_column(String(100))
    grammar: Mapped[str | None] = mapped_column(String(100))
    level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    job_roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    interests: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    grammar_patterns: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    contexts: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    generated_by: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContentOrigin.GEMINI.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    assignments = relationship("Assignment", back_populates="content")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ContentItem(id='{self.id}', level='{self.level}', downvotes={self.downvotes})>"


__all__ = ["ContentItem", "ContentOrigin"]
