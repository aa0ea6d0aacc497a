"""Spaced-repetition schedule per learner and content item."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drillcraft.db.base_class import Base


class Assignment(Base):
    __tablename__ = "drill_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    content_id: Mapped[str] = mapped_column(
        String(80), ForeignKey("content_pool.id"), nullable=False, index=True
    )

    next_review_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    last_review_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_rating: Mapped[str | None] = mapped_column(String(10))
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    content = relationship("ContentItem", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="uq_user_content_assignment"),
    )


__all__ = ["Assignment"]
