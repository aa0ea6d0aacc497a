"""Content store contract and its SQLAlchemy backend.

The public methods of :class:`ContentStore` apply the authentication policy
(reads degrade to empty results, writes are rejected) and delegate to
protected hooks that each backend implements.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, NoReturn, Optional, Sequence, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from drillcraft.core.errors import AuthenticationRequired, ContentNotFound, StoreError
from drillcraft.core.tags import ProficiencyLevel
from drillcraft.models.assignment_model import Assignment
from drillcraft.models.content_item_model import ContentItem
from drillcraft.schemas.drill_schema import AssignmentRecord, ContentRecord, Rating, ReviewStats

logger = logging.getLogger(__name__)

DueItem = Tuple[AssignmentRecord, ContentRecord]


class ContentStore(ABC):
    """Persistence contract the composer, the review service and the
    moderation gate depend on."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_due_assignments(self, user_id: Optional[str], now: datetime) -> List[DueItem]:
        """Return the user's due assignments joined with their content."""
        if not user_id:
            return []
        return self._get_due_assignments(user_id, now)

    def get_content_by_ids(self, content_ids: Iterable[str]) -> Dict[str, ContentRecord]:
        ids = list(dict.fromkeys(content_ids))
        if not ids:
            return {}
        return self._get_content_by_ids(ids)

    def get_assignment(self, user_id: Optional[str], content_id: str) -> Optional[AssignmentRecord]:
        if not user_id:
            return None
        return self._get_assignment(user_id, content_id)

    def list_reusable_content(
        self,
        user_id: Optional[str],
        level: ProficiencyLevel,
        *,
        threshold: int,
        limit: int,
    ) -> List[ContentRecord]:
        """Candidate pool for reuse: same level, below the downvote threshold,
        not yet assigned to ``user_id``, least used first."""
        if not user_id or limit <= 0:
            return []
        return self._list_reusable_content(user_id, level, threshold, limit)

    def get_review_stats(self, user_id: Optional[str], now: datetime) -> ReviewStats:
        if not user_id:
            return ReviewStats()
        return self._get_review_stats(user_id, now)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def save_content(self, items: Sequence[ContentRecord]) -> List[ContentRecord]:
        """Insert ``items`` into the pool. Existing ids keep their stored row.

        Returns the stored record for every requested id, in input order.
        """
        if not items:
            return []
        return self._save_content(items)

    def assign_content(
        self,
        user_id: Optional[str],
        content_ids: Sequence[str],
        next_review_at: datetime,
    ) -> List[AssignmentRecord]:
        """Create assignments the user does not have yet.

        Existing assignments keep their schedule. Usage counts are bumped for
        the newly assigned content only.
        """
        self._require_user(user_id)
        if not content_ids:
            return []
        return self._assign_content(user_id, list(dict.fromkeys(content_ids)), next_review_at)

    def record_review(
        self,
        user_id: Optional[str],
        content_id: str,
        *,
        rating: Rating,
        reviewed_at: datetime,
        next_review_at: datetime,
    ) -> AssignmentRecord:
        self._require_user(user_id)
        return self._record_review(user_id, content_id, rating, reviewed_at, next_review_at)

    def increment_downvote(self, content_id: str, *, ceiling: int) -> int:
        """Atomically add one downvote, never exceeding ``ceiling``.

        Returns the stored count.
        """
        return self._increment_downvote(content_id, ceiling)

    @staticmethod
    def _require_user(user_id: Optional[str]) -> None:
        if not user_id:
            raise AuthenticationRequired("Sign in to save progress")

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------
    @abstractmethod
    def _get_due_assignments(self, user_id: str, now: datetime) -> List[DueItem]: ...

    @abstractmethod
    def _get_content_by_ids(self, content_ids: List[str]) -> Dict[str, ContentRecord]: ...

    @abstractmethod
    def _get_assignment(self, user_id: str, content_id: str) -> Optional[AssignmentRecord]: ...

    @abstractmethod
    def _list_reusable_content(
        self, user_id: str, level: ProficiencyLevel, threshold: int, limit: int
    ) -> List[ContentRecord]: ...

    @abstractmethod
    def _get_review_stats(self, user_id: str, now: datetime) -> ReviewStats: ...

    @abstractmethod
    def _save_content(self, items: Sequence[ContentRecord]) -> List[ContentRecord]: ...

    @abstractmethod
    def _assign_content(
        self, user_id: str, content_ids: List[str], next_review_at: datetime
    ) -> List[AssignmentRecord]: ...

    @abstractmethod
    def _record_review(
        self,
        user_id: str,
        content_id: str,
        rating: Rating,
        reviewed_at: datetime,
        next_review_at: datetime,
    ) -> AssignmentRecord: ...

    @abstractmethod
    def _increment_downvote(self, content_id: str, ceiling: int) -> int: ...


class SqlContentStore(ContentStore):
    """SQLAlchemy implementation. Every write commits; failures roll back and
    surface as :class:`StoreError`."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _get_due_assignments(self, user_id: str, now: datetime) -> List[DueItem]:
        statement = (
            select(Assignment, ContentItem)
            .join(ContentItem, ContentItem.id == Assignment.content_id)
            .where(Assignment.user_id == user_id, Assignment.next_review_at <= now)
            .order_by(Assignment.next_review_at.asc(), Assignment.content_id.asc())
        )
        try:
            rows = self.db.execute(statement).all()
        except SQLAlchemyError as exc:
            self._fail("due_read_failed", exc)
        return [
            (AssignmentRecord.model_validate(assignment), ContentRecord.model_validate(content))
            for assignment, content in rows
        ]

    def _get_content_by_ids(self, content_ids: List[str]) -> Dict[str, ContentRecord]:
        try:
            rows = self.db.scalars(select(ContentItem).where(ContentItem.id.in_(content_ids))).all()
        except SQLAlchemyError as exc:
            self._fail("content_read_failed", exc)
        return {row.id: ContentRecord.model_validate(row) for row in rows}

    def _get_assignment(self, user_id: str, content_id: str) -> Optional[AssignmentRecord]:
        try:
            row = self._find_assignment(user_id, content_id)
        except SQLAlchemyError as exc:
            self._fail("assignment_read_failed", exc)
        return AssignmentRecord.model_validate(row) if row else None

    def _list_reusable_content(
        self, user_id: str, level: ProficiencyLevel, threshold: int, limit: int
    ) -> List[ContentRecord]:
        already_assigned = select(Assignment.content_id).where(Assignment.user_id == user_id)
        statement = (
            select(ContentItem)
            .where(
                ContentItem.level == level.value,
                ContentItem.downvotes < threshold,
                ContentItem.id.not_in(already_assigned),
            )
            .order_by(ContentItem.usage_count.asc(), ContentItem.created_at.asc(), ContentItem.id.asc())
            .limit(limit)
        )
        try:
            rows = self.db.scalars(statement).all()
        except SQLAlchemyError as exc:
            self._fail("pool_read_failed", exc)
        return [ContentRecord.model_validate(row) for row in rows]

    def _get_review_stats(self, user_id: str, now: datetime) -> ReviewStats:
        statement = select(
            func.count(Assignment.id),
            func.coalesce(func.sum(case((Assignment.next_review_at <= now, 1), else_=0)), 0),
        ).where(Assignment.user_id == user_id)
        try:
            total, due = self.db.execute(statement).one()
        except SQLAlchemyError as exc:
            self._fail("stats_read_failed", exc)
        return ReviewStats(total_reviewed=int(total or 0), due_today=int(due or 0))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _save_content(self, items: Sequence[ContentRecord]) -> List[ContentRecord]:
        requested = {item.id: item for item in items}
        try:
            stored = {
                row.id: ContentRecord.model_validate(row)
                for row in self.db.scalars(
                    select(ContentItem).where(ContentItem.id.in_(list(requested)))
                ).all()
            }
            for content_id, item in requested.items():
                if content_id in stored:
                    continue
                row = ContentItem(**item.model_dump(mode="json", exclude={"created_at"}))
                row.created_at = item.created_at
                self.db.add(row)
                stored[content_id] = item
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("content_write_failed", exc)

        return [stored[item.id] for item in items]

    def _assign_content(
        self, user_id: str, content_ids: List[str], next_review_at: datetime
    ) -> List[AssignmentRecord]:
        try:
            rows = {
                row.content_id: row
                for row in self.db.scalars(
                    select(Assignment).where(
                        Assignment.user_id == user_id,
                        Assignment.content_id.in_(content_ids),
                    )
                ).all()
            }
            fresh = [content_id for content_id in content_ids if content_id not in rows]
            for content_id in fresh:
                row = Assignment(
                    user_id=user_id,
                    content_id=content_id,
                    next_review_at=next_review_at,
                    review_count=0,
                )
                self.db.add(row)
                rows[content_id] = row
            records = [AssignmentRecord.model_validate(rows[content_id]) for content_id in content_ids]
            if fresh:
                self.db.execute(
                    update(ContentItem)
                    .where(ContentItem.id.in_(fresh))
                    .values(usage_count=ContentItem.usage_count + 1)
                )
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("assignment_write_failed", exc)

        return records

    def _record_review(
        self,
        user_id: str,
        content_id: str,
        rating: Rating,
        reviewed_at: datetime,
        next_review_at: datetime,
    ) -> AssignmentRecord:
        try:
            row = self._find_assignment(user_id, content_id)
            if row is None:
                if self.db.get(ContentItem, content_id) is None:
                    raise ContentNotFound(f"Unknown content {content_id!r}")
                row = Assignment(user_id=user_id, content_id=content_id, review_count=0)
                self.db.add(row)

            row.last_rating = rating.value
            row.last_review_at = reviewed_at
            row.next_review_at = next_review_at
            row.review_count = (row.review_count or 0) + 1
            record = AssignmentRecord.model_validate(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("review_write_failed", exc)

        return record

    def _increment_downvote(self, content_id: str, ceiling: int) -> int:
        try:
            self.db.execute(
                update(ContentItem)
                .where(ContentItem.id == content_id, ContentItem.downvotes < ceiling)
                .values(downvotes=ContentItem.downvotes + 1)
            )
            self.db.commit()
            downvotes = self.db.scalar(select(ContentItem.downvotes).where(ContentItem.id == content_id))
        except SQLAlchemyError as exc:
            self._fail("downvote_write_failed", exc)

        if downvotes is None:
            raise ContentNotFound(f"Unknown content {content_id!r}")
        return int(downvotes)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _find_assignment(self, user_id: str, content_id: str) -> Optional[Assignment]:
        return self.db.scalars(
            select(Assignment).where(
                Assignment.user_id == user_id,
                Assignment.content_id == content_id,
            )
        ).first()

    def _fail(self, code: str, exc: SQLAlchemyError) -> NoReturn:
        self.db.rollback()
        logger.error("Content store failure (%s): %s", code, exc)
        raise StoreError("Storage is unavailable, please retry", code=code) from exc


__all__ = ["ContentStore", "DueItem", "SqlContentStore"]
