"""Process-local content store for single-instance runs and tests."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from drillcraft.core.errors import ContentNotFound
from drillcraft.core.tags import ProficiencyLevel
from drillcraft.crud.content_store import ContentStore, DueItem
from drillcraft.schemas.drill_schema import AssignmentRecord, ContentRecord, Rating, ReviewStats


class InMemoryContentStore(ContentStore):
    """Dict-backed store. A single lock makes every counter update atomic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._content: Dict[str, ContentRecord] = {}
        self._assignments: Dict[Tuple[str, str], AssignmentRecord] = {}

    def _get_due_assignments(self, user_id: str, now: datetime) -> List[DueItem]:
        with self._lock:
            due = [
                (assignment, self._content[content_id])
                for (owner, content_id), assignment in self._assignments.items()
                if owner == user_id and assignment.next_review_at <= now
            ]
        due.sort(key=lambda item: (item[0].next_review_at, item[0].content_id))
        return due

    def _get_content_by_ids(self, content_ids: List[str]) -> Dict[str, ContentRecord]:
        with self._lock:
            return {cid: self._content[cid] for cid in content_ids if cid in self._content}

    def _get_assignment(self, user_id: str, content_id: str) -> Optional[AssignmentRecord]:
        return self._assignments.get((user_id, content_id))

    def _list_reusable_content(
        self, user_id: str, level: ProficiencyLevel, threshold: int, limit: int
    ) -> List[ContentRecord]:
        with self._lock:
            candidates = [
                item
                for item in self._content.values()
                if item.level == level
                and item.downvotes < threshold
                and (user_id, item.id) not in self._assignments
            ]
        candidates.sort(key=lambda item: (item.usage_count, item.created_at, item.id))
        return candidates[:limit]

    def _get_review_stats(self, user_id: str, now: datetime) -> ReviewStats:
        with self._lock:
            owned = [a for (owner, _), a in self._assignments.items() if owner == user_id]
        return ReviewStats(
            total_reviewed=len(owned),
            due_today=sum(1 for assignment in owned if assignment.next_review_at <= now),
        )

    def _save_content(self, items: Sequence[ContentRecord]) -> List[ContentRecord]:
        with self._lock:
            for item in items:
                self._content.setdefault(item.id, item.model_copy(deep=True))
            return [self._content[item.id] for item in items]

    def _assign_content(
        self, user_id: str, content_ids: List[str], next_review_at: datetime
    ) -> List[AssignmentRecord]:
        with self._lock:
            records = []
            for content_id in content_ids:
                key = (user_id, content_id)
                if key not in self._assignments:
                    self._require_content(content_id)
                    self._assignments[key] = AssignmentRecord(
                        user_id=user_id,
                        content_id=content_id,
                        next_review_at=next_review_at,
                        review_count=0,
                    )
                    item = self._content[content_id]
                    self._content[content_id] = item.model_copy(
                        update={"usage_count": item.usage_count + 1}
                    )
                records.append(self._assignments[key])
            return records

    def _record_review(
        self,
        user_id: str,
        content_id: str,
        rating: Rating,
        reviewed_at: datetime,
        next_review_at: datetime,
    ) -> AssignmentRecord:
        with self._lock:
            self._require_content(content_id)
            key = (user_id, content_id)
            previous = self._assignments.get(key)
            record = AssignmentRecord(
                user_id=user_id,
                content_id=content_id,
                next_review_at=next_review_at,
                last_review_at=reviewed_at,
                last_rating=rating,
                review_count=(previous.review_count if previous else 0) + 1,
            )
            self._assignments[key] = record
            return record

    def _increment_downvote(self, content_id: str, ceiling: int) -> int:
        with self._lock:
            item = self._require_content(content_id)
            if item.downvotes < ceiling:
                item = item.model_copy(update={"downvotes": item.downvotes + 1})
                self._content[content_id] = item
            return item.downvotes

    def _require_content(self, content_id: str) -> ContentRecord:
        item = self._content.get(content_id)
        if item is None:
            raise ContentNotFound(f"Unknown content {content_id!r}")
        return item


__all__ = ["InMemoryContentStore"]
