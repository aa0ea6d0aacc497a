from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from drillcraft.crud.content_store import ContentStore
from drillcraft.schemas.drill_schema import AssignmentRecord, Rating, ReviewStats
from drillcraft.services import scheduler
from drillcraft.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class ReviewService:
    """Persists learner ratings and reports review counters."""

    def __init__(self, store: ContentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def record_rating(self, user_id: Optional[str], content_id: str, rating: Any) -> AssignmentRecord:
        """Reschedule ``content_id`` for ``user_id``.

        Unknown ratings raise ``DrillValidationError`` before anything is
        written; store failures propagate to the caller.
        """

        parsed = Rating.parse(rating)
        now = self.clock()
        record = self.store.record_review(
            user_id,
            content_id,
            rating=parsed,
            reviewed_at=now,
            next_review_at=scheduler.next_review_at(parsed, now),
        )
        logger.debug(
            "Rating %s saved for %s/%s, next review %s",
            parsed.value,
            user_id,
            content_id,
            record.next_review_at.isoformat(),
        )
        return record

    def stats(self, user_id: Optional[str]) -> ReviewStats:
        return self.store.get_review_stats(user_id, self.clock())


__all__ = ["ReviewService"]
