"""Fixed-interval spaced repetition.

Pure functions: the current instant is always passed in so schedules can be
computed deterministically.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict

from drillcraft.core.errors import DrillValidationError
from drillcraft.schemas.drill_schema import AssignmentRecord, Rating

REVIEW_INTERVALS: Dict[Rating, timedelta] = {
    Rating.HARD: timedelta(days=1),
    Rating.GOOD: timedelta(days=3),
    Rating.EASY: timedelta(days=7),
}

# First exposure is scheduled as if the learner had rated the card easy.
INITIAL_RATING = Rating.EASY


def next_review_at(rating: Any, now: datetime) -> datetime:
    """Return when a card rated ``rating`` at ``now`` is due again.

    Ratings are normalised like :meth:`Rating.parse` (case and surrounding
    whitespace ignored). Unrecognised ratings map to ``now`` (immediately
    due); callers that persist ratings go through :meth:`Rating.parse`
    first, which rejects them.
    """

    try:
        parsed = Rating.parse(rating)
    except DrillValidationError:
        return now
    return now + REVIEW_INTERVALS[parsed]


def initial_review_at(now: datetime) -> datetime:
    return next_review_at(INITIAL_RATING, now)


def is_due(assignment: AssignmentRecord, now: datetime) -> bool:
    return assignment.next_review_at <= now


__all__ = ["INITIAL_RATING", "REVIEW_INTERVALS", "initial_review_at", "is_due", "next_review_at"]
