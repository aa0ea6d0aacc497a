from __future__ import annotations

from datetime import timedelta

import pytest

from drillcraft.core.errors import AuthenticationRequired, DrillValidationError
from drillcraft.schemas.drill_schema import Rating, ReviewStats
from drillcraft.services.review_service import ReviewService
from tests.utils import FIXED_NOW, make_content, seed_due


def test_record_rating_reschedules(store, clock):
    store.save_content([make_content("rv-1")])
    store.assign_content("learner", ["rv-1"], FIXED_NOW)
    service = ReviewService(store, clock=clock)

    record = service.record_rating("learner", "rv-1", "hard")

    assert record.last_rating is Rating.HARD
    assert record.last_review_at == FIXED_NOW
    assert record.next_review_at == FIXED_NOW + timedelta(days=1)

    clock.advance(days=1)
    record = service.record_rating("learner", "rv-1", Rating.GOOD)
    assert record.review_count == 2
    assert record.next_review_at == FIXED_NOW + timedelta(days=4)


def test_unknown_rating_is_rejected_before_writing(memory_store, clock):
    memory_store.save_content([make_content("rv-2")])
    memory_store.assign_content("learner", ["rv-2"], FIXED_NOW)
    service = ReviewService(memory_store, clock=clock)

    with pytest.raises(DrillValidationError):
        service.record_rating("learner", "rv-2", "superb")
    assert memory_store.get_assignment("learner", "rv-2").review_count == 0


def test_anonymous_rating_is_rejected(memory_store, clock):
    memory_store.save_content([make_content("rv-3")])
    with pytest.raises(AuthenticationRequired):
        ReviewService(memory_store, clock=clock).record_rating(None, "rv-3", "easy")


def test_stats(store, clock):
    seed_due(store, "learner", 3, FIXED_NOW)
    service = ReviewService(store, clock=clock)

    assert service.stats("learner") == ReviewStats(total_reviewed=3, due_today=3)
    assert service.stats(None) == ReviewStats(total_reviewed=0, due_today=0)
