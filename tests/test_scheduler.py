from __future__ import annotations

from datetime import timedelta

import pytest

from drillcraft.schemas.drill_schema import AssignmentRecord, Rating
from drillcraft.services import scheduler
from tests.utils import FIXED_NOW


@pytest.mark.parametrize(
    "rating, days",
    [
        ("hard", 1),
        ("good", 3),
        ("easy", 7),
        (Rating.HARD, 1),
        (Rating.EASY, 7),
        ("EASY ", 7),
        (" Good", 3),
    ],
)
def test_next_review_intervals(rating, days):
    assert scheduler.next_review_at(rating, FIXED_NOW) - FIXED_NOW == timedelta(days=days)


@pytest.mark.parametrize("rating", ["meh", "", None, 3, "eas y"])
def test_unknown_rating_is_due_immediately(rating):
    assert scheduler.next_review_at(rating, FIXED_NOW) == FIXED_NOW


def test_initial_review_uses_easy_interval():
    assert scheduler.initial_review_at(FIXED_NOW) == FIXED_NOW + timedelta(days=7)


def test_is_due_boundary():
    assignment = AssignmentRecord(
        user_id="u1",
        content_id="c1",
        next_review_at=FIXED_NOW,
        review_count=0,
    )
    assert scheduler.is_due(assignment, FIXED_NOW)
    assert not scheduler.is_due(assignment, FIXED_NOW - timedelta(seconds=1))


def test_rating_parse_is_strict():
    assert Rating.parse(" Good ") is Rating.GOOD
    with pytest.raises(Exception) as exc:
        Rating.parse("great")
    assert getattr(exc.value, "code", None) == "invalid_rating"
