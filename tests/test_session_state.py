from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from drillcraft.core.errors import DrillValidationError, InvalidTransition, StoreError
from drillcraft.crud.memory_store import InMemoryContentStore
from drillcraft.schemas.drill_schema import NewEntry, Rating
from drillcraft.services.review_service import ReviewService
from drillcraft.services.session_composer import SessionComposer
from drillcraft.services.session_state import SessionStateMachine, SessionStatus
from tests.utils import FIXED_NOW, make_content, make_profile, seed_due

USER = "learner-1"


class RecordingComposer(SessionComposer):
    """Remembers the machine status observed while composing."""

    machine = None
    seen = None

    def build(self, profile, target_count=None):
        self.seen = self.machine.status
        return super().build(profile, target_count)


def _machine(context, user_id=USER):
    composer = RecordingComposer(context, user_id)
    machine = SessionStateMachine(
        composer=composer,
        reviews=ReviewService(context.store, clock=context.clock),
    )
    composer.machine = machine
    return machine


def _started(context, count=3):
    ids = [f"s-{index}" for index in range(count)]
    context.store.save_content([make_content(content_id) for content_id in ids])
    context.store.assign_content(USER, ids, FIXED_NOW)
    machine = _machine(context)
    queue = [NewEntry(content=item) for item in context.store.get_content_by_ids(ids).values()]
    machine.start(queue)
    return machine


def test_composition_moves_through_loading_to_drill(context):
    machine = _machine(context)
    assert machine.status is SessionStatus.DASHBOARD

    assert machine.begin_composition(make_profile(), 5) is SessionStatus.DRILL

    assert machine.composer.seen is SessionStatus.LOADING
    assert len(machine.queue) == 5
    assert machine.cursor == 0
    assert machine.revealed is False
    assert machine.progress == pytest.approx(20.0)


def test_single_easy_rating_completes_session(context):
    machine = _machine(context)
    machine.begin_composition(make_profile(), 1)
    content_id = machine.current_entry.content.id

    assert machine.rate("easy") is SessionStatus.COMPLETE

    assignment = context.store.get_assignment(USER, content_id)
    assert assignment.next_review_at == FIXED_NOW + timedelta(days=7)
    assert assignment.last_rating is Rating.EASY
    assert assignment.review_count == 1
    assert machine.current_entry is None


def test_empty_queue_stays_on_dashboard(context):
    machine = _machine(context)
    assert machine.begin_composition(make_profile(), 0) is SessionStatus.DASHBOARD
    assert machine.start([]) is SessionStatus.DASHBOARD
    assert machine.queue == []


def test_failed_composition_returns_to_dashboard_with_message(context):
    class BrokenStore(InMemoryContentStore):
        def _get_due_assignments(self, user_id, now):
            raise StoreError("Storage is unavailable, please retry", code="due_read_failed")

    machine = _machine(replace(context, store=BrokenStore()))

    assert machine.begin_composition(make_profile(), 5) is SessionStatus.DASHBOARD
    assert machine.last_error == "Storage is unavailable, please retry"
    assert machine.queue == []


def test_reveal_returns_speech_text(context):
    context.store.save_content([make_content("speak", target_text="<em>Ship it</em>, please!")])
    machine = _machine(context)
    machine.start([NewEntry(content=context.store.get_content_by_ids(["speak"])["speak"])])

    assert machine.reveal() == "Ship it, please!"
    assert machine.revealed is True


def test_rating_advances_and_resets_reveal(context):
    machine = _started(context, 3)
    machine.reveal()

    assert machine.rate("good") is SessionStatus.DRILL
    assert machine.cursor == 1
    assert machine.revealed is False
    assert machine.progress == pytest.approx(200 / 3)

    machine.rate(Rating.HARD)
    assert machine.rate("EASY") is SessionStatus.COMPLETE
    assert machine.cursor == 2

    first = machine.queue[0].content.id
    assert context.store.get_assignment(USER, first).next_review_at == FIXED_NOW + timedelta(days=3)


def test_invalid_rating_leaves_state_untouched(context):
    machine = _started(context, 2)
    machine.reveal()

    with pytest.raises(DrillValidationError):
        machine.rate("meh")

    assert (machine.status, machine.cursor, machine.revealed) == (SessionStatus.DRILL, 0, True)
    assert context.store.get_assignment(USER, machine.queue[0].content.id).review_count == 0


def test_failed_save_leaves_state_untouched(context):
    class ReadOnlyStore(InMemoryContentStore):
        def _record_review(self, *args, **kwargs):
            raise StoreError("Storage is unavailable, please retry", code="review_write_failed")

    context = replace(context, store=ReadOnlyStore())
    machine = _started(context, 2)
    machine.reveal()

    with pytest.raises(StoreError):
        machine.rate("good")

    assert (machine.status, machine.cursor, machine.revealed) == (SessionStatus.DRILL, 0, True)


def test_invalid_transitions(context):
    machine = _machine(context)
    with pytest.raises(InvalidTransition):
        machine.reveal()
    with pytest.raises(InvalidTransition):
        machine.rate("easy")
    with pytest.raises(InvalidTransition):
        machine.return_to_dashboard()

    machine = _started(context, 1)
    with pytest.raises(InvalidTransition):
        machine.begin_composition(make_profile(), 5)
    with pytest.raises(InvalidTransition) as exc:
        machine.start([])
    assert exc.value.status_code == 409


def test_return_to_dashboard_clears_session(context):
    machine = _started(context, 1)
    machine.rate("easy")

    assert machine.return_to_dashboard() is SessionStatus.DASHBOARD
    assert (machine.queue, machine.cursor, machine.revealed) == ([], 0, False)
    assert machine.progress == 0.0


def test_due_reviews_feed_the_session(context):
    seed_due(context.store, USER, 2, FIXED_NOW)
    machine = _machine(context)

    machine.begin_composition(make_profile(), 5)

    assert [entry.kind for entry in machine.queue[:2]] == ["review", "review"]
