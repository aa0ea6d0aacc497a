"""Learner-facing session flow as a finite-state object.

DASHBOARD -> LOADING -> DRILL -> COMPLETE, with ``return_to_dashboard``
available from DRILL and COMPLETE. The object holds only transient state
(queue snapshot, cursor, reveal flag) and never renders anything.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, List, Optional, Sequence

from drillcraft.core.config import settings
from drillcraft.core.errors import InvalidTransition
from drillcraft.core.sanitization import sanitize_for_speech
from drillcraft.schemas.drill_schema import Profile, Rating, SessionQueueEntry
from drillcraft.services.review_service import ReviewService
from drillcraft.services.session_composer import SessionComposer

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    DASHBOARD = "dashboard"
    LOADING = "loading"
    DRILL = "drill"
    COMPLETE = "complete"


class SessionStateMachine:
    def __init__(
        self,
        *,
        composer: SessionComposer,
        reviews: ReviewService,
        speech_max_length: Optional[int] = None,
    ):
        self.composer = composer
        self.reviews = reviews
        self.speech_max_length = (
            settings.SPEECH_MAX_LENGTH if speech_max_length is None else speech_max_length
        )

        self.status = SessionStatus.DASHBOARD
        self.queue: List[SessionQueueEntry] = []
        self.cursor = 0
        self.revealed = False
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def user_id(self) -> Optional[str]:
        return self.composer.user_id

    @property
    def current_entry(self) -> Optional[SessionQueueEntry]:
        if self.status is not SessionStatus.DRILL or not self.queue:
            return None
        return self.queue[self.cursor]

    @property
    def progress(self) -> float:
        if not self.queue:
            return 0.0
        return (self.cursor + 1) / len(self.queue) * 100

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def begin_composition(self, profile: Profile, target_count: Optional[int] = None) -> SessionStatus:
        """Compose a queue and resolve LOADING to DRILL or back to DASHBOARD."""

        self._expect(SessionStatus.DASHBOARD, "begin_composition")
        self.status = SessionStatus.LOADING
        self.last_error = None

        try:
            queue = self.composer.build(profile, target_count)
        except Exception as exc:  # LOADING must never be left dangling
            logger.error("Échec de la composition de session pour %s: %s", self.user_id, exc)
            self.last_error = str(exc) or type(exc).__name__
            self._reset(SessionStatus.DASHBOARD)
            return self.status

        self._enter(queue)
        return self.status

    def start(self, queue: Sequence[SessionQueueEntry]) -> SessionStatus:
        """Start a session from an already composed queue."""

        self._expect(SessionStatus.DASHBOARD, "start")
        self._enter(queue)
        return self.status

    def reveal(self) -> str:
        """Flip the current card and return its speech-safe target text."""

        self._expect(SessionStatus.DRILL, "reveal")
        self.revealed = True
        return sanitize_for_speech(self.queue[self.cursor].content.target_text, self.speech_max_length)

    def rate(self, rating: Any) -> SessionStatus:
        """Persist ``rating`` for the current card, then advance.

        The cursor only moves once the store confirmed the write; any error
        leaves the session exactly as it was.
        """

        self._expect(SessionStatus.DRILL, "rate")
        parsed = Rating.parse(rating)
        entry = self.queue[self.cursor]
        self.reviews.record_rating(self.user_id, entry.content.id, parsed)

        if self.cursor < len(self.queue) - 1:
            self.cursor += 1
            self.revealed = False
        else:
            self.status = SessionStatus.COMPLETE
            logger.info("Session terminée pour %s (%s cartes)", self.user_id, len(self.queue))
        return self.status

    def return_to_dashboard(self) -> SessionStatus:
        self._expect((SessionStatus.DRILL, SessionStatus.COMPLETE), "return_to_dashboard")
        self._reset(SessionStatus.DASHBOARD)
        return self.status

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _enter(self, queue: Sequence[SessionQueueEntry]) -> None:
        if not queue:
            self._reset(SessionStatus.DASHBOARD)
            return
        self.queue = list(queue)
        self.cursor = 0
        self.revealed = False
        self.status = SessionStatus.DRILL

    def _reset(self, status: SessionStatus) -> None:
        self.queue = []
        self.cursor = 0
        self.revealed = False
        self.status = status

    def _expect(self, allowed, action: str) -> None:
        allowed = allowed if isinstance(allowed, tuple) else (allowed,)
        if self.status not in allowed:
            raise InvalidTransition(f"Cannot {action} while {self.status.value}")


__all__ = ["SessionStateMachine", "SessionStatus"]
