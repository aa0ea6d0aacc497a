"""Builds a bounded drill queue: due reviews first, then new content."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime
from typing import Iterable, List, Optional, Set

from drillcraft.core.errors import AuthenticationRequired, DrillValidationError, UpstreamTimeout
from drillcraft.core.sanitization import MAX_INPUT_LENGTH, require_prompt_text
from drillcraft.schemas.drill_schema import (
    ContentRecord,
    NewEntry,
    Profile,
    ReviewEntry,
    SessionQueueEntry,
)
from drillcraft.schemas.generation_schema import (
    GenerationProfile,
    GenerationRequest,
    GenerationResponse,
)
from drillcraft.services import scheduler
from drillcraft.services.context import ServiceContext
from drillcraft.services.drill_generator import VALID_COUNTS
from drillcraft.services.fallback_content import build_fallback_drills
from drillcraft.services.moderation_service import ModerationGate

logger = logging.getLogger(__name__)

MAX_SESSION_SIZE = VALID_COUNTS[-1]


class SessionComposer:
    """Merges a learner's due reviews with freshly generated drills.

    Provider failures are recovered locally with fallback content; store
    failures and invalid input propagate.
    """

    def __init__(
        self,
        context: ServiceContext,
        user_id: Optional[str],
        *,
        moderation: Optional[ModerationGate] = None,
    ):
        self.context = context
        self.user_id = user_id
        self.moderation = moderation or ModerationGate(context.store)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build(self, profile: Profile, target_count: Optional[int] = None) -> List[SessionQueueEntry]:
        target = self._resolve_target(profile, target_count)
        if target == 0:
            return []

        now = self.context.clock()
        due = self.context.store.get_due_assignments(self.user_id, now)
        due.sort(key=lambda item: (item[0].next_review_at, item[1].id))

        reviews = [
            ReviewEntry(content=content, assignment=assignment)
            for assignment, content in due[:target]
        ]
        remaining = target - len(reviews)

        new_entries: List[NewEntry] = []
        if remaining > 0:
            taken = {entry.content.id for entry in reviews}
            new_entries = [
                NewEntry(content=content)
                for content in self._provide_new_content(profile, remaining, now, taken)
            ]

        logger.info(
            "Session composée pour %s: cible=%s, dues=%s, révisions=%s, nouvelles=%s",
            self.user_id,
            target,
            len(due),
            len(reviews),
            len(new_entries),
        )
        return [*reviews, *new_entries]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _resolve_target(profile: Profile, target_count: Optional[int]) -> int:
        target = profile.question_count if target_count is None else target_count
        if (
            isinstance(target, bool)
            or not isinstance(target, int)
            or not 0 <= target <= MAX_SESSION_SIZE
        ):
            raise DrillValidationError(
                f"Invalid target count {target_count!r}", code="invalid_count"
            )
        return target

    def _provide_new_content(
        self, profile: Profile, remaining: int, now: datetime, taken: Set[str]
    ) -> List[ContentRecord]:
        # Fail fast: nothing leaves the process with unusable profile text.
        job = require_prompt_text(profile.job, "job", MAX_INPUT_LENGTH)
        interests = require_prompt_text(profile.interests, "interests", MAX_INPUT_LENGTH)
        if not self.user_id:
            raise AuthenticationRequired("Sign in to start a session")

        contents: List[ContentRecord] = []
        if self.context.reuse_pool:
            candidates = self.moderation.reusable_candidates(self.user_id, profile.level, remaining)
            contents = self._unique(candidates, taken)

        missing = remaining - len(contents)
        if missing > 0:
            generated = self._unique(self._generate(profile, job, interests, missing), taken)
            if len(generated) < missing:
                generated.extend(
                    build_fallback_drills(
                        profile,
                        missing - len(generated),
                        now=now,
                        start_index=len(generated),
                    )
                )
            contents.extend(generated)

        stored = self.context.store.save_content(contents)
        self.context.store.assign_content(
            self.user_id,
            [content.id for content in stored],
            scheduler.initial_review_at(now),
        )
        return stored

    def _generate(
        self, profile: Profile, job: str, interests: str, count: int
    ) -> List[ContentRecord]:
        # The contract only accepts 5/10/20; extra drills are dropped.
        request_count = next((size for size in VALID_COUNTS if size >= count), VALID_COUNTS[-1])
        request = GenerationRequest(
            count=request_count,
            level=profile.level,
            profile=GenerationProfile(job=job, interests=interests),
        )

        try:
            response = self._call_with_timeout(request)
            return [
                ContentRecord.model_validate(drill.model_dump())
                for drill in response.drills[:count]
            ]
        except Exception as exc:  # provider failures never leak past the composer
            logger.warning(
                "Génération indisponible (%s: %s), bascule sur le contenu de secours.",
                getattr(exc, "code", type(exc).__name__),
                exc,
            )
            return []

    def _call_with_timeout(self, request: GenerationRequest) -> GenerationResponse:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="drill-generation")
        future = executor.submit(self.context.generator.generate, request)
        try:
            return future.result(timeout=self.context.generation_timeout)
        except FuturesTimeoutError as exc:
            future.cancel()
            raise UpstreamTimeout("Generation timed out") from exc
        finally:
            # Abandon the in-flight call instead of waiting for it.
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _unique(items: Iterable[ContentRecord], taken: Set[str]) -> List[ContentRecord]:
        unique = []
        for item in items:
            if item.id in taken:
                continue
            taken.add(item.id)
            unique.append(item)
        return unique


__all__ = ["MAX_SESSION_SIZE", "SessionComposer"]
