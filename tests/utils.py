from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from drillcraft.core.tags import ProficiencyLevel
from drillcraft.models.content_item_model import ContentOrigin
from drillcraft.schemas.drill_schema import ContentRecord, Profile
from drillcraft.schemas.generation_schema import (
    GeneratedDrill,
    GenerationRequest,
    GenerationResponse,
)

FIXED_NOW = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeGenerator:
    """Stands in for the generation contract.

    ``available`` caps how many drills come back per call, ``error`` is raised
    instead of answering and ``delay`` makes the call slow.
    """

    def __init__(
        self,
        *,
        available: Optional[int] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.available = available
        self.error = error
        self.delay = delay
        self.requests: List[GenerationRequest] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        with self._lock:
            self.requests.append(request)
            call = len(self.requests)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error

        count = request.count if self.available is None else min(self.available, request.count)
        drills = [
            GeneratedDrill(
                id=f"gen_test_{call}_{index}",
                source_text=f"例文 {index}",
                target_text=f"Sample sentence {index}.",
                context="Business Meeting",
                grammar="Present Perfect",
                level=request.level,
                job_roles=[request.profile.job],
                interests=[request.profile.interests],
                grammar_patterns=["Present Perfect"],
                contexts=["Business Meeting"],
                created_at=FIXED_NOW,
            )
            for index in range(count)
        ]
        return GenerationResponse(drills=drills)


def make_content(
    content_id: str,
    *,
    level: ProficiencyLevel = ProficiencyLevel.INTERMEDIATE,
    created_at: datetime = FIXED_NOW,
    **overrides,
) -> ContentRecord:
    values = dict(
        id=content_id,
        source_text=f"これは{content_id}です。",
        target_text=f"This is {content_id}.",
        context="Email Writing",
        grammar="Passive Voice",
        level=level,
        job_roles=["software_engineer"],
        interests=["technology"],
        grammar_patterns=["passive_voice"],
        contexts=["email_writing"],
        created_at=created_at,
        usage_count=0,
        downvotes=0,
        generated_by=ContentOrigin.GEMINI,
    )
    values.update(overrides)
    return ContentRecord(**values)


def make_profile(**overrides) -> Profile:
    values = dict(job="Software Engineer", interests="technology and travel")
    values.update(overrides)
    return Profile(**values)


def seed_due(store, user_id: str, count: int, now: datetime, *, prefix: str = "due") -> List[str]:
    """Assign ``count`` items to ``user_id``, the first one being the most overdue."""

    ids = [f"{prefix}-{index:02d}" for index in range(count)]
    store.save_content([make_content(content_id) for content_id in ids])
    for index, content_id in enumerate(ids):
        store.assign_content(user_id, [content_id], now - timedelta(days=count - index))
    return ids
