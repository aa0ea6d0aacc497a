"""Placeholder drills used when the generation provider is unavailable."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import List

from drillcraft.core.sanitization import sanitize_input
from drillcraft.core.tags import normalize_interest, normalize_job_role
from drillcraft.models.content_item_model import ContentOrigin
from drillcraft.schemas.drill_schema import ContentRecord, Profile
from drillcraft.utils.time_utils import to_millis

FALLBACK_CONTEXT = "Demo"
FALLBACK_GRAMMAR = "SVO Pattern"


def _profile_digest(profile: Profile) -> str:
    key = "|".join((profile.job, profile.interests, profile.level.value))
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:10]


def build_fallback_drills(
    profile: Profile,
    count: int,
    *,
    now: datetime,
    start_index: int = 0,
) -> List[ContentRecord]:
    """Return ``count`` deterministic drills for ``profile`` at instant ``now``."""

    job = sanitize_input(profile.job) or "professional"
    prefix = f"fallback_{_profile_digest(profile)}_{to_millis(now)}"
    job_role = normalize_job_role(profile.job) or "general_business"
    interest = normalize_interest(profile.interests)

    drills = []
    for index in range(start_index, start_index + count):
        drills.append(
            ContentRecord(
                id=f"{prefix}_{index}",
                source_text=f"これは{job}向けのデモです({index})。",
                target_text=f"This is a demo sentence for a {job} ({index}).",
                context=FALLBACK_CONTEXT,
                grammar=FALLBACK_GRAMMAR,
                level=profile.level,
                job_roles=[job_role],
                interests=[interest],
                grammar_patterns=[FALLBACK_GRAMMAR],
                contexts=[FALLBACK_CONTEXT],
                created_at=now,
                usage_count=0,
                downvotes=0,
                generated_by=ContentOrigin.FALLBACK,
            )
        )
    return drills


__all__ = ["build_fallback_drills"]
