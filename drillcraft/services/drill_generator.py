"""Server side of the generate-drills contract.

Status semantics: 400 invalid input (never retried), 500 missing provider
configuration, 503 provider or parse failure, 504 provider timeout. They are
carried by the raised :class:`DrillError` subclasses.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from drillcraft.core.ai_service import call_gemini
from drillcraft.core.config import settings
from drillcraft.core.errors import DrillValidationError, UpstreamFailure
from drillcraft.core.prompt_manager import build_drill_prompt
from drillcraft.core.sanitization import (
    MAX_INPUT_LENGTH,
    MAX_SPEECH_LENGTH,
    clean_generated_text,
    sanitize_for_prompt,
)
from drillcraft.core.tags import ProficiencyLevel
from drillcraft.models.content_item_model import ContentOrigin
from drillcraft.schemas.generation_schema import (
    GeneratedDrill,
    GenerationProfile,
    GenerationRequest,
    GenerationResponse,
)
from drillcraft.utils.json_utils import load_json_array
from drillcraft.utils.time_utils import to_millis, utcnow

logger = logging.getLogger(__name__)

VALID_COUNTS = (5, 10, 20)
VALID_LEVELS = tuple(level.value for level in ProficiencyLevel)


def parse_generation_request(payload: Any) -> GenerationRequest:
    """Validate a raw request body, reporting the first problem as a 400."""

    profile = payload.get("profile") if isinstance(payload, Mapping) else None
    if (
        not isinstance(payload, Mapping)
        or not payload.get("count")
        or not isinstance(profile, Mapping)
        or not profile.get("job")
        or not profile.get("interests")
    ):
        raise DrillValidationError(
            "Missing required fields: count, profile.job, profile.interests",
            code="missing_fields",
        )

    try:
        count = int(payload["count"])
    except (TypeError, ValueError):
        count = None
    if count not in VALID_COUNTS:
        raise DrillValidationError("Invalid count. Must be 5, 10, or 20", code="invalid_count")

    level = payload.get("level")
    if level not in VALID_LEVELS:
        raise DrillValidationError(
            "Invalid level. Must be beginner, intermediate, or advanced",
            code="invalid_level",
        )

    job = sanitize_for_prompt(profile["job"], MAX_INPUT_LENGTH)
    interests = sanitize_for_prompt(profile["interests"], MAX_INPUT_LENGTH)
    if not job or not interests:
        raise DrillValidationError(
            "Invalid job or interests - please provide valid input",
            code="invalid_profile",
        )

    return GenerationRequest(
        count=count,
        level=ProficiencyLevel(level),
        profile=GenerationProfile(job=job, interests=interests),
    )


class DrillGenerator:
    """Generates drills through Gemini and shapes them for the content pool."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
        transport: Callable[..., str] = call_gemini,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = settings.GENERATION_TIMEOUT_SECONDS if timeout is None else timeout
        self.clock = clock
        self.transport = transport

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        # Requests built in-process skip parse_generation_request.
        job = sanitize_for_prompt(request.profile.job, MAX_INPUT_LENGTH)
        interests = sanitize_for_prompt(request.profile.interests, MAX_INPUT_LENGTH)
        if not job or not interests:
            raise DrillValidationError(
                "Invalid job or interests - please provide valid input",
                code="invalid_profile",
            )

        prompt = build_drill_prompt(request.count, request.level, job, interests)
        raw = self.transport(
            prompt,
            api_key=self.api_key,
            model=self.model,
            timeout=self.timeout,
        )

        try:
            items = load_json_array(raw)
        except ValueError as exc:
            logger.error("Réponse Gemini non parsable: %.200s", raw)
            raise UpstreamFailure(
                "Failed to parse generated content", code="unparsable_response"
            ) from exc

        items = [item for item in items if isinstance(item, Mapping)]
        if not items:
            raise UpstreamFailure("No valid drills generated", code="empty_response")

        now = self.clock()
        batch = f"gen_{to_millis(now)}"
        nonce = secrets.token_hex(3)
        drills = [
            self._shape_drill(item, f"{batch}_{index}_{nonce}", request.level, job, interests, now)
            for index, item in enumerate(items[: request.count])
        ]
        logger.info("Gemini: %s drills générés (%s demandés)", len(drills), request.count)
        return GenerationResponse(drills=drills)

    @staticmethod
    def _shape_drill(
        item: Mapping[str, Any],
        drill_id: str,
        level: ProficiencyLevel,
        job: str,
        interests: str,
        now: datetime,
    ) -> GeneratedDrill:
        source = item.get("jp", item.get("source_text", ""))
        target = item.get("en", item.get("target_text", ""))
        context = clean_generated_text(item.get("context", ""), MAX_INPUT_LENGTH)
        grammar = clean_generated_text(item.get("grammar", ""), MAX_INPUT_LENGTH)

        return GeneratedDrill(
            id=drill_id,
            source_text=clean_generated_text(source, MAX_SPEECH_LENGTH) or "N/A",
            target_text=clean_generated_text(target, MAX_SPEECH_LENGTH) or "N/A",
            context=context or "General",
            grammar=grammar or "Grammar",
            level=level,
            job_roles=[job],
            interests=[interests],
            grammar_patterns=[grammar] if grammar else [],
            contexts=[context] if context else [],
            generated_by=ContentOrigin.GEMINI,
            created_at=now,
            usage_count=0,
            downvotes=0,
        )


__all__ = ["DrillGenerator", "VALID_COUNTS", "parse_generation_request"]
