from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from drillcraft.api.v2.dependencies import get_drill_generator
from drillcraft.core.errors import DrillError, DrillValidationError
from drillcraft.schemas.generation_schema import GenerationResponse
from drillcraft.services.drill_generator import DrillGenerator, parse_generation_request

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: DrillError) -> HTTPException:
    logger.warning("generate-drills refusé (%s): %s", exc.code, exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.message)


async def read_json_body(request: Request) -> Any:
    """Raw JSON body; malformed JSON is a 400 like any other invalid input."""

    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as exc:
        raise _http_error(
            DrillValidationError("Request body must be valid JSON", code="invalid_json")
        ) from exc


@router.post("/generate-drills", response_model=GenerationResponse)
def generate_drills(
    payload: Any = Depends(read_json_body),
    generator: DrillGenerator = Depends(get_drill_generator),
):
    """Generate ``count`` drills for a learner profile.

    400 invalid input, 500 provider not configured, 503 provider or parse
    failure, 504 provider timeout.
    """

    try:
        request = parse_generation_request(payload)
        return generator.generate(request)
    except DrillError as exc:
        raise _http_error(exc) from exc
