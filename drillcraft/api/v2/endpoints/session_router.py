from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from drillcraft.api.v2.dependencies import get_current_user_id, get_service_context
from drillcraft.core.config import settings
from drillcraft.core.errors import ContentNotFound, DrillError
from drillcraft.core.sanitization import sanitize_for_speech
from drillcraft.schemas.drill_schema import AssignmentRecord, ReviewStats
from drillcraft.schemas.session_schema import (
    DownvoteOut,
    RatingIn,
    SessionOut,
    SessionRequest,
    SpeechOut,
)
from drillcraft.services.context import ServiceContext
from drillcraft.services.moderation_service import ModerationGate
from drillcraft.services.review_service import ReviewService
from drillcraft.services.session_composer import SessionComposer

router = APIRouter()


def _http_error(exc: DrillError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"code": exc.code, "message": exc.message},
    )


@router.post("/sessions", response_model=SessionOut)
def create_session(
    payload: SessionRequest,
    context: ServiceContext = Depends(get_service_context),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    composer = SessionComposer(context, user_id)
    try:
        entries = composer.build(payload.profile, payload.target_count)
    except DrillError as exc:
        raise _http_error(exc) from exc

    review_count = sum(1 for entry in entries if entry.kind == "review")
    return SessionOut(
        entries=entries,
        review_count=review_count,
        new_count=len(entries) - review_count,
    )


@router.post("/drills/{content_id}/rating", response_model=AssignmentRecord)
def rate_drill(
    content_id: str,
    payload: RatingIn,
    context: ServiceContext = Depends(get_service_context),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    service = ReviewService(context.store, clock=context.clock)
    try:
        return service.record_rating(user_id, content_id, payload.rating)
    except DrillError as exc:
        raise _http_error(exc) from exc


@router.post("/drills/{content_id}/downvote", response_model=DownvoteOut)
def downvote_drill(
    content_id: str,
    context: ServiceContext = Depends(get_service_context),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    gate = ModerationGate(context.store)
    try:
        result = gate.record_downvote(user_id, content_id)
    except DrillError as exc:
        raise _http_error(exc) from exc
    return DownvoteOut(content_id=result.content_id, downvotes=result.downvotes, hidden=result.hidden)


@router.get("/drills/{content_id}/speech", response_model=SpeechOut)
def get_drill_speech(
    content_id: str,
    context: ServiceContext = Depends(get_service_context),
):
    try:
        content = context.store.get_content_by_ids([content_id]).get(content_id)
    except DrillError as exc:
        raise _http_error(exc) from exc
    if content is None:
        raise _http_error(ContentNotFound(f"Unknown content {content_id!r}"))

    return SpeechOut(
        content_id=content_id,
        text=sanitize_for_speech(content.target_text, settings.SPEECH_MAX_LENGTH),
    )


@router.get("/stats", response_model=ReviewStats)
def get_review_stats(
    context: ServiceContext = Depends(get_service_context),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    service = ReviewService(context.store, clock=context.clock)
    try:
        return service.stats(user_id)
    except DrillError as exc:
        raise _http_error(exc) from exc
