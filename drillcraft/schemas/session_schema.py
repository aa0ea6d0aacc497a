from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from drillcraft.schemas.drill_schema import Profile, SessionQueueEntry


class SessionRequest(BaseModel):
    profile: Profile
    # Defaults to profile.question_count; range checked by the composer (400 invalid_count).
    target_count: Optional[int] = None


class SessionOut(BaseModel):
    entries: List[SessionQueueEntry]
    review_count: int
    new_count: int


class RatingIn(BaseModel):
    rating: str = Field(..., min_length=1, max_length=20)


class DownvoteOut(BaseModel):
    content_id: str
    downvotes: int
    hidden: bool


class SpeechOut(BaseModel):
    content_id: str
    text: str


__all__ = ["DownvoteOut", "RatingIn", "SessionOut", "SessionRequest", "SpeechOut"]
