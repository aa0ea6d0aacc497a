"""Records exchanged across the content store boundary and session queues."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from drillcraft.core.errors import DrillValidationError
from drillcraft.core.sanitization import MAX_INPUT_LENGTH, FieldRules, validate_field
from drillcraft.core.tags import ProficiencyLevel
from drillcraft.models.content_item_model import ContentOrigin
from drillcraft.utils.time_utils import ensure_utc

PROFILE_TEXT_RULES = FieldRules(required=True, max_length=MAX_INPUT_LENGTH)


class Rating(str, enum.Enum):
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def parse(cls, value: object) -> "Rating":
        """Return the matching rating or raise; unknown values are never defaulted."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise DrillValidationError(
            f"Invalid rating {value!r}. Must be one of: hard, good, easy",
            code="invalid_rating",
        )


class ContentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1, max_length=80)
    source_text: str = Field(..., min_length=1)
    target_text: str = Field(..., min_length=1)
    context: Optional[str] = None
    grammar: Optional[str] = None
    level: ProficiencyLevel
    job_roles: List[str]
    interests: List[str]
    grammar_patterns: List[str]
    contexts: List[str]
    created_at: datetime
    usage_count: int = Field(..., ge=0)
    downvotes: int = Field(..., ge=0)
    generated_by: ContentOrigin

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class AssignmentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(..., min_length=1)
    content_id: str = Field(..., min_length=1)
    next_review_at: datetime
    last_review_at: Optional[datetime] = None
    last_rating: Optional[Rating] = None
    review_count: int = Field(..., ge=0)

    @field_validator("next_review_at", "last_review_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class ReviewEntry(BaseModel):
    kind: Literal["review"] = "review"
    content: ContentRecord
    assignment: AssignmentRecord


class NewEntry(BaseModel):
    kind: Literal["new"] = "new"
    content: ContentRecord


SessionQueueEntry = Annotated[Union[ReviewEntry, NewEntry], Field(discriminator="kind")]


class Profile(BaseModel):
    job: str
    interests: str
    level: ProficiencyLevel = ProficiencyLevel.INTERMEDIATE
    question_count: Literal[5, 10, 20] = 5

    @field_validator("job", "interests")
    @classmethod
    def _check_text(cls, value: str) -> str:
        result = validate_field(value, PROFILE_TEXT_RULES)
        if not result.is_valid:
            raise ValueError(result.error)
        return value


class ReviewStats(BaseModel):
    total_reviewed: int = 0
    due_today: int = 0


__all__ = [
    "AssignmentRecord",
    "ContentRecord",
    "NewEntry",
    "Profile",
    "Rating",
    "ReviewEntry",
    "ReviewStats",
    "SessionQueueEntry",
]
