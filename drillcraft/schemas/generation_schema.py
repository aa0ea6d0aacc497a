"""Wire shapes of the generate-drills contract."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field

from drillcraft.core.tags import ProficiencyLevel
from drillcraft.models.content_item_model import ContentOrigin


class GenerationProfile(BaseModel):
    job: str = Field(..., max_length=100)
    interests: str = Field(..., max_length=100)


class GenerationRequest(BaseModel):
    count: Literal[5, 10, 20]
    level: ProficiencyLevel
    profile: GenerationProfile


class GeneratedDrill(BaseModel):
    id: str = Field(..., min_length=1, max_length=80)
    source_text: str = Field(..., min_length=1)
    target_text: str = Field(..., min_length=1)
    context: str
    grammar: str
    level: ProficiencyLevel
    job_roles: List[str]
    interests: List[str]
    grammar_patterns: List[str]
    contexts: List[str]
    generated_by: ContentOrigin = ContentOrigin.GEMINI
    created_at: datetime
    usage_count: int = Field(0, ge=0)
    downvotes: int = Field(0, ge=0)


class GenerationResponse(BaseModel):
    success: Literal[True] = True
    drills: List[GeneratedDrill]


__all__ = [
    "GeneratedDrill",
    "GenerationProfile",
    "GenerationRequest",
    "GenerationResponse",
]
