# Fichier : drillcraft/core/tags.py
"""Tag vocabularies of the shared content pool."""

from __future__ import annotations

import enum
from typing import Dict, List


class ProficiencyLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


PROFICIENCY_LEVELS: Dict[str, Dict[str, str]] = {
    ProficiencyLevel.BEGINNER.value: {
        "label": "Beginner",
        "prompt_instruction": (
            "Use simple, basic vocabulary suitable for beginners. Focus on essential phrases. "
            "Use simple sentence structures (SVO/SVOO). Target CEFR A2."
        ),
    },
    ProficiencyLevel.INTERMEDIATE.value: {
        "label": "Intermediate",
        "prompt_instruction": (
            "Use intermediate-level vocabulary suitable for business and daily contexts. "
            "Present Perfect, Passive, Modals. Target CEFR B1/B2."
        ),
    },
    ProficiencyLevel.ADVANCED.value: {
        "label": "Advanced",
        "prompt_instruction": (
            "Use advanced vocabulary and complex sentence structures. Include idiomatic "
            "expressions and the subjunctive mood. Target CEFR C1."
        ),
    },
}

JOB_ROLES: Dict[str, str] = {
    "software_engineer": "Software Engineer",
    "product_manager": "Product Manager",
    "designer": "Designer",
    "marketing": "Marketing",
    "sales": "Sales",
    "finance": "Finance",
    "healthcare": "Healthcare",
    "education": "Education",
    "business_development": "Business Development",
    "general_business": "General Business",
}

INTERESTS: Dict[str, str] = {
    "technology": "Technology",
    "business": "Business",
    "travel": "Travel",
    "food": "Food",
    "sports": "Sports",
    "culture": "Culture",
    "daily_life": "Daily Life",
    "entertainment": "Entertainment",
    "health": "Health",
    "finance": "Finance",
}

GRAMMAR_PATTERNS: Dict[str, str] = {
    "present_simple": "Present Simple",
    "present_continuous": "Present Continuous",
    "present_perfect": "Present Perfect",
    "past_simple": "Past Simple",
    "past_perfect": "Past Perfect",
    "passive_voice": "Passive Voice",
    "conditionals": "Conditionals",
    "modals": "Modals",
    "phrasal_verbs": "Phrasal Verbs",
    "idioms": "Idioms",
}

CONTEXTS: Dict[str, str] = {
    "business_meeting": "Business Meeting",
    "email_writing": "Email Writing",
    "casual_conversation": "Casual Conversation",
    "presentation": "Presentation",
    "negotiation": "Negotiation",
    "customer_service": "Customer Service",
    "travel": "Travel",
    "restaurant": "Restaurant",
    "interview": "Interview",
    "small_talk": "Small Talk",
}

DEFAULT_TAG = "general_business"

# Checked in order, first substring hit wins.
_JOB_ROLE_ALIASES = (
    ("swe", "software_engineer"),
    ("engineer", "software_engineer"),
    ("dev", "software_engineer"),
    ("developer", "software_engineer"),
    ("pm", "product_manager"),
    ("ui", "designer"),
    ("ux", "designer"),
    ("mark", "marketing"),
    ("sales", "sales"),
    ("biz", "business_development"),
    ("finance", "finance"),
    ("health", "healthcare"),
    ("med", "healthcare"),
    ("teach", "education"),
)

_INTEREST_ALIASES = (
    ("tech", "technology"),
    ("ai", "technology"),
    ("startup", "technology"),
    ("biz", "business"),
    ("work", "business"),
    ("trip", "travel"),
    ("eat", "food"),
    ("cook", "food"),
    ("sport", "sports"),
    ("gym", "sports"),
    ("cult", "culture"),
    ("art", "culture"),
    ("life", "daily_life"),
    ("entertain", "entertainment"),
    ("movie", "entertainment"),
    ("music", "entertainment"),
    ("health", "health"),
    ("fit", "health"),
    ("money", "finance"),
)


def _normalize(value: str | None, vocabulary: Dict[str, str], aliases) -> str | None:
    lowered = value.lower().strip()
    if lowered in vocabulary:
        return lowered
    for alias, key in aliases:
        if alias in lowered:
            return key
    return DEFAULT_TAG


def normalize_job_role(value: str | None) -> str | None:
    """Map a free-text job title onto the job-role vocabulary."""

    if not value:
        return None
    return _normalize(value, JOB_ROLES, _JOB_ROLE_ALIASES)


def normalize_interest(value: str | None) -> str:
    if not value:
        return DEFAULT_TAG
    return _normalize(value, INTERESTS, _INTEREST_ALIASES)


def get_tags_for_prompt() -> Dict[str, List[str]]:
    return {
        "job_roles": list(JOB_ROLES),
        "interests": list(INTERESTS),
        "grammar_patterns": list(GRAMMAR_PATTERNS),
        "contexts": list(CONTEXTS),
    }


__all__ = [
    "CONTEXTS",
    "DEFAULT_TAG",
    "GRAMMAR_PATTERNS",
    "INTERESTS",
    "JOB_ROLES",
    "PROFICIENCY_LEVELS",
    "ProficiencyLevel",
    "get_tags_for_prompt",
    "normalize_interest",
    "normalize_job_role",
]
