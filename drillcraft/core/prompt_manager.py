# Fichier : drillcraft/core/prompt_manager.py
"""Prompt templates for drill generation.

Profile values must already have gone through ``sanitize_for_prompt``; this
module only interpolates.
"""

from __future__ import annotations

from drillcraft.core.tags import PROFICIENCY_LEVELS, ProficiencyLevel, get_tags_for_prompt

DRILL_PROMPT_TEMPLATE = """You are an English language teacher specializing in Japanese-to-English translation drills.

Generate exactly {count} unique English drill exercises for a {level} level student.

Student Profile:
- Job/Role: {job}
- Interests: {interests}

Level Guidance: {level_instruction}

Prefer these grammar patterns: {grammar_patterns}
Prefer these contexts: {contexts}

For each drill, provide ONLY valid JSON (no markdown, no code blocks, pure JSON array):
[
  {{
    "jp": "Japanese sentence here",
    "en": "English translation",
    "context": "Context of use",
    "grammar": "Grammar pattern or structure"
  }}
]

Requirements:
1. Make drills relevant to the student's job and interests
2. Include variety in contexts and grammar patterns
3. Keep English translations natural and idiomatic
4. Each drill should be a standalone exercise"""


def build_drill_prompt(count: int, level: ProficiencyLevel, job: str, interests: str) -> str:
    tags = get_tags_for_prompt()
    return DRILL_PROMPT_TEMPLATE.format(
        count=count,
        level=level.value,
        job=job,
        interests=interests,
        level_instruction=PROFICIENCY_LEVELS[level.value]["prompt_instruction"],
        grammar_patterns=", ".join(tags["grammar_patterns"]),
        contexts=", ".join(tags["contexts"]),
    )


__all__ = ["DRILL_PROMPT_TEMPLATE", "build_drill_prompt"]
