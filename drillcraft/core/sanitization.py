"""Text firewall for every free-text field that reaches a provider prompt or a
speech synthesizer.

Three layers are exposed:

* :func:`sanitize_input` - generic cleaning for any user text (trim, truncate,
  whitelist, collapse whitespace).
* :func:`sanitize_for_prompt` - :func:`sanitize_input` followed by the
  prompt-injection rules. Results shorter than two characters are reported as
  empty, never as a degenerate success.
* :func:`sanitize_for_speech` - markup stripping and a length cap for the voice
  sink. Punctuation is preserved since injection rules do not apply there.

:func:`validate_field` is an independent rule checker used by the request
schemas.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Pattern, Union

from drillcraft.core.errors import DrillValidationError

MAX_INPUT_LENGTH = 100
MAX_PROMPT_LENGTH = 200
MAX_SPEECH_LENGTH = 500
MIN_PROMPT_TEXT_LENGTH = 2

_WHITESPACE_RE = re.compile(r"\s+")
# Word characters minus the underscore, spaces and - . , ' ( )
_UNSAFE_CHARS_RE = re.compile(r"[^\w \-.,'()]|_")

_INSTRUCTION_TOKENS_RE = re.compile(
    r"\b(?:ignore|disregard|forget|system|instructions?|prompts?|override|previous"
    r"|instead|act\s+as|you\s+are|pretend)\b",
    re.IGNORECASE,
)
_DELIMITER_RUNS_RE = re.compile(r":{2,}|={2,}|-{3,}")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
# "End the prior request. New instruction: ..."
_SENTENCE_BREAK_RE = re.compile(r"[.!?。]\s*[A-Z]")

_MARKUP_TAG_RE = re.compile(r"<[^>]*>")
_GENERATED_UNSAFE_RE = re.compile(r"[<>{}\[\]\\/`\x00-\x1f\x7f]")


def sanitize_input(value: Any, max_length: int = MAX_INPUT_LENGTH) -> str:
    """Trim, truncate, whitelist-filter and collapse whitespace.

    Non-string values yield an empty string.
    """

    if not isinstance(value, str) or not value:
        return ""

    sanitized = value.strip()[:max_length]
    sanitized = _WHITESPACE_RE.sub(" ", sanitized)
    sanitized = _UNSAFE_CHARS_RE.sub("", sanitized)
    return _WHITESPACE_RE.sub(" ", sanitized).strip()


def _strip_injection_patterns(text: str) -> str:
    sanitized = _INSTRUCTION_TOKENS_RE.sub(" ", text)
    sanitized = _DELIMITER_RUNS_RE.sub(" ", sanitized)
    sanitized = _CONTROL_CHARS_RE.sub(" ", sanitized)
    sanitized = _SENTENCE_BREAK_RE.sub(" ", sanitized)
    return _WHITESPACE_RE.sub(" ", sanitized).strip()


def sanitize_for_prompt(value: Any, max_length: int = MAX_PROMPT_LENGTH) -> str:
    """Return text safe to interpolate into a generation prompt, or ``""``.

    Removing one token can glue together another one ("act system as"), so
    the injection rules run until the text stops changing. That fixpoint also
    makes the function idempotent.
    """

    sanitized = sanitize_input(value, max_length)

    previous = None
    while sanitized != previous:
        previous = sanitized
        sanitized = _strip_injection_patterns(sanitized)

    if len(sanitized) < MIN_PROMPT_TEXT_LENGTH:
        return ""
    return sanitized


def require_prompt_text(value: Any, field_name: str, max_length: int = MAX_INPUT_LENGTH) -> str:
    """Like :func:`sanitize_for_prompt` but raise when nothing usable remains."""

    sanitized = sanitize_for_prompt(value, max_length)
    if not sanitized:
        raise DrillValidationError(
            f"Please provide a valid {field_name} (minimum {MIN_PROMPT_TEXT_LENGTH} characters)",
            code=f"invalid_{field_name}",
        )
    return sanitized


def sanitize_for_speech(value: Any, max_length: int = MAX_SPEECH_LENGTH) -> str:
    if not isinstance(value, str) or not value:
        return ""

    sanitized = _MARKUP_TAG_RE.sub("", value)
    return sanitized[:max_length].strip()


def clean_generated_text(value: Any, max_length: int = MAX_SPEECH_LENGTH) -> str:
    """Clean provider output before it enters the shared pool.

    Generated sentences keep their punctuation and non-Latin scripts; only
    markup, brackets, slashes and control characters are removed.
    """

    if not isinstance(value, str) or not value:
        return ""

    sanitized = _MARKUP_TAG_RE.sub("", value)
    sanitized = _GENERATED_UNSAFE_RE.sub(" ", sanitized)
    sanitized = _WHITESPACE_RE.sub(" ", sanitized).strip()
    return sanitized[:max_length].strip()


@dataclass(frozen=True)
class FieldRules:
    required: bool = False
    min_length: int = 0
    max_length: int = MAX_INPUT_LENGTH
    pattern: Union[str, Pattern[str], None] = None


@dataclass(frozen=True)
class FieldValidation:
    is_valid: bool
    error: str | None = None


_VALID = FieldValidation(is_valid=True)


def validate_field(value: Any, rules: FieldRules = FieldRules()) -> FieldValidation:
    """Check ``value`` against ``rules`` and report the first failing rule.

    Rules are evaluated in a fixed order: required, min length, max length,
    pattern. An absent value passes when the field is not required.
    """

    if rules.required and (not isinstance(value, str) or not value.strip()):
        return FieldValidation(is_valid=False, error="This field is required")

    if value is None or value == "":
        return _VALID

    if not isinstance(value, str):
        return FieldValidation(is_valid=False, error="Invalid format")

    if len(value) < rules.min_length:
        return FieldValidation(
            is_valid=False, error=f"Minimum length is {rules.min_length} characters"
        )

    if len(value) > rules.max_length:
        return FieldValidation(
            is_valid=False, error=f"Maximum length is {rules.max_length} characters"
        )

    if rules.pattern is not None and not re.search(rules.pattern, value):
        return FieldValidation(is_valid=False, error="Invalid format")

    return _VALID


__all__ = [
    "FieldRules",
    "FieldValidation",
    "MAX_INPUT_LENGTH",
    "MAX_PROMPT_LENGTH",
    "MAX_SPEECH_LENGTH",
    "MIN_PROMPT_TEXT_LENGTH",
    "clean_generated_text",
    "require_prompt_text",
    "sanitize_for_prompt",
    "sanitize_for_speech",
    "sanitize_input",
    "validate_field",
]
