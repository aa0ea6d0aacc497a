# Fichier : drillcraft/utils/json_utils.py
"""Lenient JSON parsing for model output (code fences, chatter around the payload)."""

from __future__ import annotations

import json
from typing import Any, List, Optional


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""

    text = raw.strip()
    if not text.startswith("```"):
        return text
    newline = text.find("\n")
    inner = text[newline + 1 :] if newline != -1 else text[3:]
    end = inner.rfind("```")
    if end != -1:
        inner = inner[:end]
    return inner.strip()


def extract_balanced_json(raw: str, opener: str | None = None) -> Optional[str]:
    """Return the first balanced JSON object/array in ``raw``.

    Brackets inside string literals are ignored. ``opener`` restricts the
    search to ``"["`` or ``"{"``.
    """

    openers = opener or "{["
    start = next((i for i, ch in enumerate(raw) if ch in openers), None)
    if start is None:
        return None

    first = raw[start]
    closer = "}" if first == "{" else "]"
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(raw)):
        c = raw[i]
        if escape:
            escape = False
            continue
        if c == "\\" and in_string:
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if c == first:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return raw[start : i + 1]
    return None


def safe_json_loads(raw: str) -> Any:
    """``json.loads`` that retries on the fence-stripped text and then on the
    first balanced block. Re-raises the initial error when everything fails.
    """

    if raw is None:
        raise ValueError("safe_json_loads: input is None")

    text = strip_code_fences(str(raw))
    try:
        return json.loads(text)
    except json.JSONDecodeError as first_exc:
        candidate = extract_balanced_json(text)
        if candidate:
            return json.loads(candidate)
        raise first_exc


def load_json_array(raw: str) -> List[Any]:
    """Parse ``raw`` into a list, unwrapping ``{"drills": [...]}`` style objects."""

    try:
        data = safe_json_loads(raw)
    except json.JSONDecodeError:
        candidate = extract_balanced_json(strip_code_fences(str(raw)), opener="[")
        if candidate is None:
            raise
        data = json.loads(candidate)

    if isinstance(data, dict):
        lists = [value for value in data.values() if isinstance(value, list)]
        if len(lists) == 1:
            data = lists[0]

    if not isinstance(data, list):
        raise ValueError("Expected a JSON array")
    return data
