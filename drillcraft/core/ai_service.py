# Fichier: drillcraft/core/ai_service.py
"""REST transport to the Gemini ``generateContent`` endpoint."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from drillcraft.core.config import settings
from drillcraft.core.errors import ConfigurationError, UpstreamFailure, UpstreamTimeout

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


def gemini_endpoint(model: str) -> str:
    return f"{GEMINI_BASE_URL}/{model}:generateContent"


def _extract_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        parts = content.get("parts") or []
        texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
        combined = "".join(texts).strip()
        if combined:
            return combined

    logger.error("Réponse Gemini sans contenu exploitable: %s", data)
    raise UpstreamFailure("Unexpected response from API", code="unexpected_response")


def call_gemini(
    prompt: str,
    *,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
    temperature: Optional[float] = None,
    max_output_tokens: Optional[int] = None,
    http: Any = requests,
) -> str:
    """Send ``prompt`` to Gemini and return the concatenated text of the first
    non-empty candidate.

    Raises :class:`ConfigurationError` without an API key,
    :class:`UpstreamTimeout` when ``timeout`` expires and
    :class:`UpstreamFailure` for transport errors or unexpected payloads.
    """

    api_key = api_key if api_key is not None else settings.GOOGLE_API_KEY
    if not api_key:
        logger.error("GOOGLE_API_KEY absente: impossible d'appeler Gemini.")
        raise ConfigurationError("Server configuration error")

    model = model or settings.GEMINI_MODEL
    timeout = timeout if timeout is not None else settings.GENERATION_TIMEOUT_SECONDS

    payload: dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": settings.GENERATION_TEMPERATURE if temperature is None else temperature,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": max_output_tokens or settings.GENERATION_MAX_OUTPUT_TOKENS,
        },
    }

    try:
        response = http.post(
            gemini_endpoint(model),
            params={"key": api_key},
            json=payload,
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.Timeout as exc:
        logger.warning("Appel Gemini expiré après %.1f s", timeout)
        raise UpstreamTimeout("API request timed out. Please try again.") from exc
    except requests.RequestException as exc:
        logger.error("Erreur lors de l'appel à l'API Gemini : %s", exc)
        raise UpstreamFailure("Failed to generate content. Please try again.") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamFailure("Unexpected response from API", code="unexpected_response") from exc

    if not isinstance(data, dict):
        raise UpstreamFailure("Unexpected response from API", code="unexpected_response")
    return _extract_text(data)


__all__ = ["call_gemini", "gemini_endpoint"]
