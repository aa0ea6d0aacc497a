"""Clients of the generate-drills contract used by the session composer."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import requests
from pydantic import ValidationError

from drillcraft.core.config import settings
from drillcraft.core.errors import (
    ConfigurationError,
    DrillError,
    DrillValidationError,
    UpstreamFailure,
    UpstreamTimeout,
)
from drillcraft.schemas.generation_schema import GenerationRequest, GenerationResponse
from drillcraft.services.drill_generator import DrillGenerator

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    def generate(self, request: GenerationRequest) -> GenerationResponse: ...


_STATUS_ERRORS = {
    400: DrillValidationError,
    500: ConfigurationError,
    503: UpstreamFailure,
    504: UpstreamTimeout,
}


class HttpGenerationClient:
    """Calls a remote ``POST /generate-drills`` endpoint."""

    def __init__(self, url: str, *, timeout: Optional[float] = None, http: Any = requests):
        self.url = url
        self.timeout = settings.GENERATION_TIMEOUT_SECONDS if timeout is None else timeout
        self.http = http

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        try:
            response = self.http.post(
                self.url,
                json=request.model_dump(mode="json"),
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise UpstreamTimeout("Request timed out. Please try again.") from exc
        except requests.RequestException as exc:
            raise UpstreamFailure(f"Generation service unreachable: {exc}") from exc

        if response.status_code != 200:
            raise self._error_for(response)

        try:
            return GenerationResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamFailure(
                "Invalid response format from API", code="unexpected_response"
            ) from exc

    @staticmethod
    def _error_for(response: Any) -> DrillError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        detail = body.get("detail") or body.get("error") if isinstance(body, dict) else None
        error_cls = _STATUS_ERRORS.get(response.status_code, UpstreamFailure)
        return error_cls(detail or f"API Error: {response.status_code}")


def build_generation_client() -> GenerationClient:
    """Remote client when ``GENERATION_SERVICE_URL`` is set, in-process generator otherwise."""

    if settings.GENERATION_SERVICE_URL:
        return HttpGenerationClient(settings.GENERATION_SERVICE_URL)
    return DrillGenerator()


__all__ = ["GenerationClient", "HttpGenerationClient", "build_generation_client"]
