"""Error taxonomy shared by the store, the composer and the HTTP layer."""

from __future__ import annotations


class DrillError(Exception):
    """Domain-specific exception carrying a stable code and an HTTP status."""

    code = "drill_error"
    status_code = 400

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.message = message or self.code
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.message


class DrillValidationError(DrillError):
    """Bad profile, rating or count. Rejected immediately, never retried."""

    code = "invalid_input"
    status_code = 400


class ConfigurationError(DrillError):
    code = "server_misconfigured"
    status_code = 500


class UpstreamFailure(DrillError):
    """The generation provider failed or answered with something unusable."""

    code = "upstream_failure"
    status_code = 503


class UpstreamTimeout(UpstreamFailure):
    code = "upstream_timeout"
    status_code = 504


class StoreError(DrillError):
    code = "store_error"
    status_code = 500


class AuthenticationRequired(DrillError):
    code = "authentication_required"
    status_code = 401


class ContentNotFound(DrillError):
    code = "content_not_found"
    status_code = 404


class InvalidTransition(DrillError):
    code = "invalid_transition"
    status_code = 409


__all__ = [
    "AuthenticationRequired",
    "ConfigurationError",
    "ContentNotFound",
    "DrillError",
    "DrillValidationError",
    "InvalidTransition",
    "StoreError",
    "UpstreamFailure",
    "UpstreamTimeout",
]
