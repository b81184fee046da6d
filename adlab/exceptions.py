# ─────────────────────────────────────────────────────────────────────────────
# Error taxonomy + the single error-kind → HTTP response boundary
# ─────────────────────────────────────────────────────────────────────────────
# The pipeline returns errors as values (PipelineOutcome.error); routes hand
# them to render_outcome(). Anything escaping as an exception is caught by the
# handlers registered below. Status codes are decided only in this module.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from adlab.services.pipeline import PipelineOutcome

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class AdLabError(Exception):
    """Base exception for all adlab errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_body(self, public_message: str | None = None) -> dict[str, Any]:
        """JSON body for this error. 5xx bodies never carry internal detail."""
        return {"error": public_message or self.message, "code": self.code}


class PayloadValidationError(AdLabError):
    """Request body parsed but violated the schema."""

    status_code = 400
    code = "VALIDATION_FAILED"

    def __init__(self, issues: list[dict[str, str]]) -> None:
        self.issues = issues
        super().__init__("Validation failed")

    def to_body(self, public_message: str | None = None) -> dict[str, Any]:
        return {"error": self.message, "issues": self.issues}


class InvalidJSONError(PayloadValidationError):
    """Request body was not parseable JSON."""

    code = "INVALID_JSON"

    def __init__(self, reason: str) -> None:
        super().__init__([{"path": "", "message": reason}])
        self.message = "Invalid JSON payload"

    def to_body(self, public_message: str | None = None) -> dict[str, Any]:
        return {"error": self.message, "issues": self.issues, "code": self.code}


class RateLimitExceededError(AdLabError):
    """Quota for (route, client) is used up until reset_at."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, message: str, reset_at: datetime, upgrade_url: str) -> None:
        self.reset_at = reset_at
        self.upgrade_url = upgrade_url
        super().__init__(message)

    @property
    def retry_after_seconds(self) -> int:
        remaining = (self.reset_at - datetime.now(UTC)).total_seconds()
        return max(1, math.ceil(remaining))

    def to_body(self, public_message: str | None = None) -> dict[str, Any]:
        return {
            "error": self.message,
            "reset": self.reset_at.isoformat(),
            "upgradeUrl": self.upgrade_url,
        }


class RateLimiterUnavailableError(AdLabError):
    """Quota store unreachable and the limiter is configured fail-closed."""

    code = "RATE_LIMITER_UNAVAILABLE"


class StoreError(AdLabError):
    """Key-value store operation failed (connection, timeout, protocol)."""

    code = "STORE_ERROR"


class ProviderError(AdLabError):
    """Base for failures talking to, or understanding, the LLM provider."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Provider {operation} failed: {reason}")


class ProviderTransportError(ProviderError):
    """Network, HTTP status or SDK failure reaching the provider."""

    code = "PROVIDER_TRANSPORT_ERROR"


class ProviderTimeoutError(ProviderTransportError):
    """Provider call exceeded the configured timeout."""

    code = "PROVIDER_TIMEOUT"


class ProviderContractError(ProviderError):
    """Provider answered, but the content was not the JSON shape we require."""

    code = "PROVIDER_CONTRACT_ERROR"


# ── Response mapping ─────────────────────────────────────────────────────────


def error_response(exc: AdLabError, public_message: str | None = None) -> JSONResponse:
    """Map an AdLabError to its JSON response.

    ``public_message`` replaces the internal message on 5xx responses.
    """
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    message = public_message if exc.status_code >= 500 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(message),
        headers=headers or None,
    )


def render_outcome(outcome: PipelineOutcome) -> JSONResponse:
    """Turn a pipeline outcome into the HTTP response."""
    if outcome.error is not None:
        return error_response(outcome.error, public_message=outcome.failure_message)
    return JSONResponse(status_code=200, content=outcome.body)


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for errors that escape the pipeline as exceptions."""

    @app.exception_handler(AdLabError)
    async def adlab_error_handler(request: Request, exc: AdLabError) -> JSONResponse:
        logger.error(
            "adlab_error",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
        )
        return error_response(exc, public_message="Request failed")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
        )
