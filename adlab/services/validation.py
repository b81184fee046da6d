# Request body validation. Pure and synchronous: returns a ValidationResult
# instead of raising, so the pipeline decides what happens next.

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from adlab.exceptions import InvalidJSONError, PayloadValidationError

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ValidationResult(Generic[M]):
    value: M | None = None
    error: PayloadValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _issue_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def validate_payload(raw: bytes | str, model: type[M]) -> ValidationResult[M]:
    """Parse ``raw`` as JSON and validate it against ``model``.

    Unparseable JSON and schema violations are reported as different error
    types; schema issues carry the camelCase field path.
    """
    try:
        return ValidationResult(value=model.model_validate_json(raw))
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        json_errors = [e for e in errors if e["type"] == "json_invalid"]
        if json_errors:
            return ValidationResult(error=InvalidJSONError(json_errors[0]["msg"]))
        issues = [{"path": _issue_path(e["loc"]), "message": e["msg"]} for e in errors]
        return ValidationResult(error=PayloadValidationError(issues))
