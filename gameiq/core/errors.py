"""Service results and the error taxonomy shared by every component.

Services return a ``Result`` instead of raising for expected failures; routers
switch on ``error.kind`` and map it to an HTTP status.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NotFound"
    OWNERSHIP = "OwnershipError"
    VALIDATION = "ValidationError"
    STATE = "StateError"
    BUDGET_EXCEEDED = "BudgetExceeded"
    SUBSCRIPTION_REQUIRED = "SubscriptionRequired"
    EXTERNAL_GENERATION = "ExternalGenerationError"
    CONFLICT = "ConflictError"


HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OWNERSHIP: 403,
    ErrorKind.VALIDATION: 422,
    ErrorKind.STATE: 409,
    ErrorKind.BUDGET_EXCEEDED: 429,
    ErrorKind.SUBSCRIPTION_REQUIRED: 402,
    ErrorKind.EXTERNAL_GENERATION: 502,
    ErrorKind.CONFLICT: 409,
}


@dataclass(frozen=True)
class ServiceError:
    """Structured failure: kind, human-readable message, optional details."""

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.details}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value (ok) or a ServiceError."""

    value: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **details: Any) -> "Result[T]":
        return cls(error=ServiceError(kind=kind, message=message, details=details))

    @classmethod
    def from_error(cls, error: ServiceError) -> "Result[T]":
        return cls(error=error)


class ExternalGenerationError(Exception):
    """The generative-text collaborator returned malformed or incomplete data.

    Token counts are kept when the call itself completed, so the spend can
    still be recorded.
    """

    def __init__(self, message: str, input_tokens: int = 0, output_tokens: int = 0):
        super().__init__(message)
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
