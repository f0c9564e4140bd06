"""Structured error types for the nutrition extraction pipeline.

Failure categories and how they travel:

    ┌─────────────────────────────────────────────────────┐
    │ Caller input      → InputError        (raised)      │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Cache lookup      (never fails)                     │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Model call        → ExtractionError   (raised)      │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Response parsing  → ParseError        (→ Invalid)   │
    └─────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌─────────────────────────────────────────────────────┐
    │ Validation        → Invalid outcome   (data)        │
    └─────────────────────────────────────────────────────┘

InputError and ExtractionError are contract/infrastructure failures and
propagate to the caller. ParseError is caught by the extractor and turned
into an Invalid outcome, so a bad entry in a batch never aborts its
siblings. Validation rejections are returned as data, never raised.

Only ExtractionError is retryable: the same prompt that produced a
ParseError or a rejection is likely to produce it again.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ExtractionErrorCode(Enum):
    """Enumeration of all extraction pipeline error codes.

    Codes are string values for easy serialization and logging.
    """

    INVALID_INPUT = "INVALID_INPUT"
    SERVICE_FAILURE = "SERVICE_FAILURE"
    PARSE_FAILURE = "PARSE_FAILURE"


class NutritionPipelineError(Exception):
    """Base exception for all extraction pipeline errors.

    Attributes:
        code: ExtractionErrorCode identifying the error type
        message: Human-readable error description
        context: Dictionary of relevant error context
    """

    retryable = False

    def __init__(
        self,
        code: ExtractionErrorCode,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.context = context or {}
        super().__init__(f"[{code.value}] {message}")

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context
        }


class InputError(NutritionPipelineError):
    """Raised when caller-supplied input violates the extraction contract.

    Examples: empty or whitespace-only description, weight outside
    (0, max_weight_grams]. Raised before the model is ever called.

    Context includes:
        - field: Which argument failed
        - value: The rejected value
        - reason: Why it failed
    """

    def __init__(self, field: str, value: Any, reason: str):
        context = {
            "field": field,
            "value": value if isinstance(value, (int, float)) else str(value),
            "reason": reason,
        }
        message = f"Invalid {field}: {reason}"
        if value not in (None, ""):
            message += f" (value: {value!r})"

        super().__init__(
            code=ExtractionErrorCode.INVALID_INPUT,
            message=message,
            context=context
        )

        self.field = field
        self.value = value
        self.reason = reason


class ExtractionError(NutritionPipelineError):
    """Raised when the text-completion service fails.

    Covers network errors, authentication problems, quota exhaustion,
    empty responses and timeouts. Callers may retry with backoff.

    Context includes:
        - operation: "extract_one" or "extract_from_message"
        - service_error_code: Provider error code (TIMEOUT, RATE_LIMITED, ...)
        - description: The input being extracted (truncated)
    """

    retryable = True

    def __init__(
        self,
        operation: str,
        reason: str,
        service_error_code: Optional[str] = None,
        description: Optional[str] = None
    ):
        context: Dict[str, Any] = {"operation": operation}
        if service_error_code is not None:
            context["service_error_code"] = service_error_code
        if description is not None:
            context["description"] = description[:200]

        message = f"Text-completion service failed during {operation}: {reason}"

        super().__init__(
            code=ExtractionErrorCode.SERVICE_FAILURE,
            message=message,
            context=context
        )

        self.operation = operation
        self.reason = reason
        self.service_error_code = service_error_code


class ParseError(NutritionPipelineError):
    """Raised when model output cannot be read as nutrition data.

    Either the text is not the expected JSON structure, a required field
    is missing or non-numeric, or the food name is a placeholder or on
    the deny-list.

    Context includes:
        - reason: Short reason used as the Invalid outcome's reason
        - attempted: Best-effort fields read before the failure
    """

    def __init__(self, reason: str, attempted: Optional[Dict[str, Any]] = None):
        attempted = dict(attempted or {})
        super().__init__(
            code=ExtractionErrorCode.PARSE_FAILURE,
            message=reason,
            context={"reason": reason, "attempted": attempted}
        )

        self.reason = reason
        self.attempted = attempted
