"""
Unified exception hierarchy for the Kafka gateway.

Provides typed exceptions with an error category so the HTTP layer can map
failures to client or server errors without inspecting messages.
"""

from core.types import ErrorCategory


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class TransientError(GatewayError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class PermanentError(GatewayError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Request Errors
# =============================================================================


class ValidationError(PermanentError):
    """Request fields are malformed or out of range.

    Raised before any message is dispatched. ``violations`` holds one
    ``FieldViolation`` (or any object with ``field``/``message``) per problem.
    """

    def __init__(self, violations: list, context: dict | None = None):
        self.violations = list(violations)
        message = "; ".join(v.message for v in self.violations) or "Invalid request"
        super().__init__(message, context=context)

    def to_dict(self) -> list[dict[str, str]]:
        return [{"field": v.field, "message": v.message} for v in self.violations]


# =============================================================================
# Dispatch Errors
# =============================================================================


class DispatchError(TransientError):
    """The broker client rejected or failed a single message."""

    def __init__(
        self,
        topic: str,
        key: str,
        cause: Exception | None = None,
    ):
        super().__init__(
            f"Failed to dispatch message to topic '{topic}'",
            cause,
            {"topic": topic, "key": key},
        )
        self.topic = topic
        self.key = key


class UnexpectedDispatchError(GatewayError):
    """A failure in the dispatch loop itself, not attributable to one message."""

    pass


class KafkaError(GatewayError):
    """Error from Kafka operations (producer/consumer lifecycle)."""

    pass


__all__ = [
    "ErrorCategory",
    "GatewayError",
    "TransientError",
    "PermanentError",
    "ValidationError",
    "DispatchError",
    "UnexpectedDispatchError",
    "KafkaError",
]
