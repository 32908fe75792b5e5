"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- GatewayError hierarchy for typed exceptions
"""

from core.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    GatewayError,
    PermanentError,
    TransientError,
    # Request errors
    ValidationError,
    # Dispatch errors
    DispatchError,
    KafkaError,
    UnexpectedDispatchError,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "GatewayError",
    "TransientError",
    "PermanentError",
    # Request errors
    "ValidationError",
    # Dispatch errors
    "DispatchError",
    "UnexpectedDispatchError",
    "KafkaError",
]
