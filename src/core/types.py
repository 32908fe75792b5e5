"""
Core types shared across modules.

This module provides the base enums used by the error hierarchy and the
HTTP layer to classify failures consistently.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures reported by the broker client
                   (e.g., broker unavailable, request timed out)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., validation errors, configuration issues)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = [
    "ErrorCategory",
]
