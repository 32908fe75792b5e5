"""
Core library: Reusable, infrastructure-agnostic components.

Modules:
    logging     - Structured JSON logging with request and message context
    errors      - Error classification and exception hierarchy
    utils       - JSON serialization and worker identifiers

Design Principles:
    - No dependencies on the HTTP layer or the Kafka client
    - All modules are independently testable
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]
