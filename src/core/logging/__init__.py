"""
Structured logging.

JSON file logs and console logs, both tagged with the request id of the HTTP
request or the Kafka coordinates of the record being handled.
"""

from core.logging.context import (
    clear_log_context,
    clear_record_context,
    get_log_context,
    get_record_context,
    log_context,
    record_context,
    set_log_context,
)
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import (
    generate_request_id,
    get_log_file_path,
    log_service_startup,
    setup_logging,
)
from core.logging.utilities import (
    format_dispatch_summary,
    log_exception,
    log_with_context,
)

__all__ = [
    # Setup
    "setup_logging",
    "generate_request_id",
    "get_log_file_path",
    "log_service_startup",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "log_context",
    "record_context",
    "get_record_context",
    "clear_record_context",
    # Utilities
    "log_with_context",
    "log_exception",
    "format_dispatch_summary",
]
