"""Logging utility functions."""

import logging
from typing import Any

# Reserved LogRecord attribute names that cannot be used in extra dict
_RESERVED_LOG_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "asctime",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)

_MAX_ERROR_MESSAGE_LENGTH = 500


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (topic, duration_ms, etc.)
                  Note: exc_info=True is supported and handled specially.

    Example:
        log_with_context(
            logger, logging.INFO, "Batch dispatch completed",
            topic=topic,
            success_count=report.success_count,
            duration_ms=elapsed,
        )
    """
    # exc_info is a direct parameter to log(), not extra
    exc_info = kwargs.pop("exc_info", None)

    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}

    logger.log(level, msg, exc_info=exc_info, extra=extra)


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_category from GatewayError subclasses and
    truncates long error messages.

    Example:
        try:
            await producer.send_async(topic, key, value)
        except Exception as e:
            log_exception(logger, e, "Failed to publish message", topic=topic)
    """
    if kwargs.get("error_category") is None and hasattr(exc, "category"):
        cat = exc.category
        kwargs["error_category"] = cat.value if hasattr(cat, "value") else str(cat)

    error_msg = str(exc)
    if len(error_msg) > _MAX_ERROR_MESSAGE_LENGTH:
        error_msg = error_msg[:_MAX_ERROR_MESSAGE_LENGTH] + "..."
    kwargs["error_message"] = error_msg
    kwargs["error_type"] = type(exc).__name__

    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}

    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=extra)
    else:
        logger.log(level, msg, extra=extra)


def format_dispatch_summary(
    total_requested: int,
    succeeded: int,
    failed: int,
    duration_ms: float | None = None,
) -> str:
    """
    Format a one-line summary of a batch dispatch.

    Example:
        >>> format_dispatch_summary(10, 9, 1, 12.5)
        'requested=10 (succeeded=9, failed=1) in 12.5ms'
        >>> format_dispatch_summary(3, 3, 0)
        'requested=3 (succeeded=3, failed=0)'
    """
    summary = f"requested={total_requested} (succeeded={succeeded}, failed={failed})"
    if duration_ms is not None:
        summary = f"{summary} in {duration_ms}ms"
    return summary
