"""Log formatters: one JSON object per line for files, a short line for the console."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context, get_record_context
from core.utils.json_serializers import json_serializer

# ``extra`` keys the gateway logs; anything else on the record is ignored
EXTRA_FIELDS = (
    "duration_ms",
    "http_method",
    "http_path",
    "http_status",
    "endpoint",
    "error",
    "error_category",
    "error_message",
    "error_type",
    "violations",
    "topic",
    "key",
    "value",
    "partition",
    "offset",
    "topics",
    "group_id",
    "partition_count",
    "total_requested",
    "success_count",
    "failure_count",
    "attempted",
    "pending_count",
    "status",
    "delivery_mode",
    "start_index",
    "end_index",
    "number_of_messages",
    "port",
)


class JSONFormatter(logging.Formatter):
    """JSON lines with request and record context merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({k: v for k, v in get_log_context().items() if v})
        entry.update(get_record_context())
        entry.update(
            (name, getattr(record, name))
            for name in EXTRA_FIELDS
            if getattr(record, name, None) is not None
        )

        if record.levelno >= logging.ERROR:
            entry["file"] = f"{record.filename}:{record.lineno}"
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """``time - LEVEL - [stage] - [request] [topic:...] message``; level colored on a TTY."""

    LEVEL_COLORS = {
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool | None = None):
        super().__init__()
        self.use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        context = get_log_context()

        level = record.levelname
        color = self.LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            level = f"{color}{level}{self.RESET}"

        parts = [datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"), level]
        if context["stage"]:
            parts.append(f"[{context['stage']}]")

        tags = []
        if context["request_id"]:
            tags.append(f"[{context['request_id']}]")
        topic = getattr(record, "topic", None) or get_record_context().get("message_topic")
        if topic:
            tags.append(f"[topic:{topic}]")
        parts.append(" ".join([*tags, record.getMessage()]))

        line = " - ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
