"""
Logging context carried through contextvars.

Two scopes feed the formatters:

- request scope: ``request_id``, ``stage`` and ``worker_id``. ``stage`` and
  ``worker_id`` are set once at startup, ``request_id`` by the HTTP
  middleware for the duration of one request.
- record scope: Kafka coordinates of the record the listener is handling.

Scoped blocks restore the previous values by resetting their contextvar
token, so nesting and concurrent tasks never see each other's values.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

_LOG_FIELDS = ("request_id", "stage", "worker_id")

_log_context: ContextVar[dict[str, str] | None] = ContextVar("log_context", default=None)


def set_log_context(
    request_id: str | None = None,
    stage: str | None = None,
    worker_id: str | None = None,
) -> None:
    """Set request-scope fields for the current context; ``None`` leaves a field as is."""
    _log_context.set(_merged(request_id=request_id, stage=stage, worker_id=worker_id))


def get_log_context() -> dict[str, str]:
    current = _log_context.get() or {}
    return {name: current.get(name, "") for name in _LOG_FIELDS}


def clear_log_context() -> None:
    _log_context.set(None)


@contextmanager
def log_context(
    request_id: str | None = None,
    stage: str | None = None,
    worker_id: str | None = None,
) -> Iterator[None]:
    """Apply request-scope fields inside the block.

    Usage:
        with log_context(request_id=request_id, stage="api"):
            await handler(request)
    """
    token = _log_context.set(_merged(request_id=request_id, stage=stage, worker_id=worker_id))
    try:
        yield
    finally:
        _log_context.reset(token)


def _merged(**fields: str | None) -> dict[str, str]:
    merged = dict(_log_context.get() or {})
    merged.update({name: value for name, value in fields.items() if value is not None})
    return merged


@dataclass(frozen=True)
class RecordContext:
    topic: str
    partition: int
    offset: int
    key: str | None = None
    consumer_group: str | None = None

    def as_log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "message_topic": self.topic,
            "message_partition": self.partition,
            "message_offset": self.offset,
        }
        if self.key:
            fields["message_key"] = self.key
        if self.consumer_group:
            fields["message_consumer_group"] = self.consumer_group
        return fields


_record_context: ContextVar[RecordContext | None] = ContextVar("record_context", default=None)


@contextmanager
def record_context(
    topic: str,
    partition: int,
    offset: int,
    key: str | None = None,
    consumer_group: str | None = None,
) -> Iterator[RecordContext]:
    """Tag every log line in the block with the record being handled."""
    record = RecordContext(topic, partition, offset, key, consumer_group)
    token = _record_context.set(record)
    try:
        yield record
    finally:
        _record_context.reset(token)


def get_record_context() -> dict[str, Any]:
    """Log fields of the record being handled, empty outside ``record_context``."""
    record = _record_context.get()
    return record.as_log_fields() if record else {}


def clear_record_context() -> None:
    _record_context.set(None)
