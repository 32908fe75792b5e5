"""Transport-level message types for the Kafka producer and consumer."""

from dataclasses import dataclass

__all__ = [
    "ReceivedMessage",
    "ProduceResult",
    "from_consumer_record",
]


@dataclass(frozen=True)
class ReceivedMessage:
    """A record delivered by the consumer, with key and value decoded as UTF-8."""

    topic: str
    partition: int
    offset: int
    timestamp: int
    key: str | None = None
    value: str | None = None
    headers: list[tuple[str, bytes]] | None = None


@dataclass(frozen=True)
class ProduceResult:
    """Broker confirmation of a published message."""

    topic: str
    partition: int
    offset: int


def _decode(data: bytes | None) -> str | None:
    if data is None:
        return None
    return data.decode("utf-8", errors="replace")


def from_consumer_record(record) -> ReceivedMessage:
    """Convert aiokafka ConsumerRecord to ReceivedMessage."""
    headers = None
    if getattr(record, "headers", None):
        headers = [(k, v) for k, v in record.headers]

    return ReceivedMessage(
        topic=record.topic,
        partition=record.partition,
        offset=record.offset,
        timestamp=record.timestamp,
        key=_decode(record.key),
        value=_decode(record.value),
        headers=headers,
    )
