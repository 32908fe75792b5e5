"""Prometheus metrics for the producer, the listener and the publish endpoints."""

from prometheus_client import Counter, Gauge, Histogram

messages_produced_total = Counter(
    "kafka_gateway_messages_produced_total",
    "Messages handed to the Kafka producer",
    ["topic", "status"],
)

producer_errors_total = Counter(
    "kafka_gateway_producer_errors_total",
    "Producer errors by topic and exception type",
    ["topic", "error_type"],
)

messages_consumed_total = Counter(
    "kafka_gateway_messages_consumed_total",
    "Records delivered to the listener",
    ["topic", "consumer_group", "status"],
)

dispatch_batches_total = Counter(
    "kafka_gateway_dispatch_batches_total",
    "Publish requests handled by the dispatch coordinator",
    ["endpoint", "status"],
)

dispatch_duration_seconds = Histogram(
    "kafka_gateway_dispatch_duration_seconds",
    "Time spent dispatching one publish request",
    ["endpoint"],
)

connection_status = Gauge(
    "kafka_gateway_connection_status",
    "1 when the Kafka client is connected, 0 otherwise",
    ["client"],
)


def record_message_produced(topic: str, success: bool) -> None:
    messages_produced_total.labels(topic=topic, status="success" if success else "failure").inc()


def record_producer_error(topic: str, error_type: str) -> None:
    producer_errors_total.labels(topic=topic, error_type=error_type).inc()


def record_message_consumed(topic: str, consumer_group: str, success: bool) -> None:
    messages_consumed_total.labels(
        topic=topic,
        consumer_group=consumer_group,
        status="success" if success else "failure",
    ).inc()


def record_dispatch(endpoint: str, status: str, duration_seconds: float) -> None:
    dispatch_batches_total.labels(endpoint=endpoint, status=status).inc()
    dispatch_duration_seconds.labels(endpoint=endpoint).observe(duration_seconds)


def update_connection_status(client: str, connected: bool) -> None:
    connection_status.labels(client=client).set(1 if connected else 0)


__all__ = [
    "record_message_produced",
    "record_producer_error",
    "record_message_consumed",
    "record_dispatch",
    "update_connection_status",
]
