"""Message producer wrapping aiokafka for the publish endpoints."""

import asyncio
import logging
from functools import partial
from typing import Any

from aiokafka import AIOKafkaProducer

from config.config import KafkaConfig
from core.errors.exceptions import KafkaError
from kafka_gateway.common.kafka_config import build_kafka_security_config
from kafka_gateway.common.metrics import (
    record_message_produced,
    record_producer_error,
    update_connection_status,
)
from kafka_gateway.common.types import ProduceResult

logger = logging.getLogger(__name__)


def _encode(data: str | bytes | None) -> bytes | None:
    if data is None or isinstance(data, bytes):
        return data
    return data.encode("utf-8")


class MessageProducer:
    """Async string-keyed message producer.

    ``send_async`` is the submission primitive used by the dispatch
    coordinator: it returns as soon as the record is queued and reports the
    delivery outcome only through the returned future (and the log).
    """

    def __init__(self, config: KafkaConfig, client_id: str = "kafka-gateway"):
        self.config = config
        self.client_id = client_id
        self._producer: AIOKafkaProducer | None = None
        self._started = False
        self.producer_config = config.get_producer_config()

        logger.info(
            "Initialized message producer",
            extra={
                "bootstrap_servers": config.bootstrap_servers,
                "security_protocol": config.security_protocol,
                "producer_config": self.producer_config,
            },
        )

    def _resolve_acks_and_idempotence(self) -> tuple[Any, bool]:
        """Resolve acks value and idempotence setting, enforcing mutual constraints."""
        acks_value = self.producer_config.get("acks", "all")
        if isinstance(acks_value, str) and acks_value.isdigit():
            acks_value = int(acks_value)

        enable_idempotence = self.producer_config.get("enable_idempotence", False)
        if enable_idempotence and acks_value != "all":
            logger.warning(
                "Overriding acks to 'all' because enable_idempotence=True requires it",
                extra={"configured_acks": acks_value},
            )
            acks_value = "all"

        return acks_value, enable_idempotence

    def _build_kafka_config(self) -> dict[str, Any]:
        acks_value, enable_idempotence = self._resolve_acks_and_idempotence()

        kafka_config = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "client_id": self.client_id,
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
            "acks": acks_value,
            "enable_idempotence": enable_idempotence,
            "retry_backoff_ms": self.producer_config.get("retry_backoff_ms", 100),
        }

        if "linger_ms" in self.producer_config:
            kafka_config["linger_ms"] = self.producer_config["linger_ms"]

        if "batch_size" in self.producer_config:
            kafka_config["max_batch_size"] = self.producer_config["batch_size"]

        if "compression_type" in self.producer_config:
            compression = self.producer_config["compression_type"]
            kafka_config["compression_type"] = None if compression == "none" else compression

        if "max_request_size" in self.producer_config:
            kafka_config["max_request_size"] = self.producer_config["max_request_size"]

        kafka_config.update(build_kafka_security_config(self.config))
        return kafka_config

    async def start(self) -> None:
        if self._started:
            logger.warning("Producer already started, ignoring duplicate start call")
            return

        logger.info("Starting message producer")

        kafka_config = self._build_kafka_config()
        self._producer = AIOKafkaProducer(**kafka_config)
        try:
            await self._producer.start()
        except Exception as e:
            self._producer = None
            raise KafkaError(
                "Failed to start Kafka producer",
                cause=e,
                context={"bootstrap_servers": self.config.bootstrap_servers},
            ) from e
        self._started = True
        update_connection_status("producer", connected=True)

        logger.info(
            "Message producer started successfully",
            extra={
                "bootstrap_servers": self.config.bootstrap_servers,
                "acks": kafka_config["acks"],
                "enable_idempotence": kafka_config["enable_idempotence"],
            },
        )

    async def stop(self) -> None:
        # Errors during stop are logged but not re-raised to avoid masking original exceptions
        if self._producer is None:
            logger.debug("Producer already stopped")
            return

        logger.info("Stopping message producer")

        try:
            # Only flush if the producer was fully started (connected successfully)
            if self._started:
                await self._producer.flush()
            await self._producer.stop()
            logger.info("Message producer stopped successfully")
        except Exception as e:
            logger.error(
                "Error stopping message producer",
                extra={"error": str(e)},
                exc_info=True,
            )
        finally:
            update_connection_status("producer", connected=False)
            self._producer = None
            self._started = False

    def _ensure_started(self) -> AIOKafkaProducer:
        if not self._started or self._producer is None:
            raise RuntimeError("Producer not started. Call start() first.")
        return self._producer

    async def send_async(self, topic: str, key: str | None, value: str) -> asyncio.Future:
        """Queue one message and return its delivery future.

        Raises if the record cannot be queued (producer stopped, buffer
        timeout, oversized record). Broker-side failures surface through the
        future, whose outcome is logged by a done-callback.
        """
        producer = self._ensure_started()

        try:
            future = await producer.send(topic, key=_encode(key), value=_encode(value))
        except Exception as e:
            record_message_produced(topic, success=False)
            record_producer_error(topic, type(e).__name__)
            logger.error(
                "Failed to submit message",
                extra={"topic": topic, "key": key, "error": str(e)},
                exc_info=True,
            )
            raise

        future.add_done_callback(partial(self._on_delivery, topic, key))
        return future

    @staticmethod
    def _on_delivery(topic: str, key: str | None, future: asyncio.Future) -> None:
        if future.cancelled():
            record_message_produced(topic, success=False)
            logger.warning("Message delivery cancelled", extra={"topic": topic, "key": key})
            return

        error = future.exception()
        if error is not None:
            record_message_produced(topic, success=False)
            record_producer_error(topic, type(error).__name__)
            logger.error(
                f"Failed to send message to topic: {topic}",
                extra={"topic": topic, "key": key, "error": str(error)},
                exc_info=error,
            )
            return

        metadata = future.result()
        record_message_produced(topic, success=True)
        logger.info(
            f"Message sent successfully to topic: {topic}",
            extra={
                "topic": metadata.topic,
                "key": key,
                "partition": metadata.partition,
                "offset": metadata.offset,
            },
        )

    async def send(self, topic: str, key: str | None, value: str) -> ProduceResult:
        """Send one message and wait for the broker acknowledgment."""
        future = await self.send_async(topic, key, value)
        metadata = await future
        return ProduceResult(
            topic=metadata.topic,
            partition=metadata.partition,
            offset=metadata.offset,
        )

    async def flush(self) -> None:
        producer = self._ensure_started()
        logger.debug("Flushing producer")
        await producer.flush()

    @property
    def is_started(self) -> bool:
        return self._started and self._producer is not None


__all__ = [
    "MessageProducer",
    "AIOKafkaProducer",
    "ProduceResult",
]
