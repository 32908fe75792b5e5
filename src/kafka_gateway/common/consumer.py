"""Message consumer driving the listener."""

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable

from aiokafka import AIOKafkaConsumer
from aiokafka.structs import ConsumerRecord, TopicPartition

from config.config import KafkaConfig
from core.errors.exceptions import KafkaError
from core.logging import record_context
from core.utils import generate_worker_id
from kafka_gateway.common.kafka_config import build_kafka_security_config
from kafka_gateway.common.metrics import record_message_consumed, update_connection_status
from kafka_gateway.common.types import ReceivedMessage, from_consumer_record

logger = logging.getLogger(__name__)


class MessageConsumer:
    """Async consumer that hands every record to ``message_handler``.

    Each record's own offset is committed once its handler returns, unless
    ``enable_message_commit`` is False. A handler exception is logged and
    that record's offset is not committed; a later successful record on the
    same partition still moves the committed position past it.
    """

    def __init__(
        self,
        config: KafkaConfig,
        topics: list[str],
        message_handler: Callable[[ReceivedMessage], Awaitable[None]],
        group_id: str | None = None,
        enable_message_commit: bool = True,
    ):
        if not topics:
            raise ValueError("At least one topic must be specified")

        self.config = config
        self.topics = topics
        self.message_handler = message_handler
        self.group_id = group_id or config.get_consumer_group()
        self.consumer_config = config.get_consumer_config()
        self.worker_id = generate_worker_id("listener")
        self._enable_message_commit = enable_message_commit
        self._consumer: AIOKafkaConsumer | None = None
        self._running = False

        logger.info(
            "Initialized message consumer",
            extra={
                "topics": topics,
                "group_id": self.group_id,
                "bootstrap_servers": config.bootstrap_servers,
                "enable_message_commit": enable_message_commit,
            },
        )

    # Optional consumer config keys forwarded to AIOKafkaConsumer if present
    _OPTIONAL_CONSUMER_KEYS = (
        "heartbeat_interval_ms",
        "fetch_min_bytes",
        "fetch_max_wait_ms",
    )

    def _build_kafka_config(self) -> dict:
        cfg = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "group_id": self.group_id,
            "client_id": self.worker_id,
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
            "enable_auto_commit": self.consumer_config.get("enable_auto_commit", False),
            "auto_offset_reset": self.consumer_config.get("auto_offset_reset", "earliest"),
            "max_poll_records": self.consumer_config.get("max_poll_records", 100),
            "max_poll_interval_ms": self.consumer_config.get("max_poll_interval_ms", 300000),
            "session_timeout_ms": self.consumer_config.get("session_timeout_ms", 30000),
        }

        for key in self._OPTIONAL_CONSUMER_KEYS:
            if key in self.consumer_config:
                cfg[key] = self.consumer_config[key]

        cfg.update(build_kafka_security_config(self.config))
        return cfg

    async def start(self) -> None:
        """Connect and consume until stopped or cancelled."""
        if self._running:
            logger.warning("Consumer already running, ignoring duplicate start call")
            return

        logger.info("Starting message consumer", extra={"topics": self.topics, "group_id": self.group_id})

        self._consumer = AIOKafkaConsumer(*self.topics, **self._build_kafka_config())
        try:
            await self._consumer.start()
        except Exception as e:
            logger.error(
                "Failed to start message consumer",
                extra={"topics": self.topics, "group_id": self.group_id},
                exc_info=True,
            )
            self._consumer = None
            raise KafkaError(
                "Failed to start Kafka consumer",
                cause=e,
                context={"topics": self.topics, "group_id": self.group_id},
            ) from e
        self._running = True
        update_connection_status("consumer", connected=True)

        try:
            await self._consume_loop()
        except asyncio.CancelledError:
            logger.info("Consumer loop cancelled, shutting down")
            raise
        except Exception:
            logger.error("Consumer loop terminated with error", exc_info=True)
            raise
        finally:
            self._running = False

    async def stop(self) -> None:
        if self._consumer is None:
            logger.debug("Consumer not running or already stopped")
            return

        logger.info("Stopping message consumer")
        self._running = False

        try:
            await self._consumer.stop()
            logger.info("Message consumer stopped successfully")
        except Exception:
            logger.error("Error stopping message consumer", exc_info=True)
            raise
        finally:
            update_connection_status("consumer", connected=False)
            self._consumer = None

    async def _wait_for_assignment(self) -> bool:
        """Wait for partition assignment, logging once. Returns True when assigned."""
        logged_waiting = False
        while self._running and self._consumer:
            assignment = self._consumer.assignment()
            if assignment:
                partition_info = [f"{tp.topic}:{tp.partition}" for tp in assignment]
                logger.info(
                    "Partition assignment received, starting message consumption",
                    extra={"group_id": self.group_id, "partition_count": len(assignment), "partitions": partition_info},
                )
                return True
            if not logged_waiting:
                logger.info(
                    "Waiting for partition assignment",
                    extra={"group_id": self.group_id, "topics": self.topics},
                )
                logged_waiting = True
            await asyncio.sleep(0.5)
        return False

    async def _fetch_and_process_batch(self) -> bool:
        """Returns False if the consumer was stopped mid-batch."""
        data = await self._consumer.getmany(timeout_ms=1000)

        for message in itertools.chain.from_iterable(data.values()):
            if not self._running:
                return False
            await self._process_message(message)
        return True

    async def _consume_loop(self) -> None:
        if not await self._wait_for_assignment():
            return

        while self._running and self._consumer:
            try:
                if not await self._fetch_and_process_batch():
                    return
            except asyncio.CancelledError:
                logger.info("Consumption loop cancelled")
                raise
            except Exception:
                logger.error("Error in consumption loop", exc_info=True)
                await asyncio.sleep(1)

    async def _process_message(self, message: ConsumerRecord) -> None:
        received = from_consumer_record(message)
        with record_context(
            topic=message.topic,
            partition=message.partition,
            offset=message.offset,
            key=received.key,
            consumer_group=self.group_id,
        ):
            success = False
            try:
                await self.message_handler(received)
                success = True
                if self._enable_message_commit:
                    await self._consumer.commit(
                        {TopicPartition(message.topic, message.partition): message.offset + 1}
                    )
            except Exception:
                logger.error("Error handling consumed message", exc_info=True)
            finally:
                record_message_consumed(message.topic, self.group_id, success=success)

    @property
    def is_running(self) -> bool:
        return self._running and self._consumer is not None


__all__ = [
    "MessageConsumer",
    "AIOKafkaConsumer",
    "ConsumerRecord",
]
