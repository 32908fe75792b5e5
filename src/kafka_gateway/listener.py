"""Listener callback for records consumed from the configured topic."""

import logging

from config.config import KafkaConfig
from kafka_gateway.common.consumer import MessageConsumer
from kafka_gateway.common.types import ReceivedMessage

logger = logging.getLogger(__name__)


class MessageListener:
    """Logs every record delivered by the consumer.

    ``on_message`` never raises: an exception while handling a record is
    logged and swallowed so the consumer keeps polling.
    """

    def on_message(
        self,
        value: str | None,
        topic: str,
        key: str | None,
        offset: int,
        partition: int,
    ) -> None:
        try:
            logger.info(
                f"Received message - Topic: {topic}, Key: {key}",
                extra={"topic": topic, "key": key},
            )
            logger.info(f"Message value: {value}", extra={"value": value})
            logger.info(
                f"Offset {offset} and Partition {partition}",
                extra={"offset": offset, "partition": partition},
            )
        except Exception:
            logger.error(
                f"Error processing message - Topic: {topic}, Key: {key}",
                exc_info=True,
            )

    async def handle(self, message: ReceivedMessage) -> None:
        """Consumer handler adapter."""
        self.on_message(
            message.value,
            message.topic,
            message.key,
            message.offset,
            message.partition,
        )


def create_listener_consumer(
    config: KafkaConfig,
    listener: MessageListener | None = None,
) -> MessageConsumer:
    """Build a consumer wired to ``listener`` for the configured topics and group."""
    listener = listener or MessageListener()
    return MessageConsumer(
        config=config,
        topics=config.get_listener_topics(),
        message_handler=listener.handle,
        group_id=config.get_consumer_group(),
    )


__all__ = ["MessageListener", "create_listener_consumer"]
