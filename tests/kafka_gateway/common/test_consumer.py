"""Tests for MessageConsumer."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
from aiokafka.structs import ConsumerRecord, TopicPartition

from config.config import KafkaConfig
from core.errors.exceptions import KafkaError
from core.logging.context import get_record_context
from kafka_gateway.common.consumer import MessageConsumer
from kafka_gateway.common.types import ReceivedMessage


def _make_config(**overrides):
    return KafkaConfig(
        bootstrap_servers=overrides.get("bootstrap_servers", "localhost:9092"),
        consumer_defaults=overrides.get(
            "consumer_defaults",
            {"auto_offset_reset": "earliest", "enable_auto_commit": False, "heartbeat_interval_ms": 3000},
        ),
        listener=overrides.get("listener", {"topic": "test-topic", "group_id": "test-cg"}),
    )


def _make_kafka_mock(**overrides):
    """Create a mock AIOKafkaConsumer with sync/async methods set correctly."""
    mock = Mock()
    mock.start = AsyncMock()
    mock.stop = AsyncMock()
    mock.commit = AsyncMock()
    mock.getmany = AsyncMock(return_value={})
    mock.assignment = Mock(return_value=overrides.get("assignment", set()))
    return mock


def _make_consumer_record(
    topic="test-topic",
    partition=0,
    offset=42,
    key=b"key-1",
    value=b"hello",
    timestamp=1000,
):
    return ConsumerRecord(
        topic=topic,
        partition=partition,
        offset=offset,
        timestamp=timestamp,
        timestamp_type=0,
        key=key,
        value=value,
        headers=[],
        checksum=None,
        serialized_key_size=len(key) if key else 0,
        serialized_value_size=len(value) if value else 0,
    )


def _make_consumer(**overrides):
    config = overrides.pop("config", _make_config())
    with patch("kafka_gateway.common.consumer.generate_worker_id", return_value="listener-test-id"):
        return MessageConsumer(
            config=config,
            topics=overrides.get("topics", ["test-topic"]),
            message_handler=overrides.get("message_handler", AsyncMock()),
            group_id=overrides.get("group_id"),
            enable_message_commit=overrides.get("enable_message_commit", True),
        )


class TestInit:

    def test_raises_on_empty_topics(self):
        with pytest.raises(ValueError, match="At least one topic"):
            MessageConsumer(config=_make_config(), topics=[], message_handler=AsyncMock())

    def test_group_from_config(self):
        consumer = _make_consumer()
        assert consumer.group_id == "test-cg"
        assert consumer.worker_id == "listener-test-id"

    def test_explicit_group_wins(self):
        assert _make_consumer(group_id="other").group_id == "other"


class TestBuildKafkaConfig:

    def test_maps_consumer_settings(self):
        cfg = _make_consumer()._build_kafka_config()

        assert cfg["bootstrap_servers"] == "localhost:9092"
        assert cfg["group_id"] == "test-cg"
        assert cfg["client_id"] == "listener-test-id"
        assert cfg["auto_offset_reset"] == "earliest"
        assert cfg["enable_auto_commit"] is False
        assert cfg["heartbeat_interval_ms"] == 3000
        assert "fetch_min_bytes" not in cfg

    def test_listener_overrides(self):
        config = _make_config(
            listener={"topic": "t", "consumer": {"auto_offset_reset": "latest"}},
        )
        cfg = _make_consumer(config=config)._build_kafka_config()
        assert cfg["auto_offset_reset"] == "latest"


class TestProcessMessage:

    async def test_invokes_handler_and_commits(self):
        handler = AsyncMock()
        consumer = _make_consumer(message_handler=handler)
        consumer._consumer = _make_kafka_mock()

        await consumer._process_message(_make_consumer_record())

        handler.assert_awaited_once()
        received = handler.call_args.args[0]
        assert received == ReceivedMessage(
            topic="test-topic",
            partition=0,
            offset=42,
            timestamp=1000,
            key="key-1",
            value="hello",
            headers=None,
        )
        consumer._consumer.commit.assert_awaited_once_with({TopicPartition("test-topic", 0): 43})

    async def test_no_commit_when_disabled(self):
        consumer = _make_consumer(enable_message_commit=False)
        consumer._consumer = _make_kafka_mock()

        await consumer._process_message(_make_consumer_record())

        consumer._consumer.commit.assert_not_awaited()

    async def test_handler_runs_inside_record_context(self):
        seen = {}

        async def handler(message):
            seen.update(get_record_context())

        consumer = _make_consumer(message_handler=handler)
        consumer._consumer = _make_kafka_mock()

        await consumer._process_message(_make_consumer_record(partition=3, offset=9))

        assert seen["message_topic"] == "test-topic"
        assert seen["message_partition"] == 3
        assert seen["message_offset"] == 9
        assert seen["message_key"] == "key-1"
        assert seen["message_consumer_group"] == "test-cg"
        assert get_record_context() == {}

    async def test_handler_error_is_logged_not_committed(self):
        consumer = _make_consumer(message_handler=AsyncMock(side_effect=RuntimeError("boom")))
        consumer._consumer = _make_kafka_mock()

        with patch("kafka_gateway.common.consumer.record_message_consumed") as record:
            await consumer._process_message(_make_consumer_record())

        consumer._consumer.commit.assert_not_awaited()
        record.assert_called_once_with("test-topic", "test-cg", success=False)

    async def test_null_key(self):
        handler = AsyncMock()
        consumer = _make_consumer(message_handler=handler)
        consumer._consumer = _make_kafka_mock()

        await consumer._process_message(_make_consumer_record(key=None))

        assert handler.call_args.args[0].key is None


class TestConsumeLoop:

    async def test_waits_for_assignment_then_processes(self):
        handler = AsyncMock()
        consumer = _make_consumer(message_handler=handler)
        kafka = _make_kafka_mock(assignment={TopicPartition("test-topic", 0)})
        records = [_make_consumer_record(offset=1), _make_consumer_record(offset=2)]

        async def getmany(timeout_ms):
            if kafka.getmany.await_count == 1:
                return {TopicPartition("test-topic", 0): records}
            consumer._running = False
            return {}

        kafka.getmany.side_effect = getmany
        consumer._consumer = kafka
        consumer._running = True

        await consumer._consume_loop()

        assert [c.args[0].offset for c in handler.call_args_list] == [1, 2]

    async def test_commits_only_handled_records(self):
        handler = AsyncMock(side_effect=[None, RuntimeError("boom"), None])
        consumer = _make_consumer(message_handler=handler)
        kafka = _make_kafka_mock(assignment={TopicPartition("test-topic", 0)})
        records = [_make_consumer_record(offset=o) for o in (5, 6, 7)]
        committed_when_first_handled = []

        async def commit(offsets):
            if not committed_when_first_handled:
                committed_when_first_handled.append(handler.await_count)

        async def getmany(timeout_ms):
            if kafka.getmany.await_count == 1:
                return {TopicPartition("test-topic", 0): records}
            consumer._running = False
            return {}

        kafka.getmany.side_effect = getmany
        kafka.commit.side_effect = commit
        consumer._consumer = kafka
        consumer._running = True

        await consumer._consume_loop()

        assert committed_when_first_handled == [1]
        assert [c.args[0] for c in kafka.commit.await_args_list] == [
            {TopicPartition("test-topic", 0): 6},
            {TopicPartition("test-topic", 0): 8},
        ]

    async def test_loop_error_is_logged_and_loop_continues(self):
        consumer = _make_consumer()
        kafka = _make_kafka_mock(assignment={TopicPartition("test-topic", 0)})

        async def getmany(timeout_ms):
            if kafka.getmany.await_count == 1:
                raise ConnectionError("fetch failed")
            consumer._running = False
            return {}

        kafka.getmany.side_effect = getmany
        consumer._consumer = kafka
        consumer._running = True

        with patch("kafka_gateway.common.consumer.asyncio.sleep", new=AsyncMock()) as sleep:
            await consumer._consume_loop()

        sleep.assert_awaited_once_with(1)
        assert kafka.getmany.await_count == 2

    async def test_wait_for_assignment_returns_false_when_stopped(self):
        consumer = _make_consumer()
        consumer._consumer = _make_kafka_mock()
        consumer._running = False

        assert await consumer._wait_for_assignment() is False


class TestStartStop:

    async def test_start_runs_loop_and_stop_closes(self):
        kafka = _make_kafka_mock()
        consumer = _make_consumer()

        with patch("kafka_gateway.common.consumer.AIOKafkaConsumer", return_value=kafka) as consumer_cls:
            task = asyncio.create_task(consumer.start())
            await asyncio.sleep(0)
            assert consumer.is_running

            await consumer.stop()
            await asyncio.wait_for(task, timeout=2)

        consumer_cls.assert_called_once()
        assert consumer_cls.call_args.args == ("test-topic",)
        kafka.start.assert_awaited_once()
        kafka.stop.assert_awaited_once()
        assert not consumer.is_running

    async def test_stop_without_start(self):
        await _make_consumer().stop()

    async def test_start_failure_is_logged_and_raised(self, caplog):
        kafka = _make_kafka_mock()
        kafka.start.side_effect = ConnectionError("broker down")
        consumer = _make_consumer()

        with patch("kafka_gateway.common.consumer.AIOKafkaConsumer", return_value=kafka):
            with pytest.raises(KafkaError) as exc_info:
                await consumer.start()

        assert isinstance(exc_info.value.cause, ConnectionError)
        assert exc_info.value.context["group_id"] == "test-cg"
        assert "Failed to start message consumer" in caplog.text
        assert not consumer.is_running
        kafka.getmany.assert_not_awaited()
