"""Tests for the gateway entry point wiring."""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest

from config.config import ApiConfig, GatewayConfig, KafkaConfig
from kafka_gateway.__main__ import _log_listener_exit, parse_args, run_gateway


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        kafka=KafkaConfig(
            bootstrap_servers="localhost:9092",
            listener={"enabled": True, "topic": "test-topic", "group_id": "test-cg"},
        ),
        api=ApiConfig(host="127.0.0.1", port=18080),
    )


@pytest.fixture
def producer():
    mock = Mock()
    mock.start = AsyncMock()
    mock.stop = AsyncMock()
    return mock


class TestParseArgs:

    def test_defaults(self):
        args = parse_args([])
        assert args.config is None
        assert args.no_listener is False
        assert args.metrics_port is None

    def test_overrides(self):
        args = parse_args(["--port", "9000", "--no-listener", "--log-level", "DEBUG"])
        assert args.port == 9000
        assert args.no_listener is True
        assert args.log_level == "DEBUG"


class TestListenerExit:

    async def test_failed_listener_is_logged(self, caplog):
        async def fail():
            raise ConnectionError("broker down")

        task = asyncio.create_task(fail())
        await asyncio.gather(task, return_exceptions=True)

        with caplog.at_level(logging.ERROR, logger="kafka_gateway.__main__"):
            _log_listener_exit(task)

        assert "Listener stopped with error" in caplog.text
        assert "broker down" in caplog.text

    async def test_cancelled_listener_is_quiet(self, caplog):
        task = asyncio.create_task(asyncio.sleep(10))
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        with caplog.at_level(logging.ERROR, logger="kafka_gateway.__main__"):
            _log_listener_exit(task)

        assert caplog.records == []


class TestRunGateway:

    async def test_producer_stopped_when_http_server_fails(self, gateway_config, producer):
        site = Mock()
        site.start = AsyncMock(side_effect=OSError("address already in use"))

        with (
            patch("kafka_gateway.__main__.MessageProducer", return_value=producer),
            patch("kafka_gateway.__main__.web.TCPSite", return_value=site),
            patch("kafka_gateway.__main__.create_listener_consumer") as create_consumer,
        ):
            with pytest.raises(OSError, match="address already in use"):
                await run_gateway(gateway_config, asyncio.Event())

        producer.start.assert_awaited_once()
        producer.stop.assert_awaited_once()
        create_consumer.assert_not_called()

    async def test_listener_failure_does_not_stop_gateway(self, gateway_config, producer, caplog):
        consumer = Mock()
        consumer.start = AsyncMock(side_effect=ConnectionError("broker down"))
        consumer.stop = AsyncMock()
        runner = Mock()
        runner.setup = AsyncMock()
        runner.cleanup = AsyncMock()
        site = Mock()
        site.start = AsyncMock()
        shutdown_event = asyncio.Event()

        with (
            patch("kafka_gateway.__main__.MessageProducer", return_value=producer),
            patch("kafka_gateway.__main__.web.AppRunner", return_value=runner),
            patch("kafka_gateway.__main__.web.TCPSite", return_value=site),
            patch("kafka_gateway.__main__.create_listener_consumer", return_value=consumer),
            caplog.at_level(logging.ERROR, logger="kafka_gateway.__main__"),
        ):
            gateway = asyncio.create_task(run_gateway(gateway_config, shutdown_event))
            for _ in range(5):
                await asyncio.sleep(0)
            assert not gateway.done()

            shutdown_event.set()
            await asyncio.wait_for(gateway, timeout=2)

        assert "Listener stopped with error" in caplog.text
        consumer.stop.assert_awaited_once()
        runner.cleanup.assert_awaited_once()
        producer.stop.assert_awaited_once()

    async def test_listener_disabled(self, gateway_config, producer):
        runner = Mock()
        runner.setup = AsyncMock()
        runner.cleanup = AsyncMock()
        site = Mock()
        site.start = AsyncMock()
        shutdown_event = asyncio.Event()
        shutdown_event.set()

        with (
            patch("kafka_gateway.__main__.MessageProducer", return_value=producer),
            patch("kafka_gateway.__main__.web.AppRunner", return_value=runner),
            patch("kafka_gateway.__main__.web.TCPSite", return_value=site),
            patch("kafka_gateway.__main__.create_listener_consumer") as create_consumer,
        ):
            await run_gateway(gateway_config, shutdown_event, enable_listener=False)

        create_consumer.assert_not_called()
        runner.cleanup.assert_awaited_once()
        producer.stop.assert_awaited_once()
