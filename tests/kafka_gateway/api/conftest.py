"""Fixtures for the HTTP API tests."""

import asyncio

import pytest
from aiohttp.test_utils import TestClient, TestServer

from config.config import ApiConfig
from kafka_gateway.api import create_app


class FakeProducer:
    """Stands in for MessageProducer: records sends and resolves futures immediately."""

    def __init__(self, fail_submit=None, fail_delivery=None, started=True):
        self.calls = []
        self.fail_submit = fail_submit or (lambda index: False)
        self.fail_delivery = fail_delivery or (lambda index: False)
        self.is_started = started

    async def send_async(self, topic, key, value):
        index = len(self.calls) + 1
        self.calls.append((topic, key, value))
        if self.fail_submit(index):
            raise RuntimeError("Broker not available")

        future = asyncio.get_running_loop().create_future()
        if self.fail_delivery(index):
            future.set_exception(ConnectionError("Delivery timed out"))
        else:
            future.set_result((topic, 0, index))
        return future


@pytest.fixture
def producer():
    return FakeProducer()


@pytest.fixture
def api_config():
    return ApiConfig()


@pytest.fixture
async def client(producer, api_config):
    app = create_app(producer, api_config)
    async with TestClient(TestServer(app)) as tc:
        yield tc
