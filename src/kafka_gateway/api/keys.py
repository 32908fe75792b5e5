"""Typed application keys shared by the API modules."""

from datetime import datetime

from aiohttp import web

from kafka_gateway.common.producer import MessageProducer
from kafka_gateway.dispatch.coordinator import DispatchCoordinator

PRODUCER_KEY = web.AppKey("producer", MessageProducer)
COORDINATOR_KEY = web.AppKey("coordinator", DispatchCoordinator)
STARTED_AT_KEY = web.AppKey("started_at", datetime)
