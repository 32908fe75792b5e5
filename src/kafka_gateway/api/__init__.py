"""HTTP API: publish endpoints and health probes."""

from kafka_gateway.api.app import create_app

__all__ = ["create_app"]
