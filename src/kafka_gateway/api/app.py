"""aiohttp application factory for the gateway HTTP API."""

import logging
import time
from datetime import UTC, datetime

from aiohttp import web

from config.config import ApiConfig
from core.logging import generate_request_id, log_context, log_with_context
from kafka_gateway.api.health import setup_health_routes
from kafka_gateway.api.keys import COORDINATOR_KEY, PRODUCER_KEY, STARTED_AT_KEY
from kafka_gateway.api.routes import setup_routes
from kafka_gateway.common.producer import MessageProducer
from kafka_gateway.dispatch.coordinator import DispatchCoordinator

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@web.middleware
async def request_logging_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Assign a request id to the log context and log each request once."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
    start_time = time.perf_counter()

    with log_context(request_id=request_id, stage="api"):
        try:
            response = await handler(request)
        except web.HTTPException as e:
            status = e.status
            raise
        except Exception:
            status = 500
            logger.error(
                "Unhandled error while serving request",
                extra={"http_method": request.method, "http_path": request.path},
                exc_info=True,
            )
            raise
        else:
            status = response.status
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            log_with_context(
                logger,
                logging.INFO,
                f"{request.method} {request.path} {status}",
                http_method=request.method,
                http_path=request.path,
                http_status=status,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )


def create_app(
    producer: MessageProducer,
    api_config: ApiConfig | None = None,
    coordinator: DispatchCoordinator | None = None,
) -> web.Application:
    """Build the application.

    Args:
        producer: Producer used by the publish routes and the readiness probe.
            The caller owns its lifecycle.
        api_config: Path prefix and delivery settings (defaults if omitted).
        coordinator: Override the coordinator built from ``api_config``.
    """
    api_config = api_config or ApiConfig()
    if coordinator is None:
        coordinator = DispatchCoordinator(
            producer,
            delivery_mode=api_config.delivery_mode,
            batch_timeout_seconds=api_config.batch_timeout_seconds,
        )

    app = web.Application(middlewares=[request_logging_middleware])
    app[PRODUCER_KEY] = producer
    app[COORDINATOR_KEY] = coordinator
    app[STARTED_AT_KEY] = datetime.now(UTC)

    setup_routes(app, api_config.path_prefix)
    setup_health_routes(app)
    return app


__all__ = ["create_app", "request_logging_middleware", "REQUEST_ID_HEADER"]
