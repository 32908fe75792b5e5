"""
Health check endpoints.

- /health/live: 200 while the process is serving requests
- /health/ready: 200 once the producer is started, 503 otherwise
"""

from datetime import UTC, datetime

from aiohttp import web

from kafka_gateway.api.keys import PRODUCER_KEY, STARTED_AT_KEY


async def handle_liveness(request: web.Request) -> web.Response:
    uptime_seconds = (datetime.now(UTC) - request.app[STARTED_AT_KEY]).total_seconds()
    return web.json_response(
        {
            "status": "alive",
            "uptime_seconds": int(uptime_seconds),
            "timestamp": datetime.now(UTC).isoformat(),
        },
        status=200,
    )


async def handle_readiness(request: web.Request) -> web.Response:
    producer_started = request.app[PRODUCER_KEY].is_started
    checks = {"producer_started": producer_started}

    if producer_started:
        return web.json_response(
            {
                "status": "ready",
                "checks": checks,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200,
        )

    return web.json_response(
        {
            "status": "not_ready",
            "reasons": ["producer_not_started"],
            "checks": checks,
            "timestamp": datetime.now(UTC).isoformat(),
        },
        status=503,
    )


def setup_health_routes(app: web.Application) -> None:
    app.router.add_get("/health/live", handle_liveness)
    app.router.add_get("/health/ready", handle_readiness)
