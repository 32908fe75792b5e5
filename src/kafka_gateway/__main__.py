"""
Entry point for the Kafka gateway service.

Usage:
    # Run the HTTP API and the listener
    python -m kafka_gateway

    # Custom config file and port
    python -m kafka_gateway --config /etc/gateway/config.yaml --port 9000

    # HTTP API only
    python -m kafka_gateway --no-listener

    # Expose Prometheus metrics
    python -m kafka_gateway --metrics-port 8000

Architecture:
    HTTP request → normalizer → dispatch coordinator → MessageProducer → Kafka
    Kafka → MessageConsumer → MessageListener (logs each record)
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from aiohttp import web
from dotenv import load_dotenv
from prometheus_client import start_http_server

from config.config import GatewayConfig, load_config
from core.logging.setup import log_service_startup, setup_logging
from core.utils import generate_worker_id
from kafka_gateway.api import create_app
from kafka_gateway.common.producer import MessageProducer
from kafka_gateway.listener import create_listener_consumer

# __main__.py is at src/kafka_gateway/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the Kafka HTTP gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml (default: src/config/config.yaml)",
    )
    parser.add_argument("--host", default=None, help="HTTP bind address (overrides api.host)")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (overrides api.port)")
    parser.add_argument(
        "--no-listener",
        action="store_true",
        help="Do not start the topic listener",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for the Prometheus metrics server (disabled when omitted)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )
    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping file handlers. "
        "Can also be set via LOG_TO_STDOUT environment variable.",
    )
    return parser.parse_args(argv)


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event) -> None:
    """First signal requests a graceful shutdown, a second one cancels all tasks."""

    def handle_signal(sig):
        logger.info("Received signal, initiating graceful shutdown", extra={"signal": sig.name})
        if not shutdown_event.is_set():
            shutdown_event.set()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def _log_listener_exit(task: asyncio.Task) -> None:
    """Done-callback for the listener task; the HTTP API keeps serving."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "Listener stopped with error, HTTP API continues without it",
            extra={"error": str(error)},
            exc_info=error,
        )


async def run_gateway(
    config: GatewayConfig,
    shutdown_event: asyncio.Event,
    enable_listener: bool = True,
) -> None:
    """Run producer, HTTP server and listener until ``shutdown_event`` is set."""
    producer = MessageProducer(config.kafka)
    await producer.start()

    runner = None
    consumer = None
    listener_task = None
    try:
        app = create_app(producer, config.api)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, config.api.host, config.api.port)
        await site.start()
        logger.info(
            "HTTP API listening",
            extra={"port": config.api.port, "http_path": config.api.path_prefix},
        )

        if enable_listener and config.kafka.listener_enabled:
            consumer = create_listener_consumer(config.kafka)
            listener_task = asyncio.create_task(consumer.start(), name="listener")
            listener_task.add_done_callback(_log_listener_exit)
        else:
            logger.info("Listener disabled")

        await shutdown_event.wait()
    finally:
        logger.info("Shutting down gateway")
        if listener_task is not None:
            await consumer.stop()
            listener_task.cancel()
            await asyncio.gather(listener_task, return_exceptions=True)
        if runner is not None:
            await runner.cleanup()
        await producer.stop()


def main(argv: list[str] | None = None) -> None:
    load_dotenv(PROJECT_ROOT / ".env")

    global logger
    args = parse_args(argv)

    log_dir = Path(args.log_dir or os.getenv("LOG_DIR", "logs"))
    json_logs = os.getenv("JSON_LOGS", "true").lower() in ("true", "1", "yes")
    log_to_stdout = args.log_to_stdout or os.getenv("LOG_TO_STDOUT", "false").lower() in (
        "true",
        "1",
        "yes",
    )

    setup_logging(
        name="kafka_gateway",
        stage="gateway",
        log_dir=log_dir,
        json_format=json_logs,
        console_level=getattr(logging, args.log_level),
        worker_id=os.getenv("WORKER_ID") or generate_worker_id("gateway"),
        log_to_stdout=log_to_stdout,
    )
    logger = logging.getLogger(__name__)

    overrides: dict = {}
    if args.host:
        overrides["api"] = {"host": args.host}
    if args.port is not None:
        overrides.setdefault("api", {})["port"] = args.port

    try:
        config = load_config(args.config, overrides=overrides or None)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Invalid configuration", extra={"error": str(e)})
        sys.exit(1)

    enable_listener = not args.no_listener
    log_service_startup(
        logger,
        "Kafka Gateway",
        kafka_bootstrap_servers=config.kafka.bootstrap_servers,
        listener_topics=config.kafka.get_listener_topics() if enable_listener else None,
        consumer_group=config.kafka.get_consumer_group() if enable_listener else None,
        extra_config={
            "HTTP address": f"{config.api.host}:{config.api.port}",
            "Path prefix": config.api.path_prefix,
            "Delivery mode": config.api.delivery_mode,
        },
    )

    if args.metrics_port is not None:
        start_http_server(args.metrics_port)
        logger.info("Metrics server started", extra={"port": args.metrics_port})

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    shutdown_event = asyncio.Event()
    setup_signal_handlers(loop, shutdown_event)

    try:
        loop.run_until_complete(run_gateway(config, shutdown_event, enable_listener))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    except Exception as e:
        logger.error("Fatal error", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)
    finally:
        loop.close()
        logger.info("Gateway shutdown complete")


if __name__ == "__main__":
    main()
