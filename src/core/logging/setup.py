"""Logging setup for the gateway process."""

import logging
import secrets
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

# aiokafka logs every reconnect and aiohttp.access duplicates the request middleware
NOISY_LOGGERS = ("aiokafka", "aiohttp.access")


def get_log_file_path(log_dir: Path, name: str = "gateway", stage: str | None = None) -> Path:
    """``{log_dir}/{YYYY-MM-DD}/{name}[_{stage}]_{MMDD}_{HHMM}.log``"""
    now = datetime.now()
    stem = f"{name}_{stage}" if stage else name
    return log_dir / now.strftime("%Y-%m-%d") / f"{stem}_{now.strftime('%m%d_%H%M')}.log"


def archiving_file_handler(log_file: Path, archive_dir: Path) -> TimedRotatingFileHandler:
    """Midnight-rotating handler whose rotated files land in ``archive_dir``."""
    archive_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(log_file, when="midnight", encoding="utf-8")
    handler.namer = lambda default_name: str(archive_dir / Path(default_name).name)
    return handler


def setup_logging(
    name: str = "gateway",
    stage: str | None = None,
    log_dir: Path = Path("logs"),
    json_format: bool = True,
    console_level: int = logging.INFO,
    worker_id: str | None = None,
    log_to_stdout: bool = False,
) -> logging.Logger:
    """
    Configure the root logger.

    By default the console gets ``console_level`` and above while a daily
    rotated file under ``log_dir`` gets everything, as JSON lines unless
    ``json_format`` is False. Rotated files move to ``log_dir/archive/<date>``.
    With ``log_to_stdout`` the console handler is the only handler and logs
    at DEBUG, for containers that collect stdout.

    ``stage`` and ``worker_id`` are added to the log context of every record.
    """
    set_log_context(stage=stage, worker_id=worker_id)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(ConsoleFormatter())
    console.setLevel(logging.DEBUG if log_to_stdout else console_level)
    root.addHandler(console)

    log_file = None
    if not log_to_stdout:
        log_file = get_log_file_path(log_dir, name=name, stage=stage)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = archiving_file_handler(log_file, log_dir / "archive" / log_file.parent.name)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter()
            if json_format
            else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(f"Logging initialized: {log_file or 'stdout'}")
    return logger


def log_service_startup(
    logger: logging.Logger,
    service_name: str,
    kafka_bootstrap_servers: str,
    listener_topics: list[str] | None = None,
    consumer_group: str | None = None,
    extra_config: dict | None = None,
) -> None:
    """Log a startup banner with the Kafka settings the process will use."""
    logger.info("=" * 70)
    logger.info("Starting %s", service_name)
    logger.info("=" * 70)
    logger.info("Kafka bootstrap servers: %s", kafka_bootstrap_servers)
    if listener_topics:
        logger.info("Listener topics: %s", ", ".join(listener_topics))
    if consumer_group:
        logger.info("Consumer group: %s", consumer_group)
    for key, value in (extra_config or {}).items():
        logger.info("%s: %s", key, value)
    logger.info("=" * 70)


def generate_request_id() -> str:
    """``r-YYYYMMDD-HHMMSS-xxxxxx`` with a random hex suffix."""
    return f"r-{datetime.now():%Y%m%d-%H%M%S}-{secrets.token_hex(3)}"
