"""Kafka gateway configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Kafka connection settings and producer/consumer defaults
- Listener topic and consumer group
- HTTP API settings and dispatch delivery mode

Environment variables ARE supported using ${VAR_NAME} and ${VAR_NAME:-default}
syntax in YAML files.
"""

import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DELIVERY_MODES = ["fire_and_forget", "confirmed"]


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _as_bool(value: Any) -> bool:
    """Interpret YAML booleans and env-expanded strings ("true", "0", "no")."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"


@dataclass
class KafkaConfig:
    """Kafka connection, client defaults and listener configuration.

    Configuration structure:
        kafka:
          connection: {...}           # Shared connection settings
          consumer_defaults: {...}    # Consumer settings (listener)
          producer_defaults: {...}    # Producer settings (publish endpoints)
          listener:
            enabled: true
            topics: [...]
            group_id: ...

    All timing values in milliseconds unless otherwise noted.
    """

    # =========================================================================
    # CONNECTION SETTINGS (shared by producer and consumer)
    # =========================================================================
    bootstrap_servers: str = ""
    security_protocol: str = "PLAINTEXT"
    sasl_mechanism: str = "PLAIN"
    sasl_plain_username: str = ""
    sasl_plain_password: str = ""
    sasl_kerberos_service_name: str = "kafka"
    request_timeout_ms: int = 30000
    metadata_max_age_ms: int = 300000  # 5 minutes
    connections_max_idle_ms: int = 540000  # 9 minutes

    # =========================================================================
    # CLIENT DEFAULTS
    # =========================================================================
    consumer_defaults: Dict[str, Any] = field(default_factory=dict)
    producer_defaults: Dict[str, Any] = field(default_factory=dict)

    # =========================================================================
    # LISTENER
    # =========================================================================
    listener: Dict[str, Any] = field(default_factory=dict)

    def get_producer_config(self) -> Dict[str, Any]:
        return self.producer_defaults.copy()

    def get_consumer_config(self) -> Dict[str, Any]:
        """Get consumer settings, with listener overrides applied on top of defaults."""
        result = self.consumer_defaults.copy()
        result.update(self.listener.get("consumer", {}))
        return result

    @property
    def listener_enabled(self) -> bool:
        return _as_bool(self.listener.get("enabled", True)) and bool(self.get_listener_topics())

    def get_listener_topics(self) -> List[str]:
        topics = self.listener.get("topics")
        if topics is None:
            topic = self.listener.get("topic")
            topics = [topic] if topic else []
        elif isinstance(topics, str):
            topics = [t.strip() for t in topics.split(",")]
        return [t for t in topics if t]

    def get_consumer_group(self) -> str:
        return self.listener.get("group_id") or "kafka-gateway-listener"

    def validate(self) -> None:
        """Validate configuration for correctness and constraints.

        Checks required fields, Kafka timeout constraints, and enum values.
        """
        if not self.bootstrap_servers:
            raise ValueError("bootstrap_servers is required in kafka.connection section")

        self._validate_enum(
            {"security_protocol": self.security_protocol},
            "security_protocol",
            ["PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"],
            "kafka.connection",
        )
        self._validate_consumer_settings(self.consumer_defaults, "consumer_defaults")
        self._validate_consumer_settings(self.listener.get("consumer", {}), "listener.consumer")
        self._validate_producer_settings(self.producer_defaults, "producer_defaults")

    @staticmethod
    def _validate_enum(
        settings: Dict[str, Any],
        key: str,
        valid_values: List[Any],
        context: str
    ) -> None:
        """Validate that a setting's value is in a list of valid values."""
        if key in settings and settings[key] not in valid_values:
            raise ValueError(
                f"{context}: {key} must be one of {valid_values}, "
                f"got '{settings[key]}'"
            )

    @staticmethod
    def _validate_min(
        settings: Dict[str, Any],
        key: str,
        min_value: float,
        context: str
    ) -> None:
        """Validate that a setting's value meets an inclusive minimum."""
        if key in settings and settings[key] < min_value:
            raise ValueError(
                f"{context}: {key} must be >= {min_value}, got {settings[key]}"
            )

    def _validate_consumer_settings(self, settings: Dict[str, Any], context: str) -> None:
        """Validate consumer settings against Kafka requirements and logical constraints."""
        if "heartbeat_interval_ms" in settings and "session_timeout_ms" in settings:
            heartbeat = settings["heartbeat_interval_ms"]
            session_timeout = settings["session_timeout_ms"]
            if heartbeat >= session_timeout / 3:
                raise ValueError(
                    f"{context}: heartbeat_interval_ms ({heartbeat}) must be < "
                    f"session_timeout_ms/3 ({session_timeout/3:.0f}). "
                    f"Recommended: heartbeat_interval_ms <= {session_timeout // 3}"
                )

        if "session_timeout_ms" in settings and "max_poll_interval_ms" in settings:
            session_timeout = settings["session_timeout_ms"]
            max_poll_interval = settings["max_poll_interval_ms"]
            if session_timeout >= max_poll_interval:
                raise ValueError(
                    f"{context}: session_timeout_ms ({session_timeout}) must be < "
                    f"max_poll_interval_ms ({max_poll_interval})"
                )

        self._validate_min(settings, "max_poll_records", 1, context=context)
        self._validate_enum(settings, "auto_offset_reset", ["earliest", "latest", "none"], context)

    def _validate_producer_settings(self, settings: Dict[str, Any], context: str) -> None:
        self._validate_enum(settings, "acks", ["0", "1", "all", 0, 1], context)
        self._validate_enum(settings, "compression_type", ["none", "gzip", "snappy", "lz4", "zstd"], context)
        self._validate_min(settings, "batch_size", 0, context=context)
        self._validate_min(settings, "linger_ms", 0, context=context)
        self._validate_min(settings, "retry_backoff_ms", 0, context=context)


@dataclass
class ApiConfig:
    """HTTP API settings.

    ``delivery_mode`` selects how the dispatch coordinator counts successes:
    ``fire_and_forget`` counts accepted submissions, ``confirmed`` waits for
    broker acknowledgment (bounded by ``batch_timeout_seconds``).
    """

    host: str = "0.0.0.0"
    port: int = 8080
    path_prefix: str = "/api/kafka"
    delivery_mode: str = "fire_and_forget"
    batch_timeout_seconds: float = 30.0

    def validate(self) -> None:
        if not (0 <= self.port <= 65535):
            raise ValueError(f"api: port must be between 0 and 65535, got {self.port}")
        if not self.path_prefix.startswith("/") or self.path_prefix.endswith("/"):
            raise ValueError(
                f"api: path_prefix must start with '/' and not end with '/', got '{self.path_prefix}'"
            )
        if self.delivery_mode not in DELIVERY_MODES:
            raise ValueError(
                f"api: delivery_mode must be one of {DELIVERY_MODES}, got '{self.delivery_mode}'"
            )
        if self.batch_timeout_seconds <= 0:
            raise ValueError(
                f"api: batch_timeout_seconds must be > 0, got {self.batch_timeout_seconds}"
            )


@dataclass
class GatewayConfig:
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    def validate(self) -> None:
        self.kafka.validate()
        self.api.validate()


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> GatewayConfig:
    """Load gateway configuration from config.yaml file.

    ``overrides`` is deep-merged over the file contents (top-level keys
    ``kafka`` and ``api``) before the dataclasses are built and validated.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n" f"Expected file: config/config.yaml"
        )

    logger.info(f"Loading configuration from file: {config_path}")
    yaml_data = _expand_env_vars(load_yaml(config_path))

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        yaml_data = _deep_merge(yaml_data, overrides)

    if "kafka" not in yaml_data:
        raise ValueError(
            "Invalid config file: missing 'kafka:' section\n"
            "See src/config/config.yaml for correct structure"
        )

    kafka_section = yaml_data["kafka"] or {}
    connection = kafka_section.get("connection", {})
    api_section = yaml_data.get("api", {}) or {}

    kafka_config = KafkaConfig(
        bootstrap_servers=connection.get("bootstrap_servers", ""),
        security_protocol=connection.get("security_protocol", "PLAINTEXT"),
        sasl_mechanism=connection.get("sasl_mechanism", "PLAIN"),
        sasl_plain_username=connection.get("sasl_plain_username", ""),
        sasl_plain_password=connection.get("sasl_plain_password", ""),
        sasl_kerberos_service_name=connection.get("sasl_kerberos_service_name", "kafka"),
        request_timeout_ms=int(connection.get("request_timeout_ms", 30000)),
        metadata_max_age_ms=int(connection.get("metadata_max_age_ms", 300000)),
        connections_max_idle_ms=int(connection.get("connections_max_idle_ms", 540000)),
        consumer_defaults=kafka_section.get("consumer_defaults", {}) or {},
        producer_defaults=kafka_section.get("producer_defaults", {}) or {},
        listener=kafka_section.get("listener", {}) or {},
    )

    api_config = ApiConfig(
        host=api_section.get("host", "0.0.0.0"),
        port=int(api_section.get("port", 8080)),
        path_prefix=api_section.get("path_prefix", "/api/kafka"),
        delivery_mode=api_section.get("delivery_mode", "fire_and_forget"),
        batch_timeout_seconds=float(api_section.get("batch_timeout_seconds", 30.0)),
    )

    config = GatewayConfig(kafka=kafka_config, api=api_config)

    logger.debug("Configuration loaded successfully:")
    logger.debug(f"  - Bootstrap servers: {kafka_config.bootstrap_servers}")
    logger.debug(f"  - Listener topics: {kafka_config.get_listener_topics()}")
    logger.debug(f"  - Delivery mode: {api_config.delivery_mode}")

    config.validate()
    logger.debug("Configuration validation passed")

    return config


_gateway_config: Optional[GatewayConfig] = None


def get_config() -> GatewayConfig:
    """Get or load the singleton gateway config instance."""
    global _gateway_config
    if _gateway_config is None:
        _gateway_config = load_config()
    return _gateway_config


def set_config(config: GatewayConfig) -> None:
    """Set the singleton gateway config instance (useful for testing)."""
    global _gateway_config
    _gateway_config = config


def reset_config() -> None:
    """Reset the singleton config instance (forces reload on next get_config() call)."""
    global _gateway_config
    _gateway_config = None


def _cli_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for config validation and debugging."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Kafka Gateway Configuration Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate configuration
  python -m config.config --validate

  # Show merged configuration
  python -m config.config --show-merged

  # Use custom config file, JSON output for automation
  python -m config.config --config /path/to/config.yaml --validate --json
        """,
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration structure and completeness",
    )
    parser.add_argument(
        "--show-merged",
        action="store_true",
        help="Display configuration with environment variables expanded",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.yaml file (default: src/config/config.yaml)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format instead of human-readable",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    if not args.validate and not args.show_merged:
        parser.print_help()
        return 0

    try:
        config = load_config(config_path=args.config)
        config_dict = _expand_env_vars(load_yaml(args.config or DEFAULT_CONFIG_FILE))
        output = {}

        if args.validate:
            # Validation happens during load_config(), if we got here it passed
            if args.json:
                output["validation"] = {"passed": True, "errors": []}
            else:
                print("✓ Configuration validation passed")
                print(f"  - Bootstrap servers: {config.kafka.bootstrap_servers}")
                print(f"  - Listener: {'enabled' if config.kafka.listener_enabled else 'disabled'}")
                print(f"  - Delivery mode: {config.api.delivery_mode}")

        if args.show_merged:
            if args.json:
                output["merged_config"] = config_dict
            else:
                print("\nConfiguration:")
                print("=" * 80)
                print(yaml.dump(config_dict, default_flow_style=False, sort_keys=False))
                print("=" * 80)

        if args.json:
            print(json.dumps(output, indent=2))

        return 0

    except FileNotFoundError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Validation error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(_cli_main())
