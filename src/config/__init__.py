"""Configuration loading for the Kafka gateway.

Configuration is loaded from a single YAML file, ``src/config/config.yaml``
by default, with ``${VAR}`` / ``${VAR:-default}`` environment expansion.

Main Functions
--------------

    - load_config(): Load gateway configuration from a YAML file
    - get_config(): Get or load singleton config instance
    - set_config(): Replace the singleton (tests)
    - reset_config(): Reset singleton config instance

Usage Examples
--------------

    >>> from config import load_config
    >>>
    >>> config = load_config()
    >>> config.kafka.bootstrap_servers
    'localhost:9092'
    >>> config.kafka.get_listener_topics()
    ['test-topic']
    >>> config.api.delivery_mode
    'fire_and_forget'

Configuration Priority
---------------------

1. ``overrides`` passed to load_config()
2. Environment variables referenced from the YAML file
3. YAML configuration file
4. Dataclass defaults
"""

from config.config import (
    ApiConfig,
    GatewayConfig,
    KafkaConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)

__all__ = [
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "KafkaConfig",
    "ApiConfig",
    "GatewayConfig",
]
