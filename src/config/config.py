"""Pipeline configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Shared Kafka connection settings and producer defaults
- Backfill job (Bulk Exporter) settings
- Fan-out service settings
- Logging settings

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax in YAML files. The packaged config.yaml maps
every setting to the environment variable the deployed job or service
sets, so in production the YAML file is only a template.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"
CONFIG_PATH_ENV = "TMDB_PIPELINE_CONFIG"

DEFAULT_EXPORT_HOST = "http://files.tmdb.org"
DEFAULT_EXPORT_TYPES = [
    "movie",
    "tv_series",
    "person",
    "collection",
    "tv_network",
    "keyword",
    "production_company",
]
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT_SECONDS = 10


def load_yaml(path: Path) -> dict[str, Any]:
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
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _positive_int(value: Any, default: int) -> int:
    """Parse a positive integer, falling back to ``default`` when missing, unparsable or zero."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _as_list(value: Any, default: list[str]) -> list[str]:
    if value is None or value == "":
        return list(default)
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item) for item in value]


@dataclass
class KafkaConfig:
    """Kafka connection and producer settings shared by both processes.

    All timing values in milliseconds unless otherwise noted.
    """

    bootstrap_servers: str = ""
    security_protocol: str = "PLAINTEXT"
    sasl_mechanism: str = "PLAIN"
    sasl_plain_username: str = ""
    sasl_plain_password: str = ""
    request_timeout_ms: int = 120000  # 2 minutes
    metadata_max_age_ms: int = 300000  # 5 minutes
    connections_max_idle_ms: int = 540000  # 9 minutes
    producer_defaults: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KafkaConfig":
        connection = data.get("connection", {}) or {}
        return cls(
            bootstrap_servers=connection.get("bootstrap_servers", "") or "",
            security_protocol=connection.get("security_protocol", "PLAINTEXT") or "PLAINTEXT",
            sasl_mechanism=connection.get("sasl_mechanism", "PLAIN") or "PLAIN",
            sasl_plain_username=connection.get("sasl_plain_username", "") or "",
            sasl_plain_password=connection.get("sasl_plain_password", "") or "",
            request_timeout_ms=_positive_int(connection.get("request_timeout_ms"), 120000),
            metadata_max_age_ms=_positive_int(connection.get("metadata_max_age_ms"), 300000),
            connections_max_idle_ms=_positive_int(connection.get("connections_max_idle_ms"), 540000),
            producer_defaults=data.get("producer_defaults", {}) or {},
        )

    def get_producer_config(self, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """Producer defaults merged with process-specific overrides."""
        result = self.producer_defaults.copy()
        result.update(overrides or {})
        return result

    def validate(self) -> None:
        if not self.bootstrap_servers:
            raise ConfigurationError("kafka.connection.bootstrap_servers is required")

        valid_protocols = ["PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"]
        if self.security_protocol not in valid_protocols:
            raise ConfigurationError(
                f"kafka.connection.security_protocol must be one of {valid_protocols}, "
                f"got '{self.security_protocol}'"
            )

        if self.security_protocol.startswith("SASL"):
            valid_mechanisms = ["PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512"]
            if self.sasl_mechanism not in valid_mechanisms:
                raise ConfigurationError(
                    f"kafka.connection.sasl_mechanism must be one of {valid_mechanisms}, "
                    f"got '{self.sasl_mechanism}'"
                )
            if not self.sasl_plain_username or not self.sasl_plain_password:
                raise ConfigurationError(
                    "SASL username and password are required when security_protocol is SASL"
                )

        acks = self.producer_defaults.get("acks")
        if acks is not None and acks not in ["0", "1", "all", 0, 1]:
            raise ConfigurationError(f"producer_defaults.acks must be 0, 1 or 'all', got '{acks}'")


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"

    @property
    def json_format(self) -> bool:
        return self.format.lower() != "console"


@dataclass
class BackfillConfig:
    """Settings for the daily Bulk Exporter job."""

    kafka: KafkaConfig
    api_key: str = ""
    export_host: str = DEFAULT_EXPORT_HOST
    bucket_mount_path: str = ""
    export_date: str = ""
    topic: str = ""
    task_index: str = "0"
    task_attempt: str = "0"
    export_types: list[str] = field(default_factory=lambda: list(DEFAULT_EXPORT_TYPES))
    sock_read_timeout_seconds: int = 60
    producer: dict[str, Any] = field(default_factory=dict)
    log: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.kafka.validate()
        if not self.api_key:
            raise ConfigurationError("API_KEY is required")
        if not self.bucket_mount_path:
            raise ConfigurationError("BUCKET_MOUNT_PATH is required")
        if not self.topic:
            raise ConfigurationError("backfill topic (PUBSUB_TOPIC_ID) is required")
        if not self.export_host.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"EXPORT_HOST must start with http:// or https://, got: {self.export_host!r}"
            )
        if not self.export_types:
            raise ConfigurationError("At least one export type is required")


@dataclass
class FanoutConfig:
    """Settings for the Detail Fan-out HTTP service."""

    kafka: KafkaConfig
    api_key: str = ""
    port: int = DEFAULT_PORT
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    endpoint_list: str = ""
    topic_schema: str = ""
    topic: str = ""
    fetch_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    producer: dict[str, Any] = field(default_factory=dict)
    log: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.kafka.validate()
        if not self.api_key:
            raise ConfigurationError("API_KEY is required")
        if not self.endpoint_list:
            raise ConfigurationError("API_ENDPOINT_LIST is required")
        if not self.topic:
            raise ConfigurationError("fan-out topic (PUBSUB_TOPIC_ID) is required")


def _load_raw(
    config_path: Path | None,
    overrides: dict[str, Any] | None,
) -> dict[str, Any]:
    if config_path is None:
        env_path = os.getenv(CONFIG_PATH_ENV)
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    logger.debug(f"Loading configuration from file: {config_path}")
    try:
        yaml_data = load_yaml(config_path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}", cause=e) from e

    yaml_data = _expand_env_vars(yaml_data)
    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        yaml_data = _deep_merge(yaml_data, overrides)
    return yaml_data


def _logging_from(data: dict[str, Any]) -> LoggingConfig:
    section = data.get("logging", {}) or {}
    return LoggingConfig(
        level=str(section.get("level") or "INFO"),
        format=str(section.get("format") or "json"),
    )


def load_backfill_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> BackfillConfig:
    """Load the Bulk Exporter configuration (``backfill:`` section)."""
    data = _load_raw(config_path, overrides)
    section = data.get("backfill", {}) or {}

    return BackfillConfig(
        kafka=KafkaConfig.from_dict(data.get("kafka", {}) or {}),
        api_key=section.get("api_key", "") or "",
        export_host=(section.get("export_host") or DEFAULT_EXPORT_HOST).rstrip("/"),
        bucket_mount_path=section.get("bucket_mount_path", "") or "",
        export_date=(section.get("export_date") or "").strip(),
        topic=section.get("topic", "") or "",
        task_index=str(section.get("task_index") or "0"),
        task_attempt=str(section.get("task_attempt") or "0"),
        export_types=_as_list(section.get("export_types"), DEFAULT_EXPORT_TYPES),
        sock_read_timeout_seconds=_positive_int(section.get("sock_read_timeout_seconds"), 60),
        producer=section.get("producer", {}) or {},
        log=_logging_from(data),
    )


def load_fanout_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> FanoutConfig:
    """Load the Detail Fan-out service configuration (``fanout:`` section)."""
    data = _load_raw(config_path, overrides)
    section = data.get("fanout", {}) or {}
    timeout_seconds = _positive_int(section.get("timeout_seconds"), DEFAULT_TIMEOUT_SECONDS)

    return FanoutConfig(
        kafka=KafkaConfig.from_dict(data.get("kafka", {}) or {}),
        api_key=section.get("api_key", "") or "",
        port=_positive_int(section.get("port"), DEFAULT_PORT),
        timeout_seconds=timeout_seconds,
        endpoint_list=(section.get("endpoint_list") or "").strip(),
        topic_schema=(section.get("topic_schema") or "").strip(),
        topic=section.get("topic", "") or "",
        fetch_timeout_seconds=_positive_int(section.get("fetch_timeout_seconds"), timeout_seconds),
        producer=section.get("producer", {}) or {},
        log=_logging_from(data),
    )
