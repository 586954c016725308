"""Configuration module — frozen dataclass from defaults, an optional YAML file, and env vars."""

import logging
import os
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

# field name -> environment variable
ENV_VARS = {
    "bind": "GELF_BIND",
    "port": "GELF_PORT",
    "buffer_size": "GELF_BUFFER_SIZE",
    "tag": "GELF_TAG",
    "trust_client_timestamp": "GELF_TRUST_CLIENT_TIMESTAMP",
    "client_timestamp_to_i": "GELF_CLIENT_TIMESTAMP_TO_I",
    "remove_timestamp_record": "GELF_REMOVE_TIMESTAMP_RECORD",
    "strip_leading_underscore": "GELF_STRIP_LEADING_UNDERSCORE",
    "require_short_message": "GELF_REQUIRE_SHORT_MESSAGE",
    "output_dir": "GELF_OUTPUT_DIR",
    "output_filename": "GELF_OUTPUT_FILENAME",
    "flush_count": "GELF_FLUSH_COUNT",
    "flush_timeout_sec": "GELF_FLUSH_TIMEOUT_SEC",
    "max_drops": "GELF_MAX_DROPS",
    "dashboard_port": "GELF_DASHBOARD_PORT",
}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    bind: str = "0.0.0.0"
    port: int = 12201
    buffer_size: int = 65536
    tag: str = "gelf"
    trust_client_timestamp: bool = True
    client_timestamp_to_i: bool = False
    remove_timestamp_record: bool = True
    strip_leading_underscore: bool = True
    require_short_message: bool = False
    output_dir: str = "./events"
    output_filename: str = "gelf.jsonl"
    flush_count: int = 100
    flush_timeout_sec: int = 5
    max_drops: int = 100
    dashboard_port: int = 8080

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if not 0 <= self.dashboard_port <= 65535:
            raise ValueError(f"dashboard_port must be between 0 and 65535, got {self.dashboard_port}")
        if not self.tag:
            raise ValueError("tag must not be empty")
        for name in ("buffer_size", "flush_count", "flush_timeout_sec", "max_drops"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _coerce(field_type, value):
    if field_type is bool:
        return _parse_bool(value)
    if field_type is int:
        return int(value)
    return str(value)


def load_config(path: str | None = None) -> Config:
    """Build Config: dataclass defaults, then YAML file, then environment variables."""
    yaml_data = load_yaml_config(path or os.environ.get("GELF_CONFIG"))

    unknown = set(yaml_data) - set(ENV_VARS)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

    values = {}
    for f in fields(Config):
        field_type = type(f.default)
        if f.name in yaml_data:
            values[f.name] = _coerce(field_type, yaml_data[f.name])
        env_value = os.environ.get(ENV_VARS[f.name])
        if env_value is not None:
            values[f.name] = _coerce(field_type, env_value)

    return Config(**values)
