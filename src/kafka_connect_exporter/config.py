import json

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_LISTEN_ADDRESS = ":9121"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_CONFIG_FILE = "./config"


class ConfigError(Exception):
    """Raised when the exporter cannot be configured; fatal at startup."""


@dataclass
class Settings:
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    metrics_path: str = DEFAULT_METRICS_PATH
    config_file: str = DEFAULT_CONFIG_FILE
    timeout: float = 5.0
    scrape_timeout: Optional[float] = None
    workers: int = 1
    log_level: str = "INFO"


def load_clusters(path: str) -> Mapping[str, str]:
    """
    Reads the cluster registry: a JSON object mapping cluster name to the
    host:port of its Kafka Connect REST endpoint.
    Returns a read-only mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except ValueError as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must hold a JSON object of cluster name to endpoint")
    for name, endpoint in raw.items():
        if not isinstance(endpoint, str) or not endpoint:
            raise ConfigError(f"Endpoint of cluster {name!r} in {path} must be a non-empty host:port string")

    return MappingProxyType(dict(raw))


def parse_listen_address(address: str) -> tuple[str, int]:
    """Splits host:port; an empty host (e.g. ':9121') listens on all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"Invalid listen address {address!r}, expected host:port")
    if not 1 <= int(port) <= 65535:
        raise ConfigError(f"Invalid listen address {address!r}, port must be between 1 and 65535")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)
