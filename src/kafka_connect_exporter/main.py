import sys
import logging
import argparse

from prometheus_client import CollectorRegistry

from kafka_connect_exporter.collector import ConnectCollector
from kafka_connect_exporter.config import (
    ConfigError,
    Settings,
    load_clusters,
    parse_listen_address,
    DEFAULT_CONFIG_FILE,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_METRICS_PATH,
)
from kafka_connect_exporter.connect_fetcher import ConnectFetcher, DEFAULT_TIMEOUT
from kafka_connect_exporter.exporter import create_app


# -----------------------------
# CLI arguments
# -----------------------------
def positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a number")
    if not number > 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be greater than 0")
    return number


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"{value!r} must be at least 1")
    return number


def telemetry_path(value: str) -> str:
    """The metrics path must be absolute and must not shadow the landing page."""
    if not value.startswith("/"):
        raise argparse.ArgumentTypeError(f"{value!r} must start with '/'")
    if value == "/":
        raise argparse.ArgumentTypeError("'/' is reserved for the landing page")
    return value


def parse_args(argv=None) -> Settings:
    parser = argparse.ArgumentParser(description="Prometheus exporter for Kafka Connect task health.")
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=DEFAULT_LISTEN_ADDRESS,
        help=f"Address to listen on for web interface and telemetry (default: {DEFAULT_LISTEN_ADDRESS})",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="metrics_path",
        type=telemetry_path,
        default=DEFAULT_METRICS_PATH,
        help=f"Path under which to expose metrics (default: {DEFAULT_METRICS_PATH})",
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        default=DEFAULT_CONFIG_FILE,
        help=f"Config file location (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=DEFAULT_TIMEOUT,
        help=f"Timeout in seconds of each request to Kafka Connect (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--scrape-timeout",
        type=positive_float,
        default=None,
        help="Upper bound in seconds for a whole collection cycle (default: unbounded)",
    )
    parser.add_argument(
        "--workers",
        type=positive_int,
        default=1,
        help="Number of clusters collected in parallel during a scrape (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args(argv)
    return Settings(**vars(args))


def build_registry(settings: Settings) -> CollectorRegistry:
    """Loads the cluster registry and registers the collector on a dedicated registry."""
    clusters = load_clusters(settings.config_file)
    logging.info(f"[Exporter] Loaded {len(clusters)} clusters from {settings.config_file}: {list(clusters.keys())}")

    collector = ConnectCollector(
        clusters,
        fetcher=ConnectFetcher(timeout=settings.timeout),
        workers=settings.workers,
        scrape_timeout=settings.scrape_timeout,
    )
    # A dedicated registry keeps the default process and platform collectors out.
    registry = CollectorRegistry()
    registry.register(collector)
    return registry


# -----------------------------
# Main entry
# -----------------------------
def main(argv=None):
    settings = parse_args(argv)
    logging.basicConfig(level=settings.log_level, format='[%(asctime)s] [%(levelname)s]: %(message)s')

    try:
        host, port = parse_listen_address(settings.listen_address)
        registry = build_registry(settings)
    except ConfigError as e:
        logging.error(f"[Exporter] {e}")
        sys.exit(1)

    app = create_app(registry, settings.metrics_path)
    logging.info(f"[Exporter] Providing metrics at {settings.listen_address}{settings.metrics_path}")
    app.run(host=host, port=port, threaded=True)


if __name__ == "__main__":
    main()
