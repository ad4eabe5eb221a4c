"""Prometheus exporter for Kafka Connect task health."""

__version__ = "0.1.0"
