"""Scrapers that turn MySQL-compatible server status into Prometheus-style metrics."""

__version__ = "0.1.0"