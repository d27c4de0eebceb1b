"""
Observability for holdkv.

This module exposes the loguru logging setup and the
Prometheus metrics used across the store.
"""

from .logging_setup import setup_logging_dev, get_logger, with_context

__all__ = ["setup_logging_dev", "get_logger", "with_context"]
