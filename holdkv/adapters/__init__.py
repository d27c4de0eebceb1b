"""
Adapters for holdkv.

This module contains the concrete implementations of port interfaces
that handle external I/O and infrastructure concerns.
"""

from .storage import SQLiteEngine

__all__ = ["SQLiteEngine"]
