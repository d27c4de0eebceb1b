"""
Storage adapters for holdkv.

This module contains the SQLite engine adapter that executes the
statements built by the core.
"""

from .sqlite_engine import SQLiteEngine

__all__ = ["SQLiteEngine"]
