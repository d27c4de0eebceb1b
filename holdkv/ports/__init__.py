"""
Port interfaces for holdkv.

This module defines the port interfaces (Protocols) between the
store and the storage engine, and between callers and the store.
"""

from .engine import EnginePort, TransactionPort
from .kvstore import KVStorePort

__all__ = ["EnginePort", "TransactionPort", "KVStorePort"]
