"""
Store for holdkv.

This module contains the key-value store that coordinates the core
components, and the write buffer behind buffered writes.
"""
from .kvstore import KVStore, BoundTopic
from .buffer import WriteBuffer

__all__ = ["KVStore", "BoundTopic", "WriteBuffer"]
