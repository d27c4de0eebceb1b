"""
Core models and pure functions for holdkv.

This module contains the key codec, value codec, statement builder and
domain models, none of which perform I/O. The schema registry and TTL
manager live in ``holdkv.core.schema`` and ``holdkv.core.ttl``.
"""

from .errors import (
    HoldKVError, InvalidTopicError, InvalidKeyError, SchemaConflictError,
    SerializationError, EngineError, ConstraintViolationError, BufferFlushError,
)
from .models import PreparedStatement, TopicSchema, WriteResult, Record
from .keys import split_key, join_key, validate_topic, WILDCARD, DELIMITER
from .codec import encode, decode, CallableSource

__all__ = [
    "HoldKVError", "InvalidTopicError", "InvalidKeyError", "SchemaConflictError",
    "SerializationError", "EngineError", "ConstraintViolationError", "BufferFlushError",
    "PreparedStatement", "TopicSchema", "WriteResult", "Record",
    "split_key", "join_key", "validate_topic", "WILDCARD", "DELIMITER",
    "encode", "decode", "CallableSource",
]
