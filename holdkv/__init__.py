"""
holdkv: a key-value store on top of SQLite.

Keys are ``:``-delimited composite keys mapped onto positional columns
of one table per topic, with wildcard lookups, per-record TTL, and
bulk/buffered writes.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from .core.errors import (
    HoldKVError, InvalidTopicError, InvalidKeyError, SchemaConflictError,
    SerializationError, EngineError, ConstraintViolationError, BufferFlushError,
)
from .core.codec import CallableSource
from .core.models import PreparedStatement, WriteResult, Record
from .observability.logging_setup import setup_logging_dev
from .settings import StoreSettings, build_settings
from .store import KVStore, BoundTopic, WriteBuffer
from .store.buffer import ErrorCallback

__version__ = "0.1.0"


def create_store(*,
                 clock: Optional[Callable[[], int]] = None,
                 on_flush_error: Optional[ErrorCallback] = None,
                 configure_logging: bool = False,
                 **options) -> KVStore:
    """
    저장소를 만듭니다. 연결은 첫 작업 시 열립니다.

    Args:
        clock: 현재 시각(epoch ms) 함수
        on_flush_error: 타이머 플러시 실패 콜백
        configure_logging: True이면 settings.log_level로 loguru 콘솔 출력 설정
        **options: StoreSettings 필드 (location, enable_wal, turbo,
            buffer_threshold, buffer_timeout, expose_connection, log_level)
    """
    settings = build_settings(**options)
    if configure_logging:
        setup_logging_dev(settings.log_level)
    return KVStore(settings, clock=clock, on_flush_error=on_flush_error)


@asynccontextmanager
async def open_store(**options) -> AsyncIterator[KVStore]:
    """``async with open_store() as store:`` 형태로 열고 닫습니다."""
    store = create_store(**options)
    await store.open()
    try:
        yield store
    finally:
        await store.close()


__all__ = [
    "create_store", "open_store", "KVStore", "BoundTopic", "WriteBuffer",
    "StoreSettings", "build_settings", "PreparedStatement", "WriteResult", "Record",
    "CallableSource", "HoldKVError", "InvalidTopicError", "InvalidKeyError",
    "SchemaConflictError", "SerializationError", "EngineError",
    "ConstraintViolationError", "BufferFlushError",
]
