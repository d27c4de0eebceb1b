"""
SQLite engine adapter for holdkv.

This module implements the engine port on top of a single aiosqlite
connection. All statements and transactions are serialized through one
asyncio lock, so only one write transaction is ever in flight.
"""

import asyncio
import aiosqlite
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar
from holdkv.core.errors import ConstraintViolationError, EngineError
from holdkv.core.models import WriteResult
from holdkv.observability.logging_setup import get_logger
from holdkv.settings import MEMORY_LOCATION

log = get_logger("holdkv.engine")

T = TypeVar("T")

# 파일 DB에서 WAL 활성화 시 적용하는 PRAGMA
WAL_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = OFF",
    "PRAGMA page_size = 65536",
)

class _Transaction:
    """트랜잭션 핸들 (잠금을 이미 보유한 상태에서만 사용)"""

    def __init__(self, engine: "SQLiteEngine"):
        self._engine = engine

    async def execute(self, sql: str, values: Sequence[Any] = ()) -> int:
        return (await self._engine._run(sql, values)).changes

    async def write(self, sql: str, values: Sequence[Any] = ()) -> WriteResult:
        return await self._engine._run(sql, values)

    async def query(self, sql: str, values: Sequence[Any] = ()) -> List[aiosqlite.Row]:
        return await self._engine._fetch(sql, values)

class SQLiteEngine:
    """aiosqlite 기반 스토리지 엔진"""

    def __init__(self, location: str = MEMORY_LOCATION, enable_wal: bool = True):
        """
        초기화합니다.

        Args:
            location: SQLite 데이터베이스 파일 경로 또는 ":memory:"
            enable_wal: WAL 모드 사용 여부 (메모리 DB에서는 무시)
        """
        self.location = location
        self.enable_wal = enable_wal
        self._db: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._db is None:
            raise EngineError("engine is not open")
        return self._db

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> "SQLiteEngine":
        """연결을 열고 PRAGMA를 적용합니다."""
        if self._db is not None:
            return self
        try:
            # 트랜잭션은 BEGIN/COMMIT으로 직접 관리
            self._db = await aiosqlite.connect(self.location, isolation_level=None)
            self._db.row_factory = aiosqlite.Row
            if self.enable_wal and self.location != MEMORY_LOCATION:
                for pragma in WAL_PRAGMAS:
                    await self._db.execute(pragma)
        except aiosqlite.Error as e:
            raise EngineError(f"cannot open {self.location}: {e}") from e
        log.info(f"SQLiteEngine 연결됨: {self.location} (WAL={self.enable_wal})")
        return self

    async def close(self) -> None:
        """연결을 닫습니다."""
        if self._db is None:
            return
        async with self._lock:
            await self._db.close()
            self._db = None
        log.info(f"SQLiteEngine 연결 종료됨: {self.location}")

    async def __aenter__(self) -> "SQLiteEngine":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _run(self, sql: str, values: Sequence[Any]) -> WriteResult:
        try:
            cursor = await self.connection.execute(sql, tuple(values))
            result = WriteResult(changes=max(cursor.rowcount, 0), last_row_id=cursor.lastrowid)
            await cursor.close()
            return result
        except aiosqlite.IntegrityError as e:
            raise ConstraintViolationError(str(e)) from e
        except aiosqlite.Error as e:
            raise EngineError(str(e)) from e

    async def _fetch(self, sql: str, values: Sequence[Any]) -> List[aiosqlite.Row]:
        try:
            async with self.connection.execute(sql, tuple(values)) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise EngineError(str(e)) from e

    async def execute(self, sql: str, values: Sequence[Any] = ()) -> int:
        """
        구문 하나를 자동 커밋으로 실행합니다.

        Returns:
            영향받은 행 수
        """
        async with self._lock:
            return (await self._run(sql, values)).changes

    async def write(self, sql: str, values: Sequence[Any] = ()) -> WriteResult:
        """쓰기 구문을 실행하고 변경 행 수와 마지막 rowid를 반환합니다."""
        async with self._lock:
            return await self._run(sql, values)

    async def query(self, sql: str, values: Sequence[Any] = ()) -> List[aiosqlite.Row]:
        """
        조회 구문을 실행합니다.

        Returns:
            aiosqlite.Row 리스트 (컬럼 이름으로 접근 가능)
        """
        async with self._lock:
            return await self._fetch(sql, values)

    async def transaction(self, fn: Callable[[_Transaction], Awaitable[T]]) -> T:
        """
        fn을 하나의 트랜잭션으로 실행합니다.

        fn 안에서 예외가 발생하면 롤백 후 예외를 그대로 다시 발생시킵니다.
        fn 안에서 엔진의 execute/transaction을 다시 호출하면 안 됩니다 (tx 핸들 사용).

        Args:
            fn: 트랜잭션 핸들을 받는 비동기 함수

        Returns:
            fn의 반환값
        """
        async with self._lock:
            db = self.connection
            try:
                await db.execute("BEGIN")
            except aiosqlite.Error as e:
                raise EngineError(f"cannot begin transaction: {e}") from e

            try:
                result = await fn(_Transaction(self))
                await db.execute("COMMIT")
                return result
            except BaseException as e:
                if db.in_transaction:
                    try:
                        await db.execute("ROLLBACK")
                    except aiosqlite.Error as rollback_error:
                        log.error(f"롤백 실패: {rollback_error}")
                if isinstance(e, aiosqlite.IntegrityError):
                    raise ConstraintViolationError(str(e)) from e
                if isinstance(e, aiosqlite.Error):
                    raise EngineError(str(e)) from e
                raise
