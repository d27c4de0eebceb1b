"""
Key-value store for holdkv.

This module coordinates the key codec, schema registry, statement
builder, value codec and TTL manager on top of the engine port, and
exposes the public set/get/clean/bind operations.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from holdkv.adapters.storage.sqlite_engine import SQLiteEngine
from holdkv.core import codec, statements
from holdkv.core.errors import HoldKVError
from holdkv.core.keys import DEFAULT_KEY, DEFAULT_TOPIC, is_match_all, join_key, split_key
from holdkv.core.models import PreparedStatement, Record, TopicSchema, WriteResult
from holdkv.core.schema import SchemaRegistry
from holdkv.core.ttl import TTLManager
from holdkv.observability import metrics
from holdkv.observability.logging_setup import get_logger
from holdkv.ports.engine import EnginePort, TransactionPort
from holdkv.settings import StoreSettings
from holdkv.store.buffer import ErrorCallback, WriteBuffer

log = get_logger("holdkv.store")


class KVStore:
    """SQLite 위의 토픽/복합키 기반 키-값 저장소

    Example::

        store = create_store()
        await store.set("topic", "account-123:user-456", "value")
        await store.get("topic", "account-123:*")
        # [("account-123:user-456", "value")]
    """

    def __init__(self,
                 settings: Optional[StoreSettings] = None,
                 *,
                 engine: Optional[EnginePort] = None,
                 clock: Optional[Callable[[], int]] = None,
                 on_flush_error: Optional[ErrorCallback] = None):
        """
        초기화합니다.

        Args:
            settings: 저장소 설정 (None이면 기본값)
            engine: 스토리지 엔진 (None이면 settings.location의 SQLiteEngine)
            clock: 현재 시각(epoch ms) 함수. TTL 계산에 사용
            on_flush_error: 타이머로 시작된 버퍼 플러시가 실패했을 때 호출할 콜백
        """
        self.settings = settings or StoreSettings()
        self.turbo = self.settings.turbo
        self.on_flush_error = on_flush_error
        self._engine = engine or SQLiteEngine(self.settings.location, self.settings.enable_wal)
        self._registry = SchemaRegistry(turbo=self.turbo)
        self._ttl = TTLManager(clock)
        self._buffers: Dict[str, WriteBuffer] = {}

    # ---- 수명 주기 ----

    async def open(self) -> "KVStore":
        await self._ready()
        return self

    async def close(self) -> None:
        """
        버퍼를 모두 플러시하고 엔진 연결을 닫습니다.

        플러시가 실패해도 나머지 버퍼와 연결은 정리한 뒤 첫 오류를 다시 발생시킵니다.
        """
        first_error: Optional[BaseException] = None
        try:
            for buffer in list(self._buffers.values()):
                try:
                    await buffer.close()
                except Exception as e:
                    if first_error is None:
                        first_error = e
        finally:
            await self._engine.close()
            if self.settings.in_memory:
                # 메모리 DB는 닫으면 테이블도 사라진다
                self._registry.clear()
        if first_error is not None:
            raise first_error

    async def __aenter__(self) -> "KVStore":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _ready(self) -> EnginePort:
        if not getattr(self._engine, "is_open", True):
            await self._engine.open()
        return self._engine

    @property
    def connection(self):
        """expose_connection이 켜진 경우에만 원시 aiosqlite 연결을 반환합니다."""
        if not self.settings.expose_connection:
            raise HoldKVError("connection is not exposed; set expose_connection=True")
        return self._engine.connection

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def topics(self) -> List[str]:
        return self._registry.topics()

    # ---- 스키마 ----

    async def init(self, topic: str = DEFAULT_TOPIC, key: str = DEFAULT_KEY) -> "KVStore":
        """
        토픽 테이블을 만듭니다. 키의 세그먼트 수가 토픽의 컬럼 수가 됩니다.

        Args:
            topic: 초기화할 토픽
            key: arity를 정할 예시 키
        """
        await self._registry.ensure_topic(await self._ready(), topic, key)
        return self

    async def _writable(self, topic: Optional[str], key: str) -> Tuple[TopicSchema, List[str]]:
        topic = DEFAULT_TOPIC if topic is None else topic
        schema = await self._registry.ensure_topic(await self._ready(), topic, key)
        segments = split_key(key)
        self._registry.check_write(schema, segments)
        return schema, segments

    def _build_insert(self, schema: TopicSchema, segments: List[str], value: Any,
                      ttl: Optional[float], is_json: bool) -> PreparedStatement:
        text, serialized = codec.encode(value, is_json=is_json)
        return statements.prepare_insert(schema, segments, text, serialized, self._ttl.expires_at(ttl))

    # ---- 쓰기 ----

    async def prepare(self, topic: Optional[str], key: str, value: Any,
                      ttl: Optional[float] = None, *, is_json: bool = False) -> PreparedStatement:
        """
        set과 같은 INSERT 구문을 실행하지 않고 만듭니다 (set_bulk 입력용).

        Args:
            topic: 토픽
            key: 키
            value: 값
            ttl: TTL (밀리초)
            is_json: JSON 전용 빠른 직렬화 사용 여부

        Returns:
            PreparedStatement(sql, values)
        """
        schema, segments = await self._writable(topic, key)
        return self._build_insert(schema, segments, value, ttl, is_json)

    async def set(self, topic: Optional[str], key: str, value: Any,
                  ttl: Optional[float] = None, *, is_json: bool = False) -> WriteResult:
        """
        값을 즉시 저장합니다. turbo가 아니면 같은 키의 기존 값을 덮어씁니다.

        Args:
            topic: 토픽 (None이면 "topic")
            key: ``:``로 구분된 키
            value: 값. str이 아니면 직렬화됨
            ttl: TTL (밀리초), None이면 만료 없음
            is_json: JSON 전용 빠른 직렬화 사용 여부

        Returns:
            WriteResult

        Raises:
            SchemaConflictError: 키 세그먼트 수가 토픽과 다름
            SerializationError: 직렬화할 수 없는 값
            EngineError: 엔진 실행 실패 (재시도하지 않음)
        """
        schema, segments = await self._writable(topic, key)
        stmt = self._build_insert(schema, segments, value, ttl, is_json)
        result = await self._engine.write(stmt.sql, stmt.values)
        metrics.writes_total.labels(topic=schema.name, mode="single").inc()
        return result

    async def set_bulk(self, topic: Optional[str], key: str,
                       entries: Iterable[PreparedStatement]) -> bool:
        """
        준비된 구문들을 하나의 트랜잭션으로 실행합니다. 전부 성공하거나 전부 롤백됩니다.

        Args:
            topic: 토픽
            key: 토픽이 없을 때 arity를 정할 예시 키
            entries: prepare()로 만든 구문들
        """
        schema, _ = await self._writable(topic, key)
        count = await self._run_batch(list(entries))
        metrics.writes_total.labels(topic=schema.name, mode="bulk").inc(count)
        return True

    async def set_buffered(self, topic: Optional[str], key: str, value: Any,
                           ttl: Optional[float] = None, *, is_json: bool = False) -> bool:
        """
        값을 토픽 버퍼에 넣습니다. 임계값에 도달하면 즉시, 아니면 마지막 호출 후
        buffer_timeout(ms)이 지나면 한 트랜잭션으로 플러시됩니다.
        플러시 전까지는 저장이 보장되지 않습니다.

        Returns:
            이 호출에서 플러시가 일어났는지 여부

        Raises:
            BufferFlushError: 이 호출이 일으킨 임계값 플러시가 실패한 경우
        """
        schema, segments = await self._writable(topic, key)
        stmt = self._build_insert(schema, segments, value, ttl, is_json)
        buffer = self._buffer_for(schema.name)
        flushed = await buffer.append(stmt)
        metrics.writes_total.labels(topic=schema.name, mode="buffered").inc()
        return flushed

    def _buffer_for(self, topic: str) -> WriteBuffer:
        buffer = self._buffers.get(topic)
        if buffer is None:
            buffer = WriteBuffer(
                topic,
                self._run_batch,
                threshold=self.settings.buffer_threshold,
                timeout=self.settings.buffer_timeout_sec,
                on_error=self.on_flush_error,
            )
            self._buffers[topic] = buffer
        return buffer

    async def _run_batch(self, entries: List[PreparedStatement]) -> int:
        async def _run(tx: TransactionPort) -> int:
            for sql, values in entries:
                await tx.execute(sql, values)
            return len(entries)

        return await (await self._ready()).transaction(_run)

    async def flush(self) -> int:
        """모든 버퍼를 즉시 플러시합니다. 플러시된 항목 수를 반환합니다."""
        total = 0
        for buffer in list(self._buffers.values()):
            total += await buffer.flush()
        return total

    def pending(self, topic: Optional[str] = None) -> int:
        if topic is not None:
            buffer = self._buffers.get(topic)
            return buffer.pending if buffer else 0
        return sum(b.pending for b in self._buffers.values())

    # ---- 읽기 ----

    def _readable(self, topic: Optional[str], key: str) -> Optional[Tuple[TopicSchema, List[str], bool]]:
        schema = self._registry.get(DEFAULT_TOPIC if topic is None else topic)
        if schema is None:
            return None
        match_all = is_match_all(key)
        segments = split_key(key)
        if not match_all:
            self._registry.check_read(schema, segments)
        return schema, segments, match_all

    async def get_records(self, topic: Optional[str], key: str) -> List[Record]:
        """
        키(와일드카드 허용)에 맞는 만료되지 않은 행을 Record로 반환합니다.
        초기화되지 않은 토픽이면 엔진에 접근하지 않고 빈 리스트를 반환합니다.
        순서는 엔진이 반환하는 순서입니다.
        """
        readable = self._readable(topic, key)
        if readable is None:
            return []
        schema, segments, match_all = readable

        stmt = statements.build_select(schema, segments, self._ttl.now(), match_all)
        rows = await self._engine.query(stmt.sql, stmt.values)
        metrics.reads_total.labels(topic=schema.name).inc()

        records = []
        for row in rows:
            row_segments = [row[c] for c in schema.key_columns]
            records.append(Record(
                key=join_key(row_segments),
                value=codec.decode(row["value"], bool(row["serialized"])),
                expires_at=row["ttl"],
                segments=row_segments,
            ))
        return records

    async def get(self, topic: Optional[str], key: str) -> List[Tuple[str, Any]]:
        """
        값을 조회합니다.

        Args:
            topic: 토픽
            key: 키. ``*`` 세그먼트는 모든 값과 일치, ``*`` 단독이면 전체

        Returns:
            (키, 값) 리스트. 토픽이 없거나 일치하는 행이 없으면 빈 리스트
        """
        return [record.as_pair() for record in await self.get_records(topic, key)]

    async def count(self, topic: Optional[str], key: str = "*") -> int:
        """만료되지 않은 일치 행 수를 반환합니다."""
        readable = self._readable(topic, key)
        if readable is None:
            return 0
        schema, segments, match_all = readable
        stmt = statements.build_count(schema, segments, self._ttl.now(), match_all)
        rows = await self._engine.query(stmt.sql, stmt.values)
        return rows[0]["n"] if rows else 0

    async def delete(self, topic: Optional[str], key: str) -> int:
        """
        키(와일드카드 허용)에 맞는 행을 삭제합니다.

        Returns:
            삭제된 행 수
        """
        readable = self._readable(topic, key)
        if readable is None:
            return 0
        schema, segments, match_all = readable
        stmt = statements.build_delete(schema, segments, match_all)
        return await self._engine.execute(stmt.sql, stmt.values)

    # ---- TTL ----

    async def clean(self, topic: Optional[str] = None) -> Dict[str, int]:
        """
        만료된 행을 삭제합니다.

        Args:
            topic: 정리할 토픽. None이면 이 저장소가 아는 모든 토픽

        Returns:
            토픽별 삭제된 행 수
        """
        engine = await self._ready()
        if topic is None:
            topics = self._registry.topics()
        elif await self._registry.attach(engine, topic) is not None:
            topics = [topic]
        else:
            topics = []
        if not topics:
            return {}
        return await self._ttl.purge(engine, topics)

    # ---- 바인딩 ----

    def bind(self, topic: str) -> "BoundTopic":
        """토픽을 고정한 set/get 핸들을 반환합니다."""
        return BoundTopic(self, topic)


class BoundTopic:
    """토픽이 고정된 저장소 핸들"""

    def __init__(self, store: KVStore, topic: str):
        self.store = store
        self.topic = topic

    async def set(self, key: str, value: Any, ttl: Optional[float] = None,
                  *, is_json: bool = False) -> WriteResult:
        return await self.store.set(self.topic, key, value, ttl, is_json=is_json)

    async def get(self, key: str) -> List[Tuple[str, Any]]:
        return await self.store.get(self.topic, key)

    async def set_buffered(self, key: str, value: Any, ttl: Optional[float] = None,
                           *, is_json: bool = False) -> bool:
        return await self.store.set_buffered(self.topic, key, value, ttl, is_json=is_json)

    async def delete(self, key: str) -> int:
        return await self.store.delete(self.topic, key)
