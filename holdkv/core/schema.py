"""
Per-store registry of materialized topics.

The registry is owned by a single store instance. It records, for each
topic whose table has been created (or found) in this process, the key
arity and whether the table carries the uniqueness constraint.
"""

import re
from typing import Dict, Iterator, List, Optional, Sequence

from holdkv.core import statements
from holdkv.core.errors import SchemaConflictError
from holdkv.core.keys import split_key, validate_topic
from holdkv.core.models import TopicSchema
from holdkv.observability.logging_setup import get_logger
from holdkv.ports.engine import EnginePort, TransactionPort

log = get_logger("holdkv.schema")

_KEY_COLUMN = re.compile(r"^col(\d+)$")


class SchemaRegistry:
    """토픽 스키마 레지스트리 (스토어 인스턴스 소유)"""

    def __init__(self, turbo: bool = False):
        """
        초기화합니다.

        Args:
            turbo: 새로 만드는 테이블에 UNIQUE 제약/ttl 인덱스를 생략할지 여부
        """
        self.turbo = turbo
        self._topics: Dict[str, TopicSchema] = {}

    def __contains__(self, topic: str) -> bool:
        return topic in self._topics

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._topics))

    def __len__(self) -> int:
        return len(self._topics)

    def get(self, topic: str) -> Optional[TopicSchema]:
        return self._topics.get(topic)

    def topics(self) -> List[str]:
        return list(self._topics)

    async def ensure_topic(self, engine: EnginePort, topic: str, sample_key: str) -> TopicSchema:
        """
        토픽 테이블이 없으면 생성하고 스키마를 등록합니다.

        이미 파일에 테이블이 있는 경우(프로세스 재시작) CREATE TABLE IF NOT EXISTS는
        아무 일도 하지 않으므로, 실제 컬럼 구성을 PRAGMA로 읽어 arity를 정합니다.

        Args:
            engine: 스토리지 엔진
            topic: 토픽 이름
            sample_key: arity를 결정할 예시 키

        Returns:
            등록된 TopicSchema
        """
        validate_topic(topic)
        schema = self._topics.get(topic)
        if schema is not None:
            return schema

        arity = len(split_key(sample_key))
        ddl = statements.create_table(topic, arity, self.turbo)

        async def _create(tx: TransactionPort) -> None:
            for sql in ddl:
                await tx.execute(sql)

        await engine.transaction(_create)

        schema = await self._introspect(engine, topic)
        if schema.arity != arity:
            log.warning(
                f"기존 테이블 사용: {topic} ({schema.arity}개 키 컬럼, 예시 키는 {arity}개 세그먼트)"
            )
        self._topics[topic] = schema
        log.info(f"토픽 초기화 완료: {topic} (arity={schema.arity}, turbo={schema.turbo})")
        return schema

    async def attach(self, engine: EnginePort, topic: str) -> Optional[TopicSchema]:
        """
        이 프로세스에서 아직 등록되지 않은 토픽이 파일에 이미 있으면 등록합니다.
        테이블을 만들지는 않습니다.

        Returns:
            등록된 TopicSchema. 테이블이 없으면 None
        """
        validate_topic(topic)
        schema = self._topics.get(topic)
        if schema is not None:
            return schema

        rows = await engine.query(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (topic,)
        )
        if not rows:
            return None

        schema = await self._introspect(engine, topic)
        self._topics[topic] = schema
        log.info(f"기존 토픽 연결: {topic} (arity={schema.arity}, turbo={schema.turbo})")
        return schema

    def clear(self) -> None:
        """등록된 토픽을 모두 잊습니다 (메모리 DB를 닫을 때)."""
        self._topics.clear()

    async def _introspect(self, engine: EnginePort, topic: str) -> TopicSchema:
        columns = await engine.query(statements.table_info(topic))
        arity = sum(1 for row in columns if _KEY_COLUMN.match(row["name"]))

        indexes = await engine.query(f'PRAGMA index_list("{topic}")')
        unique = any(row["unique"] for row in indexes)
        return TopicSchema(name=topic, arity=arity, turbo=not unique)

    @staticmethod
    def check_write(schema: TopicSchema, segments: Sequence[str]) -> None:
        """쓰기 키의 세그먼트 수는 토픽 arity와 정확히 같아야 합니다."""
        if len(segments) != schema.arity:
            raise SchemaConflictError(schema.name, schema.arity, len(segments))

    @staticmethod
    def check_read(schema: TopicSchema, segments: Sequence[str]) -> None:
        """조회 키는 arity보다 짧을 수 있지만(뒤쪽 컬럼 무제한) 길 수는 없습니다."""
        if len(segments) > schema.arity:
            raise SchemaConflictError(schema.name, schema.arity, len(segments))
