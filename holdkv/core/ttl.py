"""
TTL handling for holdkv.

Expiry is stored as an absolute epoch-millisecond timestamp in the
``ttl`` column. Rows with a NULL ttl never expire; a row is visible
while its ttl is strictly greater than the read time.
"""

import time
from typing import Callable, Dict, Iterable, Optional

from holdkv.core import statements
from holdkv.observability import metrics
from holdkv.observability.logging_setup import get_logger
from holdkv.ports.engine import EnginePort, TransactionPort

log = get_logger("holdkv.ttl")


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class TTLManager:
    """만료 시각 계산, 가시성 판정, 만료 행 정리"""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        """
        초기화합니다.

        Args:
            clock: 현재 시각(epoch ms)을 반환하는 함수. None이면 시스템 시계
        """
        self.clock = clock or _wall_clock_ms

    def now(self) -> int:
        return int(self.clock())

    @staticmethod
    def stamp_expiry(now_ms: int, ttl_ms: float) -> int:
        """현재 시각에 TTL(ms)을 더한 절대 만료 시각을 반환합니다."""
        if ttl_ms < 0:
            raise ValueError(f"ttl must be >= 0 milliseconds, got {ttl_ms}")
        return int(now_ms + ttl_ms)

    def expires_at(self, ttl_ms: Optional[float]) -> Optional[int]:
        if ttl_ms is None:
            return None
        return self.stamp_expiry(self.now(), ttl_ms)

    @staticmethod
    def is_visible(row_ttl: Optional[int], now_ms: int) -> bool:
        # ttl == now 이면 이미 만료 (fail-closed)
        return row_ttl is None or row_ttl > now_ms

    async def purge(self, engine: EnginePort, topics: Iterable[str]) -> Dict[str, int]:
        """
        만료된 행을 토픽별로 삭제합니다. 모든 토픽을 하나의 트랜잭션으로 처리합니다.

        Args:
            engine: 스토리지 엔진
            topics: 정리할 토픽 목록

        Returns:
            토픽별 삭제된 행 수
        """
        topics = list(topics)
        if not topics:
            return {}

        now = self.now()

        async def _purge_all(tx: TransactionPort) -> Dict[str, int]:
            removed = {}
            for topic in topics:
                stmt = statements.build_purge(topic, now)
                removed[topic] = await tx.execute(stmt.sql, stmt.values)
            return removed

        removed = await engine.transaction(_purge_all)

        for topic, count in removed.items():
            if count > 0:
                metrics.rows_purged.labels(topic=topic).inc(count)
                log.info(f"만료된 항목 {count}개 정리됨: {topic}")
        return removed
