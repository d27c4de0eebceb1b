"""
Buffered bulk writes for holdkv.

A WriteBuffer collects prepared statements and drains them through one
transaction when either the pending count reaches the threshold or no
new entry has arrived for the debounce timeout.
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, List, Optional, Set

from holdkv.core.errors import BufferFlushError
from holdkv.core.models import PreparedStatement
from holdkv.observability import metrics
from holdkv.observability.logging_setup import get_logger, with_context

log = get_logger("holdkv.buffer")

FlushFn = Callable[[List[PreparedStatement]], Awaitable[Any]]
ErrorCallback = Callable[[BufferFlushError], Any]


class WriteBuffer:
    """임계값/타임아웃 기반 쓰기 버퍼 (토픽 하나당 하나)"""

    def __init__(self,
                 topic: str,
                 flush_fn: FlushFn,
                 *,
                 threshold: int = 1000,
                 timeout: float = 0.5,
                 on_error: Optional[ErrorCallback] = None):
        """
        초기화합니다.

        Args:
            topic: 버퍼가 속한 토픽 (로그/메트릭 라벨)
            flush_fn: 항목 리스트를 하나의 트랜잭션으로 실행하는 함수
            threshold: 즉시 플러시할 항목 수
            timeout: 마지막 추가 이후 플러시까지 대기 시간 (초)
            on_error: 타이머 플러시 실패 시 호출할 콜백
        """
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.topic = topic
        self.threshold = threshold
        self.timeout = timeout
        self.on_error = on_error
        self._flush_fn = flush_fn
        self._entries: List[PreparedStatement] = []
        self._lock = asyncio.Lock()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._entries)

    async def append(self, entry: PreparedStatement) -> bool:
        """
        항목을 추가합니다.

        임계값에 도달하면 이 호출 안에서 플러시하고, 실패 시 BufferFlushError를
        호출자에게 그대로 발생시킵니다. 그렇지 않으면 debounce 타이머를 다시 겁니다.

        Returns:
            이 호출에서 플러시가 일어났는지 여부
        """
        async with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._entries.append(entry)
            metrics.buffer_depth.labels(topic=self.topic).set(len(self._entries))

            if len(self._entries) >= self.threshold:
                await self._drain("threshold")
                return True

            self._arm_timer()
            return False

    async def flush(self) -> int:
        """
        대기 중인 항목을 즉시 플러시합니다.

        Returns:
            플러시된 항목 수
        """
        async with self._lock:
            self._cancel_timer()
            if not self._entries:
                return 0
            return await self._drain("manual")

    async def drained(self) -> None:
        """진행 중인 타이머 플러시가 끝날 때까지 기다립니다."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """타이머를 취소하고 남은 항목을 플러시합니다."""
        self._cancel_timer()
        await self.drained()
        await self.flush()

    def _arm_timer(self) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.timeout, self._on_timeout, self._generation)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timeout(self, generation: int) -> None:
        self._timer = None
        task = asyncio.ensure_future(self._timed_flush(generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _timed_flush(self, generation: int) -> None:
        async with self._lock:
            # 잠금을 기다리는 동안 새 항목이 들어와 타이머가 다시 걸렸으면 양보
            if generation != self._generation or not self._entries:
                return
            try:
                await self._drain("timeout")
            except BufferFlushError as e:
                await self._report(e)

    async def _drain(self, trigger: str) -> int:
        entries, self._entries = self._entries, []
        metrics.buffer_depth.labels(topic=self.topic).set(0)

        started = time.perf_counter()
        with with_context(topic=self.topic, trigger=trigger):
            try:
                await self._flush_fn(entries)
            except Exception as e:
                metrics.buffer_flush_failures.labels(trigger=trigger).inc()
                log.error(f"버퍼 플러시 실패: {self.topic} ({len(entries)}개): {e}")
                raise BufferFlushError(self.topic, entries, e) from e
            finally:
                metrics.flush_seconds.observe(time.perf_counter() - started)

            metrics.buffer_flushes.labels(trigger=trigger).inc()
            log.debug(f"버퍼 플러시 완료: {self.topic} ({len(entries)}개)")
        return len(entries)

    async def _report(self, error: BufferFlushError) -> None:
        if self.on_error is None:
            return
        try:
            result = self.on_error(error)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log.error(f"on_error 콜백 오류: {e}")
