"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import inspect
import os
import tempfile

import pytest
import pytest_asyncio

from holdkv import KVStore, StoreSettings
from holdkv.adapters.storage.sqlite_engine import SQLiteEngine


class FakeClock:
    """테스트용 수동 시계 (epoch ms)"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def temp_db_path():
    """임시 데이터베이스 파일 경로"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    # 테스트 후 파일 정리 (WAL 부속 파일 포함)
    for path in (temp_path, temp_path + "-wal", temp_path + "-shm"):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture
def clock():
    """테스트용 시계"""
    return FakeClock()


@pytest_asyncio.fixture
async def engine():
    """메모리 SQLite 엔진"""
    engine = SQLiteEngine(":memory:")
    await engine.open()
    yield engine
    await engine.close()


@pytest_asyncio.fixture
async def store(clock):
    """메모리 저장소 (수동 시계)"""
    store = KVStore(StoreSettings(), clock=clock)
    await store.open()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def turbo_store(clock):
    """turbo 모드 메모리 저장소"""
    store = KVStore(StoreSettings(turbo=True), clock=clock)
    await store.open()
    yield store
    await store.close()


# pytest 설정
def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line(
        "markers", "asyncio: 비동기 테스트 마커"
    )
    config.addinivalue_line(
        "markers", "slow: 느린 테스트 마커"
    )
    config.addinivalue_line(
        "markers", "integration: 통합 테스트 마커"
    )


def pytest_collection_modifyitems(config, items):
    """테스트 아이템 수정"""
    for item in items:
        # 비동기 테스트에 asyncio 마커 추가
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)

        # 느린 테스트 마커 추가
        if "performance" in item.name or "stress" in item.name:
            item.add_marker(pytest.mark.slow)

        # 통합 테스트 마커 추가
        if "integration" in item.name:
            item.add_marker(pytest.mark.integration)
