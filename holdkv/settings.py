# holdkv/settings.py
from __future__ import annotations
import os
from pydantic import BaseModel, ConfigDict, Field

MEMORY_LOCATION = ":memory:"

class StoreSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    location: str = MEMORY_LOCATION          # ":memory:" | 파일 경로
    enable_wal: bool = True                  # 메모리 DB에서는 무시
    turbo: bool = False                      # UNIQUE/인덱스/ON CONFLICT 생략
    buffer_threshold: int = Field(default=1000, ge=1)
    buffer_timeout: float = Field(default=500, ge=0)   # ms, debounce
    expose_connection: bool = False
    log_level: str = "INFO"

    @property
    def in_memory(self) -> bool:
        return self.location == MEMORY_LOCATION

    @property
    def buffer_timeout_sec(self) -> float:
        return self.buffer_timeout / 1000.0

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings(**overrides) -> StoreSettings:
    """환경변수를 기본값 위에 덮어쓴 설정을 만듭니다. 인자로 받은 값이 최우선."""
    s = StoreSettings()
    s.location = os.getenv("HOLDKV_LOCATION", s.location)
    s.enable_wal = _b("HOLDKV_ENABLE_WAL", s.enable_wal)
    s.turbo = _b("HOLDKV_TURBO", s.turbo)
    s.buffer_threshold = int(os.getenv("HOLDKV_BUFFER_THRESHOLD", s.buffer_threshold))
    s.buffer_timeout = float(os.getenv("HOLDKV_BUFFER_TIMEOUT", s.buffer_timeout))
    s.log_level = os.getenv("HOLDKV_LOG_LEVEL", s.log_level)

    # 검증을 다시 태우기 위해 모델을 새로 만든다
    return StoreSettings(**{**s.model_dump(), **overrides})
