"""
Core data models for holdkv.

Hot-path values (prepared statements, write results) are plain
dataclasses; nothing here performs I/O.
"""

from dataclasses import dataclass, field
from typing import Any, List, NamedTuple, Optional, Tuple


class PreparedStatement(NamedTuple):
    """SQL 텍스트와 바인딩 값 묶음 (버퍼 항목 단위)"""
    sql: str
    values: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class TopicSchema:
    """초기화된 토픽의 스키마 정보"""
    name: str
    arity: int
    turbo: bool = False

    @property
    def key_columns(self) -> List[str]:
        return [f"col{i}" for i in range(self.arity)]


@dataclass(frozen=True)
class WriteResult:
    """단일 쓰기 결과"""
    changes: int
    last_row_id: Optional[int] = None


@dataclass
class Record:
    """조회 결과 한 행"""
    key: str
    value: Any
    expires_at: Optional[int] = None
    segments: List[str] = field(default_factory=list)

    def as_pair(self) -> Tuple[str, Any]:
        return (self.key, self.value)
