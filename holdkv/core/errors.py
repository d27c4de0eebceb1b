"""
Error types for holdkv.

Every fault raised by the store derives from HoldKVError so callers
can catch the whole family, while validation failures also remain
ValueErrors.
"""

from typing import Sequence


class HoldKVError(Exception):
    """holdkv 최상위 예외"""


class InvalidTopicError(HoldKVError, ValueError):
    """토픽 이름이 안전한 SQL 식별자가 아님"""


class InvalidKeyError(HoldKVError, ValueError):
    """키가 문자열이 아님"""


class SchemaConflictError(HoldKVError):
    """키 세그먼트 수가 토픽의 컬럼 수와 다름"""

    def __init__(self, topic: str, expected: int, got: int):
        self.topic = topic
        self.expected = expected
        self.got = got
        super().__init__(
            f"topic '{topic}' has {expected} key column(s), key has {got} segment(s)"
        )


class SerializationError(HoldKVError):
    """값을 인코딩/디코딩할 수 없음"""


class EngineError(HoldKVError):
    """스토리지 엔진이 구문 실행에 실패함"""


class ConstraintViolationError(EngineError):
    """UNIQUE 등 제약 조건 위반"""


class BufferFlushError(EngineError):
    """버퍼 플러시 실패. 롤백된 항목들을 함께 전달합니다."""

    def __init__(self, topic: str, entries: Sequence, cause: BaseException):
        self.topic = topic
        self.entries = list(entries)
        self.cause = cause
        super().__init__(
            f"flush of {len(self.entries)} buffered entr{'y' if len(self.entries) == 1 else 'ies'} "
            f"for topic '{topic}' failed: {cause}"
        )
