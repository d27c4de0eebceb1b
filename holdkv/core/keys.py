"""
Composite key codec for holdkv.

A key such as ``account-1:user-2`` is split on the delimiter into
ordered segments, each stored in its own positional column.
"""

import re
from typing import Iterable, List

from .errors import InvalidKeyError, InvalidTopicError

DELIMITER = ":"
WILDCARD = "*"
DEFAULT_KEY = "key"
DEFAULT_TOPIC = "topic"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def split_key(key: str) -> List[str]:
    """
    키를 구분자로 분리합니다.

    Args:
        key: ``:``로 구분된 키. 빈 문자열이면 ``"key"`` 세그먼트 하나

    Returns:
        세그먼트 리스트 (최소 1개)

    Raises:
        InvalidKeyError: 키가 문자열이 아닌 경우
    """
    if not isinstance(key, str):
        raise InvalidKeyError(f"key must be a string, got {type(key).__name__}")
    if key == "":
        return [DEFAULT_KEY]
    return key.split(DELIMITER)


def join_key(segments: Iterable[str]) -> str:
    return DELIMITER.join(segments)


def is_wildcard(segment: str) -> bool:
    return segment == WILDCARD


def is_match_all(key: str) -> bool:
    """키 전체가 와일드카드 하나인지 확인합니다."""
    return key == WILDCARD


def column_names(arity: int) -> List[str]:
    return [f"col{i}" for i in range(arity)]


def validate_topic(topic: str) -> str:
    """토픽 이름이 테이블 이름으로 안전한지 검사합니다."""
    if not isinstance(topic, str) or not _IDENTIFIER.match(topic):
        raise InvalidTopicError(
            f"topic must match {_IDENTIFIER.pattern}, got {topic!r}"
        )
    return topic
