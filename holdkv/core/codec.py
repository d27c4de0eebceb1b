"""
Value codec for holdkv.

Plain strings are stored verbatim. Every other value is written as a
JSON document in which JSON-native data stays as-is and the remaining
supported types are wrapped in tagged objects::

    {"__holdkv__": "set", "v": [1, 2]}

Decoding walks the document and rebuilds tagged objects from a fixed
table of tags. Stored text is never evaluated.
"""

import base64
import binascii
import inspect
import json
import math
import re
import textwrap
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Tuple
from urllib.parse import ParseResult, SplitResult, urlparse, urlsplit

from .errors import SerializationError

TAG = "__holdkv__"

# JavaScript/IEEE-754 double로 손실 없이 표현되는 정수 범위
MAX_SAFE_INT = 2 ** 53 - 1

_NON_FINITE = {"inf": math.inf, "-inf": -math.inf, "nan": math.nan}


class CallableSource(str):
    """저장된 callable의 소스(또는 정규화된 이름). 실행되지 않는 문자열."""


def _tagged(tag: str, payload: Any) -> Dict[str, Any]:
    return {TAG: tag, "v": payload}


def _callable_source(value: Callable) -> str:
    try:
        return textwrap.dedent(inspect.getsource(value)).strip()
    except (OSError, TypeError):
        module = getattr(value, "__module__", None) or "builtins"
        return f"{module}.{getattr(value, '__qualname__', repr(value))}"


def _pack(value: Any) -> Any:
    # bool은 int의 하위 타입이므로 먼저 검사
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, CallableSource):
        return _tagged("callable", str(value))
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        if -MAX_SAFE_INT <= value <= MAX_SAFE_INT:
            return int(value)
        return _tagged("int", str(value))
    if isinstance(value, float):
        if math.isfinite(value):
            return value
        return _tagged("float", "nan" if math.isnan(value) else ("inf" if value > 0 else "-inf"))
    if isinstance(value, list):
        return [_pack(item) for item in value]
    if isinstance(value, tuple):
        return _tagged("tuple", [_pack(item) for item in value])
    if isinstance(value, dict):
        if TAG not in value and all(isinstance(k, str) for k in value):
            return {k: _pack(v) for k, v in value.items()}
        return _tagged("map", [[_pack(k), _pack(v)] for k, v in value.items()])
    if isinstance(value, frozenset):
        return _tagged("frozenset", [_pack(item) for item in value])
    if isinstance(value, set):
        return _tagged("set", [_pack(item) for item in value])
    # datetime은 date의 하위 타입
    if isinstance(value, datetime):
        return _tagged("datetime", value.isoformat())
    if isinstance(value, date):
        return _tagged("date", value.isoformat())
    if isinstance(value, time):
        return _tagged("time", value.isoformat())
    if isinstance(value, timedelta):
        return _tagged("timedelta", [value.days, value.seconds, value.microseconds])
    if isinstance(value, Decimal):
        return _tagged("decimal", str(value))
    if isinstance(value, uuid.UUID):
        return _tagged("uuid", str(value))
    if isinstance(value, (bytes, bytearray)):
        return _tagged("bytes", base64.b64encode(bytes(value)).decode("ascii"))
    if isinstance(value, re.Pattern):
        if not isinstance(value.pattern, str):
            raise SerializationError("only str regular expressions can be stored")
        return _tagged("regex", {"pattern": value.pattern, "flags": int(value.flags)})
    if isinstance(value, ParseResult):
        return _tagged("url", value.geturl())
    if isinstance(value, SplitResult):
        return _tagged("urlsplit", value.geturl())
    if inspect.isfunction(value) or inspect.ismethod(value) or inspect.isbuiltin(value):
        return _tagged("callable", _callable_source(value))
    raise SerializationError(f"cannot serialize value of type {type(value).__name__}")


def _unpack_map(payload: Any) -> dict:
    return {_unpack(k): _unpack(v) for k, v in payload}


def _unpack_regex(payload: Any) -> "re.Pattern":
    # 저장된 플래그에는 re.UNICODE가 포함되어 있으므로 그대로 전달
    return re.compile(payload["pattern"], payload["flags"])


_DECODERS: Dict[str, Callable[[Any], Any]] = {
    "int": int,
    "float": lambda p: _NON_FINITE[p],
    "tuple": lambda p: tuple(_unpack(item) for item in p),
    "map": _unpack_map,
    "set": lambda p: {_unpack(item) for item in p},
    "frozenset": lambda p: frozenset(_unpack(item) for item in p),
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "time": time.fromisoformat,
    "timedelta": lambda p: timedelta(days=p[0], seconds=p[1], microseconds=p[2]),
    "decimal": Decimal,
    "uuid": uuid.UUID,
    "bytes": lambda p: base64.b64decode(p.encode("ascii"), validate=True),
    "regex": _unpack_regex,
    "url": urlparse,
    "urlsplit": urlsplit,
    "callable": CallableSource,
}


def _unpack(value: Any) -> Any:
    if isinstance(value, list):
        return [_unpack(item) for item in value]
    if isinstance(value, dict):
        if TAG not in value:
            return {k: _unpack(v) for k, v in value.items()}
        tag = value[TAG]
        decoder = _DECODERS.get(tag) if isinstance(tag, str) else None
        if decoder is None or "v" not in value:
            raise SerializationError(f"unknown serialized tag: {tag!r}")
        try:
            return decoder(value["v"])
        except (ValueError, TypeError, KeyError, IndexError, InvalidOperation, binascii.Error) as e:
            raise SerializationError(f"malformed '{tag}' payload: {e}") from e
    return value


def _has_tag(value: Any) -> bool:
    if isinstance(value, dict):
        return TAG in value or any(_has_tag(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(_has_tag(item) for item in value)
    return False


def encode(value: Any, is_json: bool = False) -> Tuple[str, bool]:
    """
    값을 저장용 텍스트로 변환합니다.

    Args:
        value: 저장할 값
        is_json: True이면 태그 처리 없이 json.dumps만 사용 (JSON 타입 전용, 더 빠름).
            값 안에 태그 키(``__holdkv__``)를 가진 dict가 있으면 읽을 때 태그로
            오인되므로 일반 경로로 직렬화합니다.

    Returns:
        (저장 텍스트, serialized 플래그)

    Raises:
        SerializationError: 표현할 수 없는 값
    """
    if type(value) is str:
        return value, False
    try:
        if is_json and not _has_tag(value):
            return json.dumps(value, allow_nan=False, separators=(",", ":")), True
        return json.dumps(_pack(value), allow_nan=False, separators=(",", ":")), True
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f"cannot serialize value: {e}") from e


def decode(text: str, serialized: bool) -> Any:
    """
    저장 텍스트를 원래 값으로 복원합니다.

    Args:
        text: 저장된 텍스트
        serialized: 저장 시 serialized 플래그

    Returns:
        복원된 값 (플래그가 False면 텍스트 그대로)

    Raises:
        SerializationError: 손상되었거나 알 수 없는 태그
    """
    if not serialized:
        return text
    try:
        document = json.loads(text)
    except ValueError as e:
        raise SerializationError(f"stored value is not valid JSON: {e}") from e
    return _unpack(document)
