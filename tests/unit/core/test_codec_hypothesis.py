"""
hypothesis를 활용한 값 코덱 테스트

이 모듈은 문자열 외 값의 직렬화/복원과 태그 기반 역직렬화의
안전성을 테스트합니다.
"""

import json
import math
import re
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from urllib.parse import urlparse, urlsplit

import pytest
from hypothesis import given, strategies as st

from holdkv.core.codec import TAG, CallableSource, decode, encode
from holdkv.core.errors import SerializationError


def echo(arg):
    return arg


json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.floats(allow_nan=False, allow_infinity=False) | st.text(),
    lambda children: st.lists(children, max_size=4) | st.dictionaries(st.text(max_size=5), children, max_size=4),
    max_leaves=20,
)


class TestStringValues:
    """문자열 값 테스트"""

    @given(value=st.text())
    def test_strings_stored_verbatim(self, value):
        stored, serialized = encode(value)
        assert stored == value
        assert serialized is False
        assert decode(stored, serialized) == value

    def test_unserialized_text_is_returned_unchanged(self):
        assert decode('{"__holdkv__": "int", "v": "1"}', False) == '{"__holdkv__": "int", "v": "1"}'


class TestRoundTrip:
    """직렬화 왕복 테스트"""

    @given(value=json_values)
    def test_json_values(self, value):
        stored, serialized = encode(value)
        if isinstance(value, str):
            assert serialized is False
        else:
            assert serialized is True
        assert decode(stored, serialized) == value

    @given(value=st.integers())
    def test_big_integers(self, value):
        assert decode(*encode(value)) == value

    @pytest.mark.parametrize("value", [
        None, True, False, 123456, 1.5, [1, 2, 3], {"value": "value"},
        10 ** 30, -(10 ** 30),
        (1, "a", None),
        {1: "one", (2, 3): "pair"},
        {TAG: "not a tag"},
        {123, 456},
        frozenset({"a", "b"}),
        datetime(2016, 4, 28, 22, 2, 17, tzinfo=timezone.utc),
        datetime(2016, 4, 28, 22, 2, 17),
        date(2016, 4, 28),
        time(22, 2, 17, 500),
        timedelta(days=2, seconds=5, microseconds=7),
        Decimal("3.14159265358979323846"),
        uuid.UUID("12345678-1234-5678-1234-567812345678"),
        b"\x00\x01binary",
        urlparse("https://example.com/"),
        urlsplit("https://example.com/path?q=1#frag"),
        [{"nested": {1, 2}}, (date(2020, 1, 1),)],
    ])
    def test_extended_types(self, value):
        stored, serialized = encode(value)
        assert serialized is True
        assert decode(stored, serialized) == value

    def test_bytearray_decodes_as_bytes(self):
        assert decode(*encode(bytearray(b"abc"))) == b"abc"

    @pytest.mark.parametrize("value", [math.inf, -math.inf])
    def test_infinity(self, value):
        assert decode(*encode(value)) == value

    def test_nan(self):
        assert math.isnan(decode(*encode(math.nan)))

    def test_regex(self):
        pattern = re.compile(r"([^\s]+)", re.IGNORECASE)
        restored = decode(*encode(pattern))
        assert restored.pattern == r"([^\s]+)"
        assert restored.flags & re.IGNORECASE
        assert restored.findall("a b") == ["a", "b"]

    def test_url(self):
        restored = decode(*encode(urlparse("https://example.com/")))
        assert restored.geturl() == "https://example.com/"

    def test_function_is_stored_as_source(self):
        restored = decode(*encode(echo))
        assert isinstance(restored, CallableSource)
        assert restored.startswith("def echo(arg):")
        assert "return arg" in restored

    def test_builtin_is_stored_as_name(self):
        restored = decode(*encode(len))
        assert restored == "builtins.len"

    def test_callable_source_round_trips(self):
        source = CallableSource("def f(): pass")
        restored = decode(*encode(source))
        assert isinstance(restored, CallableSource)
        assert restored == source


class TestJsonMode:
    """is_json 모드 테스트"""

    def test_plain_json(self):
        stored, serialized = encode({"value": "value"}, is_json=True)
        assert serialized is True
        assert json.loads(stored) == {"value": "value"}
        assert decode(stored, serialized)["value"] == "value"

    def test_non_json_type_rejected(self):
        with pytest.raises(SerializationError):
            encode({1, 2}, is_json=True)

    def test_non_finite_rejected(self):
        with pytest.raises(SerializationError):
            encode(math.inf, is_json=True)

    def test_tag_keyed_dict_round_trips(self):
        value = {"__holdkv__": "x", "v": 1}
        stored, serialized = encode(value, is_json=True)
        assert decode(stored, serialized) == value

    def test_nested_tag_keyed_dict_round_trips(self):
        value = {"items": [{TAG: "int", "v": "7"}]}
        stored, serialized = encode(value, is_json=True)
        assert decode(stored, serialized) == value


class TestSafeDecoding:
    """닫힌 태그 집합 역직렬화 테스트"""

    def test_unknown_tag(self):
        with pytest.raises(SerializationError, match="unknown serialized tag"):
            decode(json.dumps({TAG: "exec", "v": "__import__('os')"}), True)

    def test_missing_payload(self):
        with pytest.raises(SerializationError):
            decode(json.dumps({TAG: "int"}), True)

    def test_malformed_payload(self):
        with pytest.raises(SerializationError, match="malformed"):
            decode(json.dumps({TAG: "date", "v": "not-a-date"}), True)

    def test_invalid_json(self):
        with pytest.raises(SerializationError):
            decode("function () { return 1 }", True)

    def test_code_is_never_executed(self):
        payload = json.dumps({TAG: "callable", "v": "__import__('os').system('false')"})
        restored = decode(payload, True)
        assert isinstance(restored, CallableSource)
        assert restored == "__import__('os').system('false')"


class TestUnsupported:
    """직렬화할 수 없는 값 테스트"""

    def test_arbitrary_object(self):
        with pytest.raises(SerializationError):
            encode(object())

    def test_bytes_regex(self):
        with pytest.raises(SerializationError):
            encode(re.compile(rb"abc"))

    def test_cyclic_list(self):
        value = []
        value.append(value)
        with pytest.raises(SerializationError):
            encode(value)
