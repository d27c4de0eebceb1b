"""
키 코덱 단위 테스트

이 모듈은 복합 키 분리/결합과 토픽 이름 검증을 테스트합니다.
"""

import pytest
from hypothesis import given, strategies as st

from holdkv.core.errors import InvalidKeyError, InvalidTopicError
from holdkv.core.keys import (
    column_names, is_match_all, is_wildcard, join_key, split_key, validate_topic,
)


segment = st.text(alphabet=st.characters(blacklist_characters=":"), max_size=10)


class TestSplitKey:
    """split_key 테스트"""

    def test_single_segment(self):
        assert split_key("key") == ["key"]

    def test_multiple_segments(self):
        assert split_key("key:with:separators") == ["key", "with", "separators"]

    def test_empty_key_defaults(self):
        assert split_key("") == ["key"]

    def test_empty_segments_are_kept(self):
        assert split_key("a::b") == ["a", "", "b"]

    def test_non_string_key(self):
        with pytest.raises(InvalidKeyError):
            split_key(123)

    def test_invalid_key_is_value_error(self):
        with pytest.raises(ValueError):
            split_key(None)

    @given(segments=st.lists(segment, min_size=1, max_size=8))
    def test_join_then_split(self, segments):
        """구분자가 없는 세그먼트는 결합 후 분리해도 같다"""
        key = join_key(segments)
        if key == "":
            return
        assert split_key(key) == segments


class TestWildcards:
    """와일드카드 판정 테스트"""

    def test_wildcard_segment(self):
        assert is_wildcard("*")
        assert not is_wildcard("a*")
        assert not is_wildcard("")

    def test_match_all(self):
        assert is_match_all("*")
        assert not is_match_all("*:*")
        assert not is_match_all("a")


class TestTopicValidation:
    """토픽 이름 검증 테스트"""

    @pytest.mark.parametrize("topic", ["topic", "my_topic", "_t1", "T"])
    def test_valid_topics(self, topic):
        assert validate_topic(topic) == topic

    @pytest.mark.parametrize("topic", ["", "1abc", "a-b", "a b", 'x"; DROP TABLE y; --', "t.t"])
    def test_invalid_topics(self, topic):
        with pytest.raises(InvalidTopicError):
            validate_topic(topic)

    def test_column_names(self):
        assert column_names(3) == ["col0", "col1", "col2"]
