"""Tests for tool_utils module."""

import pytest

from src.tools.tool_utils import (
    as_dict,
    as_list,
    extract_name_list,
    extract_scalar_value,
    extract_user_name,
    normalize_label_for_match,
    normalize_string,
)


class TestNormalizeString:
    """Tests for normalize_string function."""

    def test_strips(self) -> None:
        """Test strings are stripped."""
        assert normalize_string("  Open ") == "Open"

    @pytest.mark.parametrize("value", ["", "   ", None, 5, {"name": "x"}])
    def test_blank_or_non_string(self, value: object) -> None:
        """Test blanks and non-strings yield None."""
        assert normalize_string(value) is None


class TestExtractScalarValue:
    """Tests for extract_scalar_value function."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, None),
            ("  High ", "High"),
            ("", None),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (2.0, "2"),
            (2.5, "2.5"),
            (["a", " ", "b"], "a, b"),
            ([], None),
            ({"value": "Critical"}, "Critical"),
            ({"name": "Blocker", "value": "Critical"}, "Blocker"),
            ({"name": " ", "label": "Minor"}, "Minor"),
            ({"displayName": "Ada"}, "Ada"),
            ({"key": "PROJ-1", "id": "10"}, "PROJ-1"),
            ({"id": "10"}, "10"),
            ({"other": "x"}, None),
        ],
    )
    def test_precedence(self, value: object, expected: str | None) -> None:
        """Test scalar extraction over every supported shape."""
        assert extract_scalar_value(value) == expected


class TestExtractNameList:
    """Tests for extract_name_list function."""

    def test_versions(self) -> None:
        """Test version objects render to their names."""
        assert extract_name_list([{"name": "1.0"}, {"name": "2.0"}, {}]) == ["1.0", "2.0"]

    def test_non_list(self) -> None:
        """Test non-list values yield an empty list."""
        assert extract_name_list(None) == []


class TestExtractUserName:
    """Tests for extract_user_name function."""

    def test_display_name_first(self) -> None:
        """Test displayName is preferred."""
        assert extract_user_name({"displayName": "Ada", "accountId": "1"}) == "Ada"

    def test_account_id_fallback(self) -> None:
        """Test accountId is the last fallback."""
        assert extract_user_name({"accountId": "abc"}) == "abc"

    def test_not_a_user(self) -> None:
        """Test non-objects yield None."""
        assert extract_user_name("Ada") is None


class TestNormalizeLabelForMatch:
    """Tests for normalize_label_for_match function."""

    def test_drops_punctuation_and_case(self) -> None:
        """Test labels match regardless of case and separators."""
        assert normalize_label_for_match("Is Blocked-By") == "isblockedby"

    def test_empty(self) -> None:
        """Test None and empty labels normalize to an empty string."""
        assert normalize_label_for_match(None) == ""
        assert normalize_label_for_match("") == ""


class TestCoercion:
    """Tests for as_dict and as_list functions."""

    def test_as_dict(self) -> None:
        """Test only dicts pass through."""
        assert as_dict({"a": 1}) == {"a": 1}
        assert as_dict([1]) == {}

    def test_as_list(self) -> None:
        """Test only lists pass through."""
        assert as_list([1]) == [1]
        assert as_list(None) == []
