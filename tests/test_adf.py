"""Tests for adf module."""

import json

import pytest

from src.tools.adf import (
    adf_to_plain_text,
    empty_adf_document,
    is_adf_document,
    parse_adf_like_value,
    plain_text_to_adf,
    to_adf_document,
)


class TestPlainTextToAdf:
    """Tests for plain_text_to_adf function."""

    def test_one_paragraph_per_line(self) -> None:
        """Test each line becomes a paragraph."""
        document = plain_text_to_adf("first\r\n\nthird")

        assert document["type"] == "doc"
        assert document["version"] == 1
        assert document["content"] == [
            {"type": "paragraph", "content": [{"type": "text", "text": "first"}]},
            {"type": "paragraph", "content": []},
            {"type": "paragraph", "content": [{"type": "text", "text": "third"}]},
        ]

    @pytest.mark.parametrize(
        "text",
        ["single line", "line one\nline two", "a\nb\nc", "  padded text  \nnext"],
    )
    def test_round_trip(self, text: str) -> None:
        """Test text without blank lines survives a round trip."""
        assert adf_to_plain_text(plain_text_to_adf(text)) == text.strip()


class TestAdfToPlainText:
    """Tests for adf_to_plain_text function."""

    def test_nested_blocks(self) -> None:
        """Test headings, lists and hard breaks render as lines."""
        document = {
            "type": "doc",
            "version": 1,
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Title"}]},
                {
                    "type": "bulletList",
                    "content": [
                        {
                            "type": "listItem",
                            "content": [
                                {"type": "paragraph", "content": [{"type": "text", "text": "item"}]}
                            ],
                        }
                    ],
                },
                {
                    "type": "paragraph",
                    "content": [
                        {"type": "text", "text": "a"},
                        {"type": "hardBreak"},
                        {"type": "text", "text": "b"},
                    ],
                },
            ],
        }

        assert adf_to_plain_text(document) == "Title\nitem\n\na\nb"

    def test_collapses_blank_runs(self) -> None:
        """Test runs of empty paragraphs collapse to one blank line."""
        document = plain_text_to_adf("top\n\n\n\nbottom")
        assert adf_to_plain_text(document) == "top\n\nbottom"

    def test_unknown_nodes_render_children(self) -> None:
        """Test unknown node types keep their text."""
        document = {
            "type": "doc",
            "version": 1,
            "content": [{"type": "panel", "content": [{"type": "text", "text": "note"}]}],
        }
        assert adf_to_plain_text(document) == "note"

    @pytest.mark.parametrize("value", [None, "text", 3, []])
    def test_non_documents(self, value: object) -> None:
        """Test non-document values render as empty text."""
        assert adf_to_plain_text(value) == ""


class TestAdfValidation:
    """Tests for ADF parsing and validation."""

    def test_parse_json_string(self) -> None:
        """Test ADF documents can arrive as JSON strings."""
        document = plain_text_to_adf("x")
        assert parse_adf_like_value(json.dumps(document)) == document

    @pytest.mark.parametrize("value", ["", "not json", "[1, 2]", 7, None])
    def test_parse_rejects(self, value: object) -> None:
        """Test non-object values are not parsed."""
        assert parse_adf_like_value(value) is None

    def test_is_adf_document(self) -> None:
        """Test the root shape check."""
        assert is_adf_document({"type": "doc", "version": 1, "content": []})
        assert not is_adf_document({"type": "paragraph", "version": 1, "content": []})
        assert not is_adf_document({"type": "doc", "version": True, "content": []})
        assert not is_adf_document({"type": "doc", "version": 1})

    def test_to_adf_document_falls_back_to_empty(self) -> None:
        """Test invalid values become an empty document."""
        assert to_adf_document("plain text") == empty_adf_document()
        assert to_adf_document(plain_text_to_adf("x")) == plain_text_to_adf("x")
