"""Conversion between Atlassian Document Format (ADF) and plain text."""

import json
import re
from typing import Any

from src.models.jira_tickets import AdfDocument

ADF_VERSION: int = 1

# Node types rendered as their children followed by a line break.
BLOCK_NODE_TYPES: frozenset[str] = frozenset(
    {"paragraph", "heading", "codeBlock", "blockquote", "listItem"}
)

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def empty_adf_document() -> AdfDocument:
    return {"type": "doc", "version": ADF_VERSION, "content": []}


def plain_text_to_adf(text: str) -> AdfDocument:
    """Convert plain text to an ADF document with one paragraph per line.

    Args:
        text: Plain text, LF or CRLF line endings.

    Returns:
        ADF document. Empty lines become paragraphs without content.
    """
    lines = text.replace("\r\n", "\n").split("\n")

    return {
        "type": "doc",
        "version": ADF_VERSION,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": line}] if line else [],
            }
            for line in lines
        ],
    }


def _render_node(node: dict[str, Any]) -> str:
    node_type = node.get("type")

    if node_type == "text":
        text = node.get("text")
        return text if isinstance(text, str) else ""

    if node_type == "hardBreak":
        return "\n"

    content = node.get("content")
    children = ""
    if isinstance(content, list):
        children = "".join(_render_node(child) for child in content if isinstance(child, dict))

    if node_type in BLOCK_NODE_TYPES:
        return f"{children}\n"

    # Unknown node types render their children and drop their attributes.
    return children


def adf_to_plain_text(document: Any) -> str:
    """Convert an ADF document to plain text.

    Args:
        document: ADF document as a dictionary. Anything else yields "".

    Returns:
        Plain text with runs of 3+ newlines collapsed to 2, stripped.
    """
    if not isinstance(document, dict):
        return ""

    return _EXCESS_NEWLINES.sub("\n\n", _render_node(document)).strip()


def parse_adf_like_value(value: Any) -> dict[str, Any] | None:
    """Accept an ADF object, or a JSON string encoding one."""
    if not value:
        return None

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None

    if isinstance(value, dict):
        return value

    return None


def is_adf_document(value: dict[str, Any]) -> bool:
    """Check the root shape `{type: "doc", version: <number>, content: [...]}`."""
    version = value.get("version")
    doc_type = value.get("type")
    return (
        isinstance(doc_type, str)
        and doc_type.strip() == "doc"
        and isinstance(version, (int, float))
        and not isinstance(version, bool)
        and isinstance(value.get("content"), list)
    )


def to_adf_document(value: Any) -> AdfDocument:
    """Return value as an ADF document, or an empty document if it is not one."""
    parsed = parse_adf_like_value(value)
    if parsed is None or not is_adf_document(parsed):
        return empty_adf_document()
    return parsed
