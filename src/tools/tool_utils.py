"""Shared helpers for reading loosely-typed Jira payloads.

Jira returns the same logical value as a string, a number, a list, or a nested
object depending on field type and configuration. Everything that reads such
values goes through `extract_scalar_value` so the precedence rules live in
one place.
"""

import re
from typing import Any

# Object keys tried, in order, when a value arrives as a nested object.
SCALAR_KEYS: tuple[str, ...] = ("name", "value", "label", "displayName", "key", "id")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_string(value: Any) -> str | None:
    """Return a stripped non-empty string, or None for anything else."""
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    return normalized or None


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def extract_scalar_value(value: Any) -> str | None:
    """Reduce a loosely-typed Jira value to a display string.

    Args:
        value: String, number, boolean, list, or object from a Jira payload.

    Returns:
        Strings are stripped, numbers and booleans rendered, lists joined with
        ", ", and objects reduced to their first non-blank key from
        SCALAR_KEYS. None when nothing usable is present.
    """
    if value is None:
        return None

    if isinstance(value, str):
        return normalize_string(value)

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return _format_number(value)

    if isinstance(value, list):
        rendered = [item for item in (extract_scalar_value(v) for v in value) if item]
        return ", ".join(rendered) if rendered else None

    if isinstance(value, dict):
        for key in SCALAR_KEYS:
            candidate = normalize_string(value.get(key))
            if candidate:
                return candidate

    return None


def extract_name_list(value: Any) -> list[str]:
    """Render each element of a list of versions, components, etc."""
    if not isinstance(value, list):
        return []
    return [item for item in (extract_scalar_value(entry) for entry in value) if item]


def extract_user_name(value: Any) -> str | None:
    """Best display label for a Jira user object."""
    if not isinstance(value, dict):
        return None
    for key in ("displayName", "name", "emailAddress", "accountId"):
        candidate = normalize_string(value.get(key))
        if candidate:
            return candidate
    return None


def normalize_label_for_match(value: str | None) -> str:
    """Lowercase and drop every non-alphanumeric character.

    "Is Blocked-By" and "is blocked by" both become "isblockedby".
    """
    if not value:
        return ""
    return _NON_ALNUM.sub("", value.lower())


def as_dict(value: Any) -> dict[str, Any]:
    """Return value when it is a dict, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    """Return value when it is a list, otherwise an empty list."""
    return value if isinstance(value, list) else []
