"""Jira connection configuration.

The configuration is read once from the environment (a `.env` file is loaded
by `main.py` beforehand) and never mutated afterwards.
"""

import base64
import functools
import os
from collections.abc import Mapping
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

SeverityValueType = Literal["option", "string", "number"]

SEVERITY_VALUE_TYPES: tuple[str, ...] = ("option", "string", "number")

DEFAULT_REQUEST_TIMEOUT_MS: int = 20_000


class JiraConfig(BaseModel):
    """Immutable Jira connection and severity field settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="Jira Cloud base URL without trailing slash.")
    auth_header: str = Field(description="Value sent in the Authorization header.")
    request_timeout_ms: int = Field(
        default=DEFAULT_REQUEST_TIMEOUT_MS,
        description="Timeout applied to every Jira request, in milliseconds.",
    )
    severity_field_id: str | None = Field(
        default=None, description="Custom field id holding severity."
    )
    severity_jql_field: str = Field(
        default="severity", description="Field reference used for severity in JQL."
    )
    severity_value_type: SeverityValueType = Field(
        default="option", description="Shape of the severity value sent on writes."
    )


def _normalize_optional(value: str | None) -> str | None:
    trimmed = value.strip() if value else ""
    return trimmed or None


def _read_required(value: str | None, name: str) -> str:
    trimmed = _normalize_optional(value)
    if not trimmed:
        raise ValueError(f"Missing required environment variable: {name}")
    return trimmed


def _normalize_base_url(raw: str) -> str:
    trimmed = raw.strip().rstrip("/")
    parsed = urlparse(trimmed)

    if not parsed.scheme or not parsed.netloc:
        raise ValueError(
            "JIRA_BASE_URL must be a valid URL, e.g. https://your-domain.atlassian.net"
        )

    if parsed.scheme != "https":
        raise ValueError("JIRA_BASE_URL must use HTTPS.")

    return trimmed


def _parse_timeout(raw: str | None) -> int:
    trimmed = _normalize_optional(raw)
    if not trimmed:
        return DEFAULT_REQUEST_TIMEOUT_MS

    try:
        timeout_ms = int(trimmed)
    except ValueError:
        timeout_ms = 0

    if timeout_ms <= 0:
        raise ValueError("JIRA_REQUEST_TIMEOUT_MS must be a positive integer.")

    return timeout_ms


def _parse_severity_value_type(raw: str | None) -> SeverityValueType:
    normalized = (_normalize_optional(raw) or "").lower()
    if not normalized:
        return "option"

    if normalized not in SEVERITY_VALUE_TYPES:
        raise ValueError(
            "JIRA_SEVERITY_VALUE_TYPE must be one of: option, string, number."
        )

    return normalized  # type: ignore[return-value]


def load_jira_config(env: Mapping[str, str] | None = None) -> JiraConfig:
    """Build a JiraConfig from environment variables.

    Args:
        env: Mapping to read from. Defaults to `os.environ`.

    Returns:
        Validated JiraConfig.

    Raises:
        ValueError: If a required variable is missing or a value is invalid.
    """
    if env is None:
        env = os.environ

    base_url = _normalize_base_url(_read_required(env.get("JIRA_BASE_URL"), "JIRA_BASE_URL"))

    auth_header = _normalize_optional(env.get("JIRA_AUTH_HEADER"))
    if not auth_header:
        email = _read_required(env.get("JIRA_EMAIL"), "JIRA_EMAIL")
        token = _read_required(env.get("JIRA_API_TOKEN"), "JIRA_API_TOKEN")
        credentials = base64.b64encode(f"{email}:{token}".encode()).decode("ascii")
        auth_header = f"Basic {credentials}"

    severity_field_id = _normalize_optional(env.get("JIRA_SEVERITY_FIELD_ID"))
    severity_jql_field = (
        _normalize_optional(env.get("JIRA_SEVERITY_JQL_FIELD"))
        or severity_field_id
        or "severity"
    )

    return JiraConfig(
        base_url=base_url,
        auth_header=auth_header,
        request_timeout_ms=_parse_timeout(env.get("JIRA_REQUEST_TIMEOUT_MS")),
        severity_field_id=severity_field_id,
        severity_jql_field=severity_jql_field,
        severity_value_type=_parse_severity_value_type(
            env.get("JIRA_SEVERITY_VALUE_TYPE")
        ),
    )


@functools.lru_cache(maxsize=1)
def get_jira_config() -> JiraConfig:
    """Return the process-wide configuration, loading it on first use."""
    return load_jira_config()
