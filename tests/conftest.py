"""Shared pytest fixtures for jira-focused-mcp tests."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
from src.models.jira_config import JiraConfig, get_jira_config

BASE_ENV: dict[str, str] = {
    "JIRA_BASE_URL": "https://example.atlassian.net",
    "JIRA_EMAIL": "bot@example.com",
    "JIRA_API_TOKEN": "test-token",
    "JIRA_AUTH_HEADER": "",
    "JIRA_REQUEST_TIMEOUT_MS": "",
    "JIRA_SEVERITY_FIELD_ID": "",
    "JIRA_SEVERITY_JQL_FIELD": "",
    "JIRA_SEVERITY_VALUE_TYPE": "",
}


@dataclass
class JiraCall:
    """One request seen by FakeJira."""

    method: str
    path: str
    params: dict[str, Any] | None
    body: Any


class FakeJira:
    """Stand-in for `jira_request` that answers from registered routes.

    Responses registered for the same method and path are returned in
    order; the last one keeps answering. Exception instances are raised.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.calls: list[JiraCall] = []

    def add(self, method: str, path: str, *responses: Any) -> "FakeJira":
        self.routes.setdefault((method, path), []).extend(responses or [None])
        return self

    def __call__(
        self,
        path: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        body: Any = None,
        config: JiraConfig | None = None,
    ) -> Any:
        self.calls.append(JiraCall(method, path, params, body))

        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"Unexpected Jira request: {method} {path}")

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, BaseException):
            raise response
        return response

    def calls_to(self, method: str, path: str) -> list[JiraCall]:
        return [call for call in self.calls if call.method == method and call.path == path]


def _configure(overrides: dict[str, str]) -> Iterator[JiraConfig]:
    with patch.dict("os.environ", {**BASE_ENV, **overrides}):
        get_jira_config.cache_clear()
        yield get_jira_config()
    get_jira_config.cache_clear()


@pytest.fixture
def jira_env() -> Iterator[JiraConfig]:
    """Environment for a Jira site without a severity field."""
    yield from _configure({})


@pytest.fixture
def severity_env() -> Iterator[JiraConfig]:
    """Environment for a Jira site with an option-type severity field."""
    yield from _configure({"JIRA_SEVERITY_FIELD_ID": "customfield_10001"})


@pytest.fixture
def fake_jira(jira_env: JiraConfig) -> Iterator[FakeJira]:
    """Route every Jira request through a FakeJira instance."""
    fake = FakeJira()
    with patch("src.tools.jira_executor.jira_request", new=fake):
        yield fake


@pytest.fixture
def severity_jira(severity_env: JiraConfig) -> Iterator[FakeJira]:
    """FakeJira for a site with a configured severity field."""
    fake = FakeJira()
    with patch("src.tools.jira_executor.jira_request", new=fake):
        yield fake


def adf(*lines: str) -> dict[str, Any]:
    """Build a minimal ADF document with one paragraph per line."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": line}]}
            for line in lines
        ],
    }


def raw_issue(key: str = "PROJ-1", **fields: Any) -> dict[str, Any]:
    """Raw Jira issue payload with sensible focused fields."""
    base: dict[str, Any] = {
        "summary": "Login fails",
        "description": adf("Steps to reproduce"),
        "fixVersions": [{"id": "100", "name": "1.0"}],
        "versions": [],
        "status": {"id": "1", "name": "Open", "statusCategory": {"name": "To Do"}},
        "priority": {"id": "3", "name": "Medium"},
        "issuetype": {"id": "10001", "name": "Bug"},
        "project": {"key": "PROJ"},
        "subtasks": [],
        "issuelinks": [],
    }
    base.update(fields)
    return {"id": "10000", "key": key, "fields": base}


@pytest.fixture
def sample_raw_issue() -> dict[str, Any]:
    """Raw issue payload for PROJ-1."""
    return raw_issue()
