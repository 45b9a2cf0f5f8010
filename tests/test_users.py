"""Tests for users module."""

from datetime import datetime, timezone
from typing import Any

import pytest
from conftest import FakeJira

from src.tools.jira_errors import JiraApiError, JiraValidationError
from src.tools.search import LEGACY_SEARCH_PATH
from src.tools.users import (
    ASSIGNABLE_USERS_PATH,
    count_recent_assigned_issues_by_user,
    fetch_top_assignable_users_by_recent_assignments,
    list_project_assignable_users,
    parse_jira_timestamp,
    to_active_assignable_users,
)

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)

USERS: list[dict[str, Any]] = [
    {"accountId": "u1", "displayName": "Ada", "emailAddress": "ada@example.com", "active": True},
    {"accountId": "u2", "displayName": "Bob", "active": True},
    {"accountId": "u3", "displayName": "Cy", "active": False},
    {"accountId": "u4", "active": True},
]


def assignment(to_id: str, created: str = "2024-03-20T10:00:00.000+0000") -> dict[str, Any]:
    return {"created": created, "items": [{"field": "assignee", "to": to_id}]}


def changelog_issue(
    key: str, histories: list[dict[str, Any]], assignee: str | None = None
) -> dict[str, Any]:
    fields = {"assignee": {"accountId": assignee} if assignee else None}
    return {"key": key, "fields": fields, "changelog": {"histories": histories}}


class TestToActiveAssignableUsers:
    """Tests for to_active_assignable_users function."""

    def test_active_only(self) -> None:
        """Test inactive users are dropped and names fall back."""
        users = to_active_assignable_users(USERS + [USERS[0]])

        assert [user.id for user in users] == ["u1", "u2", "u4"]
        assert users[0].email == "ada@example.com"
        assert users[2].name == "(no display name)"

    def test_unranked_count_omitted(self) -> None:
        """Test the assignment count is omitted until ranked."""
        user = to_active_assignable_users(USERS[:1])[0]

        assert user.model_dump(by_alias=True) == {
            "id": "u1",
            "name": "Ada",
            "email": "ada@example.com",
        }


class TestListProjectAssignableUsers:
    """Tests for list_project_assignable_users function."""

    def test_page(self, fake_jira: FakeJira) -> None:
        """Test one page is fetched with the project parameter."""
        fake_jira.add("GET", ASSIGNABLE_USERS_PATH, USERS)

        result = list_project_assignable_users("PROJ", 50, 10)

        assert fake_jira.calls[0].params == {"project": "PROJ", "maxResults": 50, "startAt": 10}
        assert [user.id for user in result.users] == ["u1", "u2", "u4"]
        assert result.active_only is True

    def test_retries_with_project_key(self, fake_jira: FakeJira) -> None:
        """Test a 400 retries the request with projectKey."""
        fake_jira.add(
            "GET",
            ASSIGNABLE_USERS_PATH,
            JiraApiError("GET", ASSIGNABLE_USERS_PATH, 400),
            USERS,
        )

        result = list_project_assignable_users("PROJ", 50)

        assert "projectKey" in fake_jira.calls[1].params
        assert len(result.users) == 3

    def test_other_errors_propagate(self, fake_jira: FakeJira) -> None:
        """Test errors other than 400 are not retried."""
        fake_jira.add("GET", ASSIGNABLE_USERS_PATH, JiraApiError("GET", ASSIGNABLE_USERS_PATH, 403))

        with pytest.raises(JiraApiError):
            list_project_assignable_users("PROJ", 50)

        assert len(fake_jira.calls) == 1

    @pytest.mark.parametrize(
        "args,message",
        [
            (("", 10), "projectKey"),
            (("PROJ", 0), "maxResults"),
            (("PROJ", 201), "maxResults"),
            (("PROJ", 10, -1), "startAt"),
        ],
    )
    def test_validation(self, fake_jira: FakeJira, args: tuple[Any, ...], message: str) -> None:
        """Test invalid paging arguments are rejected."""
        with pytest.raises(JiraValidationError, match=message):
            list_project_assignable_users(*args)
        assert fake_jira.calls == []


class TestParseJiraTimestamp:
    """Tests for parse_jira_timestamp function."""

    def test_formats(self) -> None:
        """Test timestamps with and without milliseconds."""
        assert parse_jira_timestamp("2024-03-01T10:15:30.000+0000") == datetime(
            2024, 3, 1, 10, 15, 30, tzinfo=timezone.utc
        )
        assert parse_jira_timestamp("2024-03-01T10:15:30+0000") is not None
        assert parse_jira_timestamp("yesterday") is None

    def test_offset_forms(self) -> None:
        """Test Z and colon offsets parse, and missing offsets read as UTC."""
        expected = datetime(2024, 3, 1, 10, 15, 30, tzinfo=timezone.utc)

        assert parse_jira_timestamp("2024-03-01T10:15:30Z") == expected
        assert parse_jira_timestamp("2024-03-01T10:15:30.000+00:00") == expected
        assert parse_jira_timestamp("2024-03-01T10:15:30.000") == expected


class TestRecentAssignments:
    """Tests for the recent-assignment ranking."""

    def test_counts_distinct_issues_in_window(self, fake_jira: FakeJira) -> None:
        """Test assignments are counted once per issue inside the window."""
        fake_jira.add(
            "POST",
            LEGACY_SEARCH_PATH,
            {
                "total": 3,
                "issues": [
                    changelog_issue("PROJ-1", [assignment("u1"), assignment("u1")]),
                    changelog_issue("PROJ-2", [assignment("u2"), assignment("u1")]),
                    changelog_issue("PROJ-3", [assignment("u2", "2023-01-01T00:00:00.000+0000")]),
                ],
            },
        )

        counts, truncated = count_recent_assigned_issues_by_user("PROJ", now=NOW)

        assert counts == {"u1": 2, "u2": 1}
        assert truncated is False
        body = fake_jira.calls[0].body
        assert body["jql"] == 'project = "PROJ" AND updated >= -60d ORDER BY updated DESC'
        assert body["expand"] == "changelog"

    def test_falls_back_to_current_assignees(self, fake_jira: FakeJira) -> None:
        """Test current assignees are counted when no assignment changes exist."""
        fake_jira.add(
            "POST",
            LEGACY_SEARCH_PATH,
            {"total": 2, "issues": [changelog_issue("PROJ-1", [], "u2"), changelog_issue("PROJ-2", [], "u2")]},
        )

        counts, _ = count_recent_assigned_issues_by_user("PROJ", now=NOW)

        assert counts == {"u2": 2}

    def test_history_without_offset_counted(self, fake_jira: FakeJira) -> None:
        """Test history entries without an offset still count inside the window."""
        fake_jira.add(
            "POST",
            LEGACY_SEARCH_PATH,
            {"total": 1, "issues": [changelog_issue("PROJ-1", [assignment("u1", "2024-03-20T10:00:00.000")])]},
        )

        counts, _ = count_recent_assigned_issues_by_user("PROJ", now=NOW)

        assert counts == {"u1": 1}

    def test_bounded_scan(self, fake_jira: FakeJira) -> None:
        """Test the scan stops at its cap and reports truncation."""
        page = {"total": 500, "issues": [changelog_issue(f"PROJ-{i}", []) for i in range(50)]}
        fake_jira.add("POST", LEGACY_SEARCH_PATH, page)

        _, truncated = count_recent_assigned_issues_by_user("PROJ", max_issues_to_scan=100, now=NOW)

        assert truncated is True
        assert len(fake_jira.calls) == 2

    def test_ranking(self, fake_jira: FakeJira) -> None:
        """Test users are sorted by count then name and capped."""
        fake_jira.add("GET", ASSIGNABLE_USERS_PATH, USERS[:3])
        fake_jira.add(
            "POST",
            LEGACY_SEARCH_PATH,
            {"total": 1, "issues": [changelog_issue("PROJ-1", [assignment("u2")])]},
        )

        ranked, truncated = fetch_top_assignable_users_by_recent_assignments(
            "PROJ", limit=2, now=NOW
        )

        assert [(user.id, user.assigned_issues_last_60_days) for user in ranked] == [
            ("u2", 1),
            ("u1", 0),
        ]
        assert truncated is False
        assert ranked[0].model_dump(by_alias=True)["assignedIssuesLast60Days"] == 1

    def test_no_users(self, fake_jira: FakeJira) -> None:
        """Test no issue scan happens without assignable users."""
        fake_jira.add("GET", ASSIGNABLE_USERS_PATH, [])

        assert fetch_top_assignable_users_by_recent_assignments("PROJ") == ([], False)
        assert fake_jira.calls_to("POST", LEGACY_SEARCH_PATH) == []
