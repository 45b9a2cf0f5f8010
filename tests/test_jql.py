"""Tests for jql module."""

import pytest

from src.tools.jira_errors import JiraValidationError
from src.tools.jql import (
    SearchFilters,
    build_jql_list_clause,
    build_search_jql,
    build_strict_jql,
    format_severity_jql_field,
    quote_jql_literal,
    with_default_order,
)


class TestQuoteJqlLiteral:
    """Tests for quote_jql_literal function."""

    def test_escapes_quotes(self) -> None:
        """Test double quotes are escaped."""
        assert quote_jql_literal('say "hi"') == '"say \\"hi\\""'

    def test_escapes_backslashes(self) -> None:
        """Test backslashes are escaped."""
        assert quote_jql_literal("a\\b") == '"a\\\\b"'


class TestBuildJqlListClause:
    """Tests for build_jql_list_clause function."""

    def test_single_value(self) -> None:
        """Test one value renders an equality."""
        assert build_jql_list_clause("status", ["Open"]) == 'status = "Open"'

    def test_multiple_values(self) -> None:
        """Test several values render an IN clause."""
        assert (
            build_jql_list_clause("status", ["Open", "In Progress"])
            == 'status IN ("Open", "In Progress")'
        )

    def test_blank_values_dropped(self) -> None:
        """Test blank values are ignored."""
        assert build_jql_list_clause("status", [" ", ""]) is None
        assert build_jql_list_clause("status", None) is None


class TestFormatSeverityJqlField:
    """Tests for format_severity_jql_field function."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("customfield_10001", "cf[10001]"),
            ("cf[10001]", "cf[10001]"),
            ("severity", "severity"),
            ("Bug Severity", '"Bug Severity"'),
        ],
    )
    def test_field_reference(self, raw: str, expected: str) -> None:
        """Test configured severity fields become JQL references."""
        assert format_severity_jql_field(raw) == expected


class TestBuildSearchJql:
    """Tests for build_search_jql function."""

    def test_structured_filters(self) -> None:
        """Test filters join with AND in a fixed order."""
        filters = SearchFilters(
            project_key="PROJ",
            issue_types=["Bug"],
            summary_contains="login",
            statuses=["Open", "In Progress"],
            severities=["Critical"],
        )

        jql = build_search_jql(filters, "customfield_10001")

        assert jql == (
            'project = "PROJ" AND issuetype = "Bug" AND summary ~ "login" '
            'AND status IN ("Open", "In Progress") AND cf[10001] = "Critical" '
            "ORDER BY updated DESC"
        )

    def test_raw_jql_combined(self) -> None:
        """Test raw JQL is parenthesised and combined with filters."""
        filters = SearchFilters(project_key="PROJ", jql="assignee = currentUser()")

        assert build_search_jql(filters, "severity") == (
            '(assignee = currentUser()) AND (project = "PROJ") ORDER BY updated DESC'
        )

    def test_existing_order_kept(self) -> None:
        """Test an explicit ORDER BY is not duplicated."""
        filters = SearchFilters(jql="project = PROJ order by created ASC")
        assert build_search_jql(filters, "severity") == "project = PROJ order by created ASC"

    def test_quotes_escaped(self) -> None:
        """Test quotes in filter values are escaped."""
        filters = SearchFilters(summary_contains='the "big" one')
        assert build_search_jql(filters, "severity").startswith('summary ~ "the \\"big\\" one"')

    def test_no_filters(self) -> None:
        """Test an empty search is rejected."""
        with pytest.raises(JiraValidationError, match="at least one filter"):
            build_search_jql(SearchFilters(statuses=[" "]), "severity")


class TestBuildStrictJql:
    """Tests for build_strict_jql function."""

    def test_adds_default_order(self) -> None:
        """Test the default order is appended."""
        assert build_strict_jql(" project = PROJ ") == "project = PROJ ORDER BY updated DESC"

    def test_empty(self) -> None:
        """Test blank JQL is rejected."""
        with pytest.raises(JiraValidationError, match="jql cannot be empty"):
            build_strict_jql("   ")

    def test_with_default_order_detects_order_by(self) -> None:
        """Test ORDER BY detection is case-insensitive."""
        assert with_default_order("x = 1 ORDER  BY key") == "x = 1 ORDER  BY key"
