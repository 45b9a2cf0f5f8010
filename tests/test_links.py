"""Tests for links module."""

from typing import Any

import pytest
from conftest import FakeJira

from src.tools.jira_errors import JiraResolutionError, JiraValidationError
from src.tools.links import label_alias_set, link_issue, resolve_issue_link

LINK_TYPES: list[dict[str, Any]] = [
    {"id": "1", "name": "Blocks", "outward": "blocks", "inward": "is blocked by"},
    {"id": "2", "name": "Relates", "outward": "relates to", "inward": "relates to"},
    {"id": "3", "name": "Duplicate", "outward": "duplicates", "inward": "is duplicated by"},
]


class TestLabelAliasSet:
    """Tests for label_alias_set function."""

    def test_is_prefix_alias(self) -> None:
        """Test labels starting with 'is' also match without it."""
        assert label_alias_set("is blocked by") == {"isblockedby", "blockedby"}

    def test_plain_label(self) -> None:
        """Test other labels have a single alias."""
        assert label_alias_set("Blocks") == {"blocks"}

    def test_empty(self) -> None:
        """Test empty labels have no aliases."""
        assert label_alias_set("  ") == set()


class TestResolveIssueLink:
    """Tests for resolve_issue_link function."""

    def test_outward_relation(self) -> None:
        """Test an outward label keeps the source as the outward issue."""
        resolved = resolve_issue_link("A-1", "B-2", "blocks", LINK_TYPES)

        assert resolved.link_type == "Blocks"
        assert resolved.direction == "outward"
        assert resolved.outward_issue_key == "A-1"
        assert resolved.inward_issue_key == "B-2"

    def test_inward_relation(self) -> None:
        """Test an inward label swaps the issue roles."""
        resolved = resolve_issue_link("A-1", "B-2", "is blocked by", LINK_TYPES)

        assert resolved.relation == "is blocked by"
        assert resolved.direction == "inward"
        assert resolved.outward_issue_key == "B-2"
        assert resolved.inward_issue_key == "A-1"

    def test_alias_matches_inward_label(self) -> None:
        """Test 'blocked by' matches the inward 'is blocked by' label."""
        resolved = resolve_issue_link("A-1", "B-2", "Blocked-By", LINK_TYPES)
        assert resolved.direction == "inward"

    def test_outward_label_with_is_prefix(self) -> None:
        """Test 'is blocked by' matches an outward label 'blocked by'."""
        link_types = [{"name": "Dependency", "outward": "blocked by", "inward": "unblocks"}]

        resolved = resolve_issue_link("A-1", "B-2", "is blocked by", link_types)

        assert resolved.direction == "outward"
        assert resolved.relation == "blocked by"

    def test_type_name_match(self) -> None:
        """Test the link type name matches as an outward relation."""
        resolved = resolve_issue_link("A-1", "B-2", "duplicate", LINK_TYPES)

        assert resolved.link_type == "Duplicate"
        assert resolved.relation == "duplicates"
        assert resolved.direction == "outward"

    def test_unknown_relation(self) -> None:
        """Test unknown relations list the available labels."""
        with pytest.raises(JiraResolutionError) as exc_info:
            resolve_issue_link("A-1", "B-2", "causes", LINK_TYPES)

        assert "Available relations: blocks, is blocked by, Blocks" in str(exc_info.value)
        assert "relates to" in exc_info.value.valid_values


class TestLinkIssue:
    """Tests for link_issue function."""

    def test_creates_link_with_comment(self, fake_jira: FakeJira) -> None:
        """Test the link request carries both issues and the comment."""
        fake_jira.add("GET", "/rest/api/3/issueLinkType", {"issueLinkTypes": LINK_TYPES})
        fake_jira.add("POST", "/rest/api/3/issueLink", None)

        result = link_issue("A-1", "B-2", "is blocked by", comment="see B-2")

        body = fake_jira.calls_to("POST", "/rest/api/3/issueLink")[0].body
        assert body["type"] == {"name": "Blocks"}
        assert body["outwardIssue"] == {"key": "B-2"}
        assert body["inwardIssue"] == {"key": "A-1"}
        assert body["comment"]["body"]["type"] == "doc"
        assert result.direction == "inward"
        assert result.link_type == "Blocks"

    def test_missing_arguments(self, fake_jira: FakeJira) -> None:
        """Test blank arguments are rejected before any request."""
        with pytest.raises(JiraValidationError, match="required"):
            link_issue("A-1", " ", "blocks")
        assert fake_jira.calls == []
