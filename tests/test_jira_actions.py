"""Tests for jira_actions models."""

from src.models.jira_actions import (
    UNSET,
    AssignableUser,
    IssueTransitionResult,
    SearchIssuesByJqlResult,
    Unset,
)
from src.models.project_baseline import WorkflowTransitionEdge


class TestUnset:
    """Tests for the UNSET marker."""

    def test_falsy_and_distinct_from_none(self) -> None:
        """Test UNSET is falsy but not None."""
        assert not UNSET
        assert UNSET is not None
        assert isinstance(UNSET, Unset)
        assert repr(UNSET) == "UNSET"


class TestResultModels:
    """Tests for result model serialization."""

    def test_transition_result_sparse(self) -> None:
        """Test applied transitions omit the reason."""
        result = IssueTransitionResult(
            requested_status="Done",
            applied=True,
            transition_id="31",
            target_status="Done",
        )

        assert result.model_dump(by_alias=True) == {
            "requestedStatus": "Done",
            "applied": True,
            "transitionId": "31",
            "targetStatus": "Done",
        }

    def test_jql_result_keeps_null_notice(self) -> None:
        """Test the JQL result always carries its notice member."""
        result = SearchIssuesByJqlResult(jql="project = PROJ", mode="enhanced")

        payload = result.model_dump(by_alias=True)

        assert payload["notice"] is None
        assert payload["truncated"] is False

    def test_assignable_user_count(self) -> None:
        """Test the assignment count appears only once set."""
        user = AssignableUser(id="u1", name="Ada")
        ranked = user.model_copy(update={"assigned_issues_last_60_days": 3})

        assert "assignedIssuesLast60Days" not in user.model_dump(by_alias=True)
        assert ranked.model_dump(by_alias=True)["assignedIssuesLast60Days"] == 3

    def test_workflow_edge_alias(self) -> None:
        """Test workflow edges use `from` on the wire."""
        edge = WorkflowTransitionEdge.model_validate(
            {"from": "Open", "to": "Done", "transition": "Close"}
        )

        assert edge.from_status == "Open"
        assert edge.model_dump(by_alias=True)["from"] == "Open"
