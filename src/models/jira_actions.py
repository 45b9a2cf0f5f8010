"""Models for Jira write, search, sprint, and user results."""

from typing import Any, Literal

from pydantic import Field, SerializerFunctionWrapHandler, model_serializer

from src.models.jira_tickets import (
    CamelModel,
    FocusedIssue,
    IssueComment,
    JqlIssueListItem,
    LinkDirection,
    SparseModel,
)

SearchMode = Literal["enhanced", "legacy"]
SprintStateFilter = Literal["active", "future", "closed", "all"]


class Unset:
    """Marker for a write argument the caller did not provide."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


# Leave the field untouched. `None` clears it; any other value sets it.
UNSET = Unset()


class IssueTransitionResult(SparseModel):
    """Outcome of a requested status change."""

    requested_status: str
    applied: bool
    transition_id: str | None = None
    target_status: str | None = None
    reason: str | None = None


class CreateIssueResult(SparseModel):
    """Result of creating an issue."""

    issue: FocusedIssue
    transition: IssueTransitionResult | None = None


class UpdateIssueResult(SparseModel):
    """Result of updating an issue."""

    issue: FocusedIssue
    transition: IssueTransitionResult | None = None


class TransitionIssueResult(CamelModel):
    """Result of transitioning an issue."""

    issue: FocusedIssue
    transition: IssueTransitionResult


class AddCommentResult(CamelModel):
    """Result of adding a comment."""

    issue_key: str
    comment: IssueComment


class LinkIssueResult(CamelModel):
    """Result of linking two issues."""

    issue_key: str
    target_issue_key: str
    relation: str
    link_type: str
    direction: LinkDirection


class SearchIssuesResult(CamelModel):
    """Page of focused issues from a filtered search."""

    jql: str
    issues: list[FocusedIssue] = Field(default_factory=list)
    next_page_token: str | None = None
    mode: SearchMode


class SearchIssuesByJqlResult(CamelModel):
    """Capped issue list from a raw JQL search."""

    jql: str
    issues: list[JqlIssueListItem] = Field(default_factory=list)
    truncated: bool = False
    notice: str | None = None
    mode: SearchMode


class BoardRef(CamelModel):
    """Agile board a sprint belongs to."""

    id: int
    name: str


class SprintSummary(CamelModel):
    """Jira sprint with a generated human-readable description."""

    id: int
    name: str
    state: str
    description: str
    goal: str = ""
    start_date: str | None = None
    end_date: str | None = None
    board: BoardRef


class SprintListFilter(CamelModel):
    """Filter applied when listing sprints."""

    state: SprintStateFilter
    board_name: str | None = None
    max_results_per_board: int


class ListSprintsResult(CamelModel):
    """Result of listing sprints."""

    project_key: str
    filter: SprintListFilter
    sprints: list[SprintSummary] = Field(default_factory=list)


class AssignIssueToSprintResult(SparseModel):
    """Result of assigning an issue to a sprint."""

    issue_key: str
    sprint: SprintSummary
    issue: FocusedIssue | None = None


class AssignableUser(CamelModel):
    """Active user that can be assigned issues in a project."""

    id: str
    name: str
    email: str | None = None
    assigned_issues_last_60_days: int | None = Field(
        default=None, alias="assignedIssuesLast60Days"
    )

    @model_serializer(mode="wrap")
    def _omit_unranked(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for key in ("assignedIssuesLast60Days", "assigned_issues_last_60_days"):
            if key in data and data[key] is None:
                del data[key]
        return data


class ListProjectAssignableUsersResult(CamelModel):
    """Page of assignable users."""

    project_key: str
    active_only: Literal[True] = True
    max_results: int
    start_at: int = 0
    users: list[AssignableUser] = Field(default_factory=list)
