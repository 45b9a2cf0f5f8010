"""Listing sprints and assigning issues to them via the Jira Agile API."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from src.models.jira_actions import (
    AssignIssueToSprintResult,
    BoardRef,
    ListSprintsResult,
    SprintListFilter,
    SprintStateFilter,
    SprintSummary,
)
from src.models.jira_tickets import DescriptionFormat
from src.tools import jira_executor
from src.tools.issues import get_issue, get_issue_project_key
from src.tools.jira_errors import JiraError, JiraResolutionError, JiraValidationError
from src.tools.tool_utils import as_dict, as_list, normalize_label_for_match, normalize_string

logger: logging.Logger = logging.getLogger(__name__)

SPRINT_STATES: tuple[str, ...] = ("active", "future", "closed", "all")
DEFAULT_MAX_RESULTS_PER_BOARD: int = 20
MAX_RESULTS_PER_BOARD_LIMIT: int = 50
ACTIVE_SPRINTS_PER_BOARD: int = 10
MAX_BOARD_WORKERS: int = 8
MAX_SPRINTS_IN_ERROR: int = 20

_STATE_RANK: dict[str, int] = {"active": 0, "future": 1, "closed": 2}


def normalize_sprint_state_filter(state: str | None) -> SprintStateFilter:
    normalized = state.strip().lower() if state else ""
    if not normalized:
        return "active"
    if normalized not in SPRINT_STATES:
        raise JiraValidationError("state must be one of: active, future, closed, all.")
    return normalized  # type: ignore[return-value]


def parse_max_results_per_board(value: int | None) -> int:
    if value is None:
        return DEFAULT_MAX_RESULTS_PER_BOARD
    if not 1 <= value <= MAX_RESULTS_PER_BOARD_LIMIT:
        raise JiraValidationError(
            f"maxResultsPerBoard must be an integer between 1 and {MAX_RESULTS_PER_BOARD_LIMIT}."
        )
    return value


def to_sprint_state_query(state: SprintStateFilter) -> str:
    if state == "all":
        return "active,future,closed"
    return state


def sprint_state_rank(state: str) -> int:
    return _STATE_RANK.get(state.strip().lower(), 3)


def build_sprint_description(
    name: str,
    state: str,
    goal: str,
    start_date: str | None,
    end_date: str | None,
    board_name: str,
) -> str:
    """One-line human-readable summary of a sprint."""
    if start_date or end_date:
        date_window = f"{start_date or 'unknown start'} -> {end_date or 'unknown end'}"
    else:
        date_window = "dates not set"

    goal_text = f"Goal: {goal}" if goal else "Goal: (empty)"
    return (
        f"Sprint '{name}' on board '{board_name}' is '{state}'. "
        f"{goal_text}. Dates: {date_window}."
    )


def to_sprint_summary(sprint: dict[str, Any], board: BoardRef) -> SprintSummary | None:
    """Project a raw sprint; None when id, name, or state is missing."""
    sprint_id = sprint.get("id")
    name = normalize_string(sprint.get("name"))
    state = normalize_string(sprint.get("state"))

    if not isinstance(sprint_id, int) or isinstance(sprint_id, bool) or not name or not state:
        return None

    goal = normalize_string(sprint.get("goal")) or ""
    start_date = normalize_string(sprint.get("startDate"))
    end_date = normalize_string(sprint.get("endDate"))

    return SprintSummary(
        id=sprint_id,
        name=name,
        state=state,
        description=build_sprint_description(
            name, state, goal, start_date, end_date, board.name
        ),
        goal=goal,
        start_date=start_date,
        end_date=end_date,
        board=board,
    )


def fetch_scrum_boards(project_key: str, board_name: str | None = None) -> list[BoardRef]:
    """Scrum boards of a project, optionally filtered by board name."""
    response = as_dict(
        jira_executor.jira_request(
            "/rest/agile/1.0/board",
            params={"projectKeyOrId": project_key, "type": "scrum", "maxResults": 50},
        )
    )
    requested = normalize_label_for_match(board_name)

    boards: list[BoardRef] = []
    for board in as_list(response.get("values")):
        raw = as_dict(board)
        board_id = raw.get("id")
        name = normalize_string(raw.get("name"))

        if not isinstance(board_id, int) or isinstance(board_id, bool) or not name:
            continue
        if requested and normalize_label_for_match(name) != requested:
            continue

        boards.append(BoardRef(id=board_id, name=name))

    return boards


def _fetch_board_sprints(
    board: BoardRef, state_query: str, max_results_per_board: int
) -> list[SprintSummary]:
    try:
        response = as_dict(
            jira_executor.jira_request(
                f"/rest/agile/1.0/board/{board.id}/sprint",
                params={"maxResults": max_results_per_board, "state": state_query},
            )
        )
    except JiraError as e:
        logger.warning("Sprint lookup failed for board %s (%s): %s", board.id, board.name, e)
        return []

    sprints = (to_sprint_summary(as_dict(sprint), board) for sprint in as_list(response.get("values")))
    return [sprint for sprint in sprints if sprint]


def fetch_sprints_from_boards(
    boards: list[BoardRef],
    state: SprintStateFilter,
    max_results_per_board: int,
) -> list[SprintSummary]:
    """Fetch sprints from all boards concurrently.

    A board whose lookup fails contributes no sprints. Sprints shared by
    several boards are kept once, sorted by state (active, future, closed)
    and then name.
    """
    if not boards:
        return []

    state_query = to_sprint_state_query(state)

    with ThreadPoolExecutor(max_workers=min(MAX_BOARD_WORKERS, len(boards))) as pool:
        collections = list(
            pool.map(
                lambda board: _fetch_board_sprints(board, state_query, max_results_per_board),
                boards,
            )
        )

    deduped: dict[int, SprintSummary] = {}
    for sprints in collections:
        for sprint in sprints:
            deduped.setdefault(sprint.id, sprint)

    return sorted(
        deduped.values(), key=lambda sprint: (sprint_state_rank(sprint.state), sprint.name)
    )


def fetch_active_sprints(project_key: str) -> list[SprintSummary]:
    boards = fetch_scrum_boards(project_key)
    return fetch_sprints_from_boards(boards, "active", ACTIVE_SPRINTS_PER_BOARD)


def list_sprints(
    project_key: str,
    state: str | None = None,
    board_name: str | None = None,
    max_results_per_board: int | None = None,
) -> ListSprintsResult:
    """List scrum sprints for a project.

    Args:
        project_key: Project key (e.g., PROJ).
        state: active (default), future, closed, or all.
        board_name: Optional exact board name filter.
        max_results_per_board: Sprints fetched per board, 1 to 50 (default 20).

    Returns:
        ListSprintsResult with the applied filter and sprints.
    """
    project_key = project_key.strip()
    if not project_key:
        raise JiraValidationError("projectKey cannot be empty.")

    sprint_state = normalize_sprint_state_filter(state)
    board_filter = normalize_string(board_name)
    per_board = parse_max_results_per_board(max_results_per_board)

    boards = fetch_scrum_boards(project_key, board_filter)
    sprints = fetch_sprints_from_boards(boards, sprint_state, per_board)

    return ListSprintsResult(
        project_key=project_key,
        filter=SprintListFilter(
            state=sprint_state,
            board_name=board_filter,
            max_results_per_board=per_board,
        ),
        sprints=sprints,
    )


def fetch_sprint_by_id(sprint_id: int) -> SprintSummary:
    """Fetch a sprint and the name of its board."""
    sprint = as_dict(jira_executor.jira_request(f"/rest/agile/1.0/sprint/{sprint_id}"))

    board_id = None
    for key in ("originBoardId", "boardId"):
        candidate = sprint.get(key)
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            board_id = candidate
            break

    board_name = f"Board {board_id}" if board_id is not None else "Unknown board"
    if board_id is not None:
        try:
            board = as_dict(jira_executor.jira_request(f"/rest/agile/1.0/board/{board_id}"))
            board_name = normalize_string(board.get("name")) or board_name
        except JiraError as e:
            logger.warning("Board %s lookup failed: %s", board_id, e)

    summary = to_sprint_summary(sprint, BoardRef(id=board_id or 0, name=board_name))
    if not summary:
        raise JiraError(f"Sprint {sprint_id} is missing mandatory fields in Jira response.")

    return summary


def resolve_sprint_for_assignment(
    issue_key: str,
    sprint_id: int | None = None,
    sprint_name: str | None = None,
    project_key: str | None = None,
    board_name: str | None = None,
) -> SprintSummary:
    """Find the sprint named by exactly one of sprint_id or sprint_name."""
    name = normalize_string(sprint_name)

    if sprint_id is not None and name:
        raise JiraValidationError("Provide either sprintId or sprintName, not both.")

    if sprint_id is None and not name:
        raise JiraValidationError("Provide sprintId or sprintName.")

    if sprint_id is not None:
        if sprint_id <= 0:
            raise JiraValidationError("sprintId must be a positive integer.")
        return fetch_sprint_by_id(sprint_id)

    resolved_project = normalize_string(project_key) or get_issue_project_key(issue_key)
    listed = list_sprints(
        resolved_project,
        state="all",
        board_name=board_name,
        max_results_per_board=MAX_RESULTS_PER_BOARD_LIMIT,
    )

    wanted = normalize_label_for_match(name)
    matches = [sprint for sprint in listed.sprints if normalize_label_for_match(sprint.name) == wanted]

    if not matches:
        available = [
            f"{sprint.id}:{sprint.name} ({sprint.state})" for sprint in listed.sprints
        ]
        preview = ", ".join(available[:MAX_SPRINTS_IN_ERROR])
        raise JiraResolutionError(
            f"Sprint '{name}' not found for project {resolved_project}. "
            f"Available sprints: {preview or '(none)'}.",
            valid_values=[sprint.name for sprint in listed.sprints],
        )

    if len(matches) > 1:
        details = ", ".join(
            f"{sprint.id}:{sprint.name} on '{sprint.board.name}' ({sprint.state})"
            for sprint in matches
        )
        raise JiraValidationError(
            f"Sprint name '{name}' is ambiguous. Use sprintId. Matches: {details}."
        )

    return matches[0]


def assign_issue_to_sprint(
    issue_key: str,
    sprint_id: int | None = None,
    sprint_name: str | None = None,
    project_key: str | None = None,
    board_name: str | None = None,
    load_issue_after_assign: bool = True,
    skip_comments: bool | None = None,
    load_only_last_3_comments: bool | None = None,
    description_format: DescriptionFormat | None = None,
) -> AssignIssueToSprintResult:
    """Assign an issue to a sprint by id (preferred) or name.

    Returns:
        AssignIssueToSprintResult, with the refreshed issue unless
        load_issue_after_assign is False.
    """
    issue_key = issue_key.strip()
    if not issue_key:
        raise JiraValidationError("issueKey cannot be empty.")

    sprint = resolve_sprint_for_assignment(
        issue_key, sprint_id, sprint_name, project_key, board_name
    )

    if sprint.state.strip().lower() == "closed":
        raise JiraValidationError(
            f"Cannot assign issue to closed sprint {sprint.id} ({sprint.name})."
        )

    jira_executor.jira_request(
        f"/rest/agile/1.0/sprint/{sprint.id}/issue",
        method="POST",
        body={"issues": [issue_key]},
    )
    logger.info("Assigned %s to sprint %s (%s)", issue_key, sprint.id, sprint.name)

    if not load_issue_after_assign:
        return AssignIssueToSprintResult(issue_key=issue_key, sprint=sprint)

    issue = get_issue(
        issue_key,
        skip_comments=skip_comments,
        load_only_last_3_comments=load_only_last_3_comments,
        description_format=description_format,
    )
    return AssignIssueToSprintResult(issue_key=issue_key, sprint=sprint, issue=issue)
