"""Main entry point for the focused Jira MCP server.

Point your LLM client to this file to use the MCP server.
"""

import argparse
import logging
import sys
from collections.abc import Callable
from typing import Annotated, Any, Literal

import dotenv
from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel

from src.models.jira_actions import UNSET
from src.models.jira_tickets import DescriptionFormat
from src.tools.baseline import get_project_baseline
from src.tools.comments import add_comment
from src.tools.issues import create_issue, get_issue, transition_issue, update_issue
from src.tools.jira_errors import JiraError
from src.tools.jql import SearchFilters
from src.tools.links import link_issue
from src.tools.search import search_issues, search_issues_by_jql
from src.tools.sprints import assign_issue_to_sprint, list_sprints
from src.tools.users import list_project_assignable_users

dotenv.load_dotenv()

logger: logging.Logger = logging.getLogger(__name__)

# Create the MCP server instance.
mcp: FastMCP = FastMCP("Jira Focused MCP")

ClearableField = Literal[
    "description", "fixVersions", "affectedVersions", "priority", "severity"
]


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the MCP server."""
    level: int = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s]%(filename)s:%(levelname)s: %(message)s",
        # Use stderr to avoid corrupting stdout (used for MCP protocol).
        # https://modelcontextprotocol.io/docs/develop/build-server#logging-in-mcp-servers
        stream=sys.stderr,
    )


def run_tool(tool_name: str, action: Callable[[], BaseModel]) -> str:
    """Run a tool action and render its result as JSON, or its failure as text."""
    try:
        result = action()
        return result.model_dump_json(by_alias=True, indent=2)

    except JiraError as e:
        logger.error("%s failed: %s", tool_name, e)
        return f"Error: {e.describe()}"

    except ValueError as e:
        # Configuration problems surface here before any request is sent.
        logger.error("%s failed: %s", tool_name, e)
        return f"Error: {e}"

    except Exception as e:
        logger.exception("%s failed unexpectedly", tool_name)
        return f"Error: {e}"


@mcp.tool(
    name="jira_get_issue",
    title="Get a focused Jira issue.",
    description="Get one Jira issue with focused fields only: summary, description, versions, status, priority, severity, type, parent, subtasks, linked issues and comments (last 3 by default).",
)
def jira_get_issue_tool(
    issue_key: Annotated[str, "Jira issue key (e.g., PROJ-123)."],
    skip_comments: Annotated[bool | None, "Do not load comments."] = None,
    load_only_last_3_comments: Annotated[
        bool | None, "Load only the 3 most recent comments (default true)."
    ] = None,
    description_format: Annotated[
        DescriptionFormat | None, "Description output: plain_text (default) or adf."
    ] = None,
) -> str:
    """Get a focused Jira issue."""
    return run_tool(
        "jira_get_issue",
        lambda: get_issue(
            issue_key,
            skip_comments=skip_comments,
            load_only_last_3_comments=load_only_last_3_comments,
            description_format=description_format,
        ),
    )


@mcp.tool(
    name="jira_create_issue",
    title="Create a Jira issue.",
    description="Create a Jira issue. Issue type, versions and priority accept names or ids. An optional status is applied after creation; if no transition matches, the issue is still created and the reason is reported.",
)
def jira_create_issue_tool(
    project_key: Annotated[str, "Jira project key (e.g., PROJ)."],
    issue_type: Annotated[str, "Issue type name or id (e.g., Bug, Story, Task)."],
    summary: Annotated[str, "Issue summary/title."],
    description: Annotated[
        str | dict[str, Any] | None,
        "Plain text description, or an ADF document when description_format is adf.",
    ] = None,
    description_format: Annotated[
        DescriptionFormat | None, "Description format: plain_text (default) or adf."
    ] = None,
    fix_versions: Annotated[list[str] | None, "Fix version names or ids."] = None,
    affected_versions: Annotated[list[str] | None, "Affected version names or ids."] = None,
    priority: Annotated[str | None, "Priority name or id (e.g., High)."] = None,
    severity: Annotated[str | None, "Severity value (requires JIRA_SEVERITY_FIELD_ID)."] = None,
    status: Annotated[str | None, "Target status applied after creation."] = None,
) -> str:
    """Create a Jira issue."""
    return run_tool(
        "jira_create_issue",
        lambda: create_issue(
            project_key=project_key,
            issue_type=issue_type,
            summary=summary,
            description=description,
            description_format=description_format,
            fix_versions=fix_versions,
            affected_versions=affected_versions,
            priority=priority,
            severity=severity,
            status=status,
        ),
    )


@mcp.tool(
    name="jira_update_issue",
    title="Update a Jira issue.",
    description="Update focused fields of a Jira issue and optionally move it to a status. Omitted fields are left unchanged; list a field in clear_fields to clear it.",
)
def jira_update_issue_tool(
    issue_key: Annotated[str, "Jira issue key (e.g., PROJ-123)."],
    summary: Annotated[str | None, "New summary."] = None,
    description: Annotated[
        str | dict[str, Any] | None,
        "New description: plain text, or an ADF document when description_format is adf.",
    ] = None,
    description_format: Annotated[
        DescriptionFormat | None, "Description format: plain_text (default) or adf."
    ] = None,
    fix_versions: Annotated[
        list[str] | None, "Replace fix versions (names or ids). An empty list clears them."
    ] = None,
    affected_versions: Annotated[
        list[str] | None,
        "Replace affected versions (names or ids). An empty list clears them.",
    ] = None,
    priority: Annotated[str | None, "Priority name or id."] = None,
    severity: Annotated[str | None, "Severity value (requires JIRA_SEVERITY_FIELD_ID)."] = None,
    clear_fields: Annotated[
        list[ClearableField] | None,
        "Fields to clear: description, fixVersions, affectedVersions, priority, severity.",
    ] = None,
    status: Annotated[str | None, "Target status name or transition id."] = None,
    notify_users: Annotated[bool | None, "Send Jira notifications for the edit."] = None,
    skip_comments: Annotated[bool | None, "Do not load comments in the result."] = None,
    load_only_last_3_comments: Annotated[
        bool | None, "Load only the 3 most recent comments (default true)."
    ] = None,
) -> str:
    """Update a Jira issue."""
    cleared = set(clear_fields or [])

    def value_or_unset(name: str, value: Any) -> Any:
        if name in cleared:
            return [] if name in ("fixVersions", "affectedVersions") else None
        return UNSET if value is None else value

    return run_tool(
        "jira_update_issue",
        lambda: update_issue(
            issue_key,
            summary=UNSET if summary is None else summary,
            description=value_or_unset("description", description),
            description_format=description_format,
            fix_versions=value_or_unset("fixVersions", fix_versions),
            affected_versions=value_or_unset("affectedVersions", affected_versions),
            priority=value_or_unset("priority", priority),
            severity=value_or_unset("severity", severity),
            status=status,
            notify_users=notify_users,
            skip_comments=skip_comments,
            load_only_last_3_comments=load_only_last_3_comments,
        ),
    )


@mcp.tool(
    name="jira_transition_issue",
    title="Move a Jira issue to another status.",
    description="Move a Jira issue to another status by status name or transition id. When no transition matches, the available target statuses are reported.",
)
def jira_transition_issue_tool(
    issue_key: Annotated[str, "Jira issue key (e.g., PROJ-123)."],
    to_status: Annotated[str, "Target status name or transition id."],
    skip_comments: Annotated[bool | None, "Do not load comments in the result."] = None,
    load_only_last_3_comments: Annotated[
        bool | None, "Load only the 3 most recent comments (default true)."
    ] = None,
    description_format: Annotated[
        DescriptionFormat | None, "Description output: plain_text (default) or adf."
    ] = None,
) -> str:
    """Move a Jira issue to another status."""
    return run_tool(
        "jira_transition_issue",
        lambda: transition_issue(
            issue_key,
            to_status,
            skip_comments=skip_comments,
            load_only_last_3_comments=load_only_last_3_comments,
            description_format=description_format,
        ),
    )


@mcp.tool(
    name="jira_add_comment",
    title="Add a comment to a Jira issue.",
    description="Add a plain text comment to an existing Jira issue. Multi-line text is kept as separate paragraphs.",
)
def jira_add_comment_tool(
    issue_key: Annotated[str, "Jira issue key (e.g., PROJ-123)."],
    body: Annotated[str, "Comment text."],
) -> str:
    """Add a comment to a Jira issue."""
    return run_tool("jira_add_comment", lambda: add_comment(issue_key, body))


@mcp.tool(
    name="jira_link_issue",
    title="Link two Jira issues.",
    description="Link two Jira issues with a business relation such as 'blocks', 'is blocked by', 'relates to' or 'duplicates'. The relation is matched against the link types Jira offers.",
)
def jira_link_issue_tool(
    issue_key: Annotated[str, "Source issue key (e.g., PROJ-123)."],
    target_issue_key: Annotated[str, "Target issue key (e.g., PROJ-456)."],
    relation: Annotated[str, "Relation phrase as seen from the source issue."],
    comment: Annotated[str | None, "Optional comment added with the link."] = None,
) -> str:
    """Link two Jira issues."""
    return run_tool(
        "jira_link_issue",
        lambda: link_issue(issue_key, target_issue_key, relation, comment),
    )


@mcp.tool(
    name="jira_project_baseline",
    title="Get the baseline of a Jira project.",
    description="Get a compact project snapshot: issue types, priorities, open versions, top assignable users, active sprints, severity options, field requirements per issue type and a sampled workflow graph. Lookups that fail are listed in notes.",
)
def jira_project_baseline_tool(
    project_key: Annotated[str, "Jira project key (e.g., PROJ)."],
) -> str:
    """Get the baseline of a Jira project."""
    return run_tool("jira_project_baseline", lambda: get_project_baseline(project_key))


@mcp.tool(
    name="jira_list_sprints",
    title="List sprints of a Jira project.",
    description="List scrum sprints of a project across its boards, with a short description of each sprint.",
)
def jira_list_sprints_tool(
    project_key: Annotated[str, "Jira project key (e.g., PROJ)."],
    state: Annotated[
        str | None, "Sprint state: active (default), future, closed or all."
    ] = None,
    board_name: Annotated[str | None, "Only sprints of this board."] = None,
    max_results_per_board: Annotated[
        int | None, "Sprints fetched per board, 1 to 50 (default 20)."
    ] = None,
) -> str:
    """List sprints of a Jira project."""
    return run_tool(
        "jira_list_sprints",
        lambda: list_sprints(
            project_key,
            state=state,
            board_name=board_name,
            max_results_per_board=max_results_per_board,
        ),
    )


@mcp.tool(
    name="jira_list_assignable_users",
    title="List assignable users of a Jira project.",
    description="List active users that can be assigned issues in a project, one page at a time.",
)
def jira_list_assignable_users_tool(
    project_key: Annotated[str, "Jira project key (e.g., PROJ)."],
    max_results: Annotated[int, "Page size, 1 to 200 (default 50)."] = 50,
    start_at: Annotated[int, "Offset of the first user (default 0)."] = 0,
) -> str:
    """List assignable users of a Jira project."""
    return run_tool(
        "jira_list_assignable_users",
        lambda: list_project_assignable_users(project_key, max_results, start_at),
    )


@mcp.tool(
    name="jira_assign_issue_to_sprint",
    title="Assign a Jira issue to a sprint.",
    description="Assign an issue to a sprint by sprint_id (preferred) or sprint_name. Closed sprints are rejected.",
)
def jira_assign_issue_to_sprint_tool(
    issue_key: Annotated[str, "Jira issue key (e.g., PROJ-123)."],
    sprint_id: Annotated[int | None, "Sprint id."] = None,
    sprint_name: Annotated[str | None, "Exact sprint name."] = None,
    project_key: Annotated[
        str | None, "Project used to look up sprint_name (default: the issue's project)."
    ] = None,
    board_name: Annotated[str | None, "Only look up sprint_name on this board."] = None,
    load_issue_after_assign: Annotated[
        bool, "Return the refreshed issue (default true)."
    ] = True,
    skip_comments: Annotated[bool | None, "Do not load comments in the result."] = None,
    load_only_last_3_comments: Annotated[
        bool | None, "Load only the 3 most recent comments (default true)."
    ] = None,
    description_format: Annotated[
        DescriptionFormat | None, "Description output: plain_text (default) or adf."
    ] = None,
) -> str:
    """Assign a Jira issue to a sprint."""
    return run_tool(
        "jira_assign_issue_to_sprint",
        lambda: assign_issue_to_sprint(
            issue_key,
            sprint_id=sprint_id,
            sprint_name=sprint_name,
            project_key=project_key,
            board_name=board_name,
            load_issue_after_assign=load_issue_after_assign,
            skip_comments=skip_comments,
            load_only_last_3_comments=load_only_last_3_comments,
            description_format=description_format,
        ),
    )


@mcp.tool(
    name="jira_search_issues_by_jql",
    title="Run a raw JQL query.",
    description="Run a raw JQL query and return a compact list (key, summary, fix versions, sprints, assignee, reporter, priority, status). At most 50 issues are returned; larger results are flagged as truncated.",
)
def jira_search_issues_by_jql_tool(
    jql: Annotated[str, "JQL query. ORDER BY updated DESC is added when missing."],
) -> str:
    """Run a raw JQL query."""
    return run_tool("jira_search_issues_by_jql", lambda: search_issues_by_jql(jql))


@mcp.tool(
    name="jira_search_issues",
    title="Search Jira issues with filters.",
    description="Search issues with structured filters (project, keys, types, text, versions, statuses, priorities, severities) and optional raw JQL. Returns focused issues with a next_page_token for paging.",
)
def jira_search_issues_tool(
    project_key: Annotated[str | None, "Filter by project key (e.g., PROJ)."] = None,
    issue_keys: Annotated[list[str] | None, "Filter by issue keys."] = None,
    issue_types: Annotated[list[str] | None, "Filter by issue type names."] = None,
    summary_contains: Annotated[str | None, "Text the summary contains."] = None,
    description_contains: Annotated[str | None, "Text the description contains."] = None,
    fix_versions: Annotated[list[str] | None, "Filter by fix versions."] = None,
    affected_versions: Annotated[list[str] | None, "Filter by affected versions."] = None,
    statuses: Annotated[list[str] | None, "Filter by status names."] = None,
    priorities: Annotated[list[str] | None, "Filter by priority names."] = None,
    severities: Annotated[list[str] | None, "Filter by severity values."] = None,
    jql: Annotated[str | None, "Raw JQL combined with the filters using AND."] = None,
    max_results: Annotated[int, "Page size, 1 to 100 (default 25)."] = 25,
    next_page_token: Annotated[str | None, "Token from a previous page."] = None,
) -> str:
    """Search Jira issues with filters."""
    filters = SearchFilters(
        project_key=project_key,
        issue_keys=issue_keys,
        issue_types=issue_types,
        summary_contains=summary_contains,
        description_contains=description_contains,
        fix_versions=fix_versions,
        affected_versions=affected_versions,
        statuses=statuses,
        priorities=priorities,
        severities=severities,
        jql=jql,
    )
    return run_tool(
        "jira_search_issues",
        lambda: search_issues(filters, max_results=max_results, next_page_token=next_page_token),
    )


def main() -> None:
    """Main entry point for the MCP server."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Jira Focused MCP Server: Provides focused Jira Cloud tools for LLM clients."
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.debug)

    logger.info("Starting Jira Focused MCP server...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
