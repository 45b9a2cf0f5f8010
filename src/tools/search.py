"""Searching Jira issues across the enhanced and legacy search endpoints.

Every call tries the cursor-paginated enhanced endpoint first and falls back
to the offset-paginated legacy endpoint only when Jira answers 404. No mode
is remembered between calls.
"""

import logging
import re
from typing import Any

from src.models.jira_actions import SearchIssuesByJqlResult, SearchIssuesResult, SearchMode
from src.models.jira_config import get_jira_config
from src.models.jira_tickets import JqlIssueListItem
from src.tools import jira_executor
from src.tools.issues import get_issue_fields, to_focused_issue
from src.tools.jira_errors import JiraApiError, JiraValidationError
from src.tools.jql import SearchFilters, build_search_jql, build_strict_jql
from src.tools.tool_utils import (
    as_dict,
    as_list,
    extract_name_list,
    extract_scalar_value,
    extract_user_name,
    normalize_string,
)

logger: logging.Logger = logging.getLogger(__name__)

ENHANCED_SEARCH_PATH: str = "/rest/api/3/search/jql"
LEGACY_SEARCH_PATH: str = "/rest/api/3/search"

DEFAULT_MAX_RESULTS: int = 25
MAX_RESULTS_LIMIT: int = 100

JQL_RESULTS_LIMIT: int = 50
JQL_RESULTS_TRUNCATED_NOTICE: str = "Results truncated because results exceeded 50!"

JQL_LIST_FIELDS: tuple[str, ...] = (
    "summary",
    "fixVersions",
    "assignee",
    "reporter",
    "priority",
    "status",
    "sprint",
)

_LEGACY_SPRINT_NAME = re.compile(r"name=([^,\]]+)", re.IGNORECASE)


def parse_next_page_token(token: str | None) -> int:
    """Read a legacy search token, which is a numeric start offset."""
    if not token:
        return 0

    value = token.strip()
    if not value.isdigit():
        raise JiraValidationError(f"Invalid nextPageToken '{token}' for legacy Jira search.")

    return int(value)


def enhanced_search(
    jql: str,
    fields: list[str],
    max_results: int,
    next_page_token: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "jql": jql,
        "maxResults": max_results,
        "fields": fields,
        "fieldsByKeys": False,
    }
    if next_page_token:
        body["nextPageToken"] = next_page_token

    return as_dict(jira_executor.jira_request(ENHANCED_SEARCH_PATH, method="POST", body=body))


def legacy_search(
    jql: str,
    fields: list[str],
    max_results: int,
    start_at: int = 0,
    expand: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "jql": jql,
        "maxResults": max_results,
        "startAt": start_at,
        "fields": fields,
        "fieldsByKeys": False,
    }
    if expand:
        body["expand"] = expand

    return as_dict(jira_executor.jira_request(LEGACY_SEARCH_PATH, method="POST", body=body))


def run_search(
    jql: str,
    fields: list[str],
    max_results: int,
    next_page_token: str | None = None,
) -> tuple[SearchMode, dict[str, Any]]:
    """Run one search page, degrading to the legacy endpoint on 404 only.

    Returns:
        The endpoint family used and its raw response.
    """
    try:
        return "enhanced", enhanced_search(jql, fields, max_results, next_page_token)
    except JiraApiError as e:
        if not e.is_not_found:
            raise
        logger.info("Enhanced search unavailable (%s); using legacy search", e)

    start_at = parse_next_page_token(next_page_token)
    return "legacy", legacy_search(jql, fields, max_results, start_at)


def _raw_issues(response: dict[str, Any]) -> list[dict[str, Any]]:
    return [issue for issue in as_list(response.get("issues")) if isinstance(issue, dict)]


def _int_or_zero(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def search_issues(
    filters: SearchFilters,
    max_results: int = DEFAULT_MAX_RESULTS,
    next_page_token: str | None = None,
) -> SearchIssuesResult:
    """Search issues with structured filters and return focused issues.

    Args:
        filters: Structured filters and optional raw JQL.
        max_results: Page size, 1 to 100.
        next_page_token: Token from a previous page.

    Returns:
        SearchIssuesResult; next_page_token is None when exhausted.
    """
    if not 1 <= max_results <= MAX_RESULTS_LIMIT:
        raise JiraValidationError(
            f"maxResults must be an integer between 1 and {MAX_RESULTS_LIMIT}."
        )

    config = get_jira_config()
    jql = build_search_jql(filters, config.severity_jql_field)

    mode, response = run_search(jql, get_issue_fields(config), max_results, next_page_token)
    issues = [to_focused_issue(issue, config=config) for issue in _raw_issues(response)]

    if mode == "enhanced":
        token = normalize_string(response.get("nextPageToken"))
    else:
        next_start = _int_or_zero(response.get("startAt")) + len(issues)
        token = str(next_start) if next_start < _int_or_zero(response.get("total")) else None

    return SearchIssuesResult(jql=jql, issues=issues, next_page_token=token, mode=mode)


def extract_sprint_names(value: Any) -> list[str]:
    """Sprint names from object entries or legacy `...name=Sprint 1,...` strings."""
    names: list[str] = []
    entries = value if isinstance(value, list) else [value]

    for entry in entries:
        name = normalize_string(as_dict(entry).get("name"))
        if not name:
            raw = normalize_string(entry)
            match = _LEGACY_SPRINT_NAME.search(raw) if raw else None
            name = match.group(1).strip() if match else None

        if name and name not in names:
            names.append(name)

    return names


def to_jql_issue_list_item(issue: dict[str, Any]) -> JqlIssueListItem:
    fields = as_dict(issue.get("fields"))

    return JqlIssueListItem(
        key=normalize_string(issue.get("key")) or "",
        summary=normalize_string(fields.get("summary")) or "",
        fix_versions=extract_name_list(fields.get("fixVersions")),
        sprints=extract_sprint_names(fields.get("sprint")),
        assignee=extract_user_name(fields.get("assignee")),
        reporter=extract_user_name(fields.get("reporter")),
        priority=extract_scalar_value(fields.get("priority")),
        status=normalize_string(as_dict(fields.get("status")).get("name")),
    )


def search_issues_by_jql(jql: str) -> SearchIssuesByJqlResult:
    """Run caller-owned JQL and return a capped, context-safe issue list.

    One item more than the cap is requested so truncation is detected
    without a second request.

    Args:
        jql: Raw JQL query.

    Returns:
        SearchIssuesByJqlResult with at most 50 issues.
    """
    strict_jql = build_strict_jql(jql)

    mode, response = run_search(strict_jql, list(JQL_LIST_FIELDS), JQL_RESULTS_LIMIT + 1)
    raw_issues = _raw_issues(response)

    if mode == "enhanced":
        truncated = len(raw_issues) > JQL_RESULTS_LIMIT or bool(
            normalize_string(response.get("nextPageToken"))
        )
    else:
        truncated = (
            _int_or_zero(response.get("total")) > JQL_RESULTS_LIMIT
            or len(raw_issues) > JQL_RESULTS_LIMIT
        )

    issues = [to_jql_issue_list_item(issue) for issue in raw_issues[:JQL_RESULTS_LIMIT]]

    return SearchIssuesByJqlResult(
        jql=strict_jql,
        issues=issues,
        truncated=truncated,
        notice=JQL_RESULTS_TRUNCATED_NOTICE if truncated else None,
        mode=mode,
    )
