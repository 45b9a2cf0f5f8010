"""Assignable users and the recent-assignment ranking used by the baseline."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import dateutil.parser

from src.models.jira_actions import AssignableUser, ListProjectAssignableUsersResult
from src.tools import jira_executor
from src.tools.jira_errors import JiraApiError, JiraValidationError
from src.tools.jql import quote_jql_literal
from src.tools.search import legacy_search
from src.tools.tool_utils import as_dict, as_list, normalize_label_for_match, normalize_string

logger: logging.Logger = logging.getLogger(__name__)

ASSIGNABLE_USERS_PATH: str = "/rest/api/3/user/assignable/search"
MAX_ASSIGNABLE_USERS_PAGE: int = 200
ASSIGNABLE_USERS_CAP: int = 1000
NO_DISPLAY_NAME: str = "(no display name)"

RECENT_ASSIGNMENT_DAYS: int = 60
TOP_ASSIGNABLE_USERS: int = 15
CHANGELOG_PAGE_SIZE: int = 50
MAX_ISSUES_TO_SCAN: int = 500

def fetch_project_assignable_users_page(
    project_key: str, max_results: int, start_at: int
) -> list[dict[str, Any]]:
    """One raw page of assignable users.

    Some Jira deployments reject the `project` parameter with HTTP 400 and
    only accept `projectKey`; the request is retried once that way.
    """
    paging = {"maxResults": max_results, "startAt": start_at}

    try:
        response = jira_executor.jira_request(
            ASSIGNABLE_USERS_PATH, params={"project": project_key, **paging}
        )
    except JiraApiError as e:
        if not e.is_bad_request:
            raise
        logger.info("Assignable user search rejected 'project'; retrying with 'projectKey'")
        response = jira_executor.jira_request(
            ASSIGNABLE_USERS_PATH, params={"projectKey": project_key, **paging}
        )

    return [user for user in as_list(response) if isinstance(user, dict)]


def to_active_assignable_users(users: list[dict[str, Any]]) -> list[AssignableUser]:
    """Active users only, deduplicated by account id, first occurrence wins."""
    deduped: dict[str, AssignableUser] = {}

    for user in users:
        if user.get("active") is not True:
            continue

        account_id = normalize_string(user.get("accountId"))
        if not account_id or account_id in deduped:
            continue

        deduped[account_id] = AssignableUser(
            id=account_id,
            name=normalize_string(user.get("displayName")) or NO_DISPLAY_NAME,
            email=normalize_string(user.get("emailAddress")),
        )

    return list(deduped.values())


def list_project_assignable_users(
    project_key: str, max_results: int, start_at: int = 0
) -> ListProjectAssignableUsersResult:
    """List active users that can be assigned issues in a project.

    Args:
        project_key: Project key (e.g., PROJ).
        max_results: Page size, 1 to 200.
        start_at: Offset of the first user, 0 or more.

    Returns:
        ListProjectAssignableUsersResult.
    """
    project_key = project_key.strip()
    if not project_key:
        raise JiraValidationError("projectKey cannot be empty.")

    if not 1 <= max_results <= MAX_ASSIGNABLE_USERS_PAGE:
        raise JiraValidationError(
            f"maxResults must be an integer between 1 and {MAX_ASSIGNABLE_USERS_PAGE}."
        )

    if start_at < 0:
        raise JiraValidationError("startAt must be an integer greater than or equal to 0.")

    page = fetch_project_assignable_users_page(project_key, max_results, start_at)

    return ListProjectAssignableUsersResult(
        project_key=project_key,
        max_results=max_results,
        start_at=start_at,
        users=to_active_assignable_users(page),
    )


def fetch_all_project_assignable_users(
    project_key: str, cap: int = ASSIGNABLE_USERS_CAP
) -> list[AssignableUser]:
    """Page through assignable users until `cap` active users are collected."""
    page_size = min(MAX_ASSIGNABLE_USERS_PAGE, max(1, cap))
    deduped: dict[str, AssignableUser] = {}
    start_at = 0

    while len(deduped) < cap:
        page = fetch_project_assignable_users_page(project_key, page_size, start_at)
        if not page:
            break

        for user in to_active_assignable_users(page):
            deduped.setdefault(user.id, user)
            if len(deduped) >= cap:
                break

        start_at += len(page)
        if len(page) < page_size:
            break

    return list(deduped.values())


def parse_jira_timestamp(value: Any) -> datetime | None:
    """Parse timestamps such as 2024-03-01T10:15:30.000+0000."""
    text = normalize_string(value)
    if not text:
        return None

    try:
        parsed = dateutil.parser.parse(text)
    except (ValueError, OverflowError):
        return None

    # Offset-less timestamps are read as UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_assignee_item(item: dict[str, Any]) -> bool:
    field_key = normalize_label_for_match(
        normalize_string(item.get("field"))
    ) or normalize_label_for_match(normalize_string(item.get("fieldId")))
    return field_key == "assignee"


def count_recent_assigned_issues_by_user(
    project_key: str,
    days: int = RECENT_ASSIGNMENT_DAYS,
    max_issues_to_scan: int = MAX_ISSUES_TO_SCAN,
    now: datetime | None = None,
) -> tuple[dict[str, int], bool]:
    """Count distinct recently assigned issues per account id.

    Recently updated issues are scanned with their changelog. Each issue
    counts once per account that an `assignee` change inside the window
    pointed to. When the window holds no assignee changes at all, current
    assignees are counted instead.

    Returns:
        Counts by account id, and whether the scan stopped at the cap before
        reaching the end of the results.
    """
    days = max(1, days)
    now = now or datetime.now(timezone.utc)
    window_start = now - timedelta(days=days)

    jql = (
        f"project = {quote_jql_literal(project_key)} AND updated >= -{days}d "
        "ORDER BY updated DESC"
    )

    assigned: dict[str, set[str]] = {}
    current: dict[str, set[str]] = {}

    start_at = 0
    total: int | None = None
    scanned = 0
    truncated = False

    while total is None or start_at < total:
        if scanned >= max_issues_to_scan:
            truncated = True
            break

        response = legacy_search(
            jql, ["assignee"], CHANGELOG_PAGE_SIZE, start_at=start_at, expand="changelog"
        )
        issues = [issue for issue in as_list(response.get("issues")) if isinstance(issue, dict)]
        if not issues:
            break

        reported_total = response.get("total")
        total = reported_total if isinstance(reported_total, int) else start_at + len(issues)
        scanned += len(issues)

        for issue in issues:
            issue_key = normalize_string(issue.get("key")) or ""

            assignee_id = normalize_string(
                as_dict(as_dict(issue.get("fields")).get("assignee")).get("accountId")
            )
            if assignee_id:
                current.setdefault(assignee_id, set()).add(issue_key)

            for history in as_list(as_dict(issue.get("changelog")).get("histories")):
                history = as_dict(history)
                created = parse_jira_timestamp(history.get("created"))
                if not created or created < window_start or created > now:
                    continue

                for item in as_list(history.get("items")):
                    item = as_dict(item)
                    if not _is_assignee_item(item):
                        continue

                    to_id = normalize_string(item.get("to"))
                    if to_id:
                        assigned.setdefault(to_id, set()).add(issue_key)

        start_at += len(issues)

    source = assigned or current
    counts = {account_id: len(issue_keys) for account_id, issue_keys in source.items()}
    logger.debug(
        "Scanned %d issues in %s for recent assignments (truncated=%s)",
        scanned,
        project_key,
        truncated,
    )
    return counts, truncated


def fetch_top_assignable_users_by_recent_assignments(
    project_key: str,
    days: int = RECENT_ASSIGNMENT_DAYS,
    limit: int = TOP_ASSIGNABLE_USERS,
    max_issues_to_scan: int = MAX_ISSUES_TO_SCAN,
    now: datetime | None = None,
) -> tuple[list[AssignableUser], bool]:
    """Active assignable users ranked by recent assignments.

    The ranking is a heuristic over a bounded scan of recent issue history.

    Returns:
        Up to `limit` users sorted by count (descending) then name, and
        whether the scan was truncated.
    """
    users = fetch_all_project_assignable_users(project_key)
    if not users:
        return [], False

    counts, truncated = count_recent_assigned_issues_by_user(
        project_key, days, max_issues_to_scan, now
    )

    ranked = [
        user.model_copy(update={"assigned_issues_last_60_days": counts.get(user.id, 0)})
        for user in users
    ]
    ranked.sort(key=lambda user: (-(user.assigned_issues_last_60_days or 0), user.name))

    return ranked[: max(1, limit)], truncated
