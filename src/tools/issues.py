"""Reading and writing focused Jira issues.

Raw Jira issue payloads are projected to FocusedIssue here. Writes accept the
same small vocabulary and resolve names to ids before anything is sent.
"""

import logging
from typing import Any
from urllib.parse import quote

from src.models.jira_actions import (
    UNSET,
    CreateIssueResult,
    IssueTransitionResult,
    TransitionIssueResult,
    Unset,
    UpdateIssueResult,
)
from src.models.jira_config import JiraConfig, get_jira_config
from src.models.jira_tickets import (
    AdfDocument,
    CompactIssueRef,
    DescriptionFormat,
    FocusedIssue,
    IssueComment,
    IssueCommentsMeta,
    IssueRef,
    IssueStatusRef,
    LinkedIssueRef,
)
from src.tools import jira_executor
from src.tools.adf import adf_to_plain_text, to_adf_document
from src.tools.comments import get_issue_comments
from src.tools.field_values import (
    build_priority_update_value,
    build_severity_payload,
    build_severity_update_value,
    require_severity_field,
    resolve_issue_type_id,
    resolve_priority_payload,
    resolve_version_ids,
    to_jira_description,
)
from src.tools.jira_errors import JiraError, JiraValidationError
from src.tools.tool_utils import (
    as_dict,
    as_list,
    extract_name_list,
    extract_scalar_value,
    normalize_string,
)
from src.tools.transitions import try_transition_issue

logger: logging.Logger = logging.getLogger(__name__)

ISSUE_FIELDS: tuple[str, ...] = (
    "summary",
    "description",
    "fixVersions",
    "versions",
    "status",
    "priority",
    "issuetype",
    "project",
    "parent",
    "subtasks",
    "issuelinks",
)


def get_issue_fields(config: JiraConfig) -> list[str]:
    """Fields requested for a focused issue, plus severity when configured."""
    fields = list(ISSUE_FIELDS)
    if config.severity_field_id:
        fields.append(config.severity_field_id)
    return fields


def extract_issue_ref(value: Any) -> IssueRef | None:
    """Reference carrying only the id/name Jira sent; None when neither."""
    raw = as_dict(value)
    issue_id = normalize_string(raw.get("id"))
    name = normalize_string(raw.get("name"))

    if not issue_id and not name:
        return None

    return IssueRef(id=issue_id, name=name)


def extract_status(value: Any) -> IssueStatusRef | None:
    raw = as_dict(value)
    status_id = normalize_string(raw.get("id"))
    name = normalize_string(raw.get("name"))
    category = normalize_string(as_dict(raw.get("statusCategory")).get("name"))

    if not status_id and not name and not category:
        return None

    return IssueStatusRef(id=status_id, name=name, category=category)


def to_compact_issue_ref(value: Any) -> CompactIssueRef | None:
    """Compact view of a nested issue (parent, subtask, linked issue)."""
    raw = as_dict(value)
    key = normalize_string(raw.get("key"))
    if not key:
        return None

    fields = as_dict(raw.get("fields"))

    return CompactIssueRef(
        key=key,
        summary=normalize_string(fields.get("summary")) or "",
        status=normalize_string(as_dict(fields.get("status")).get("name")),
        issue_type=normalize_string(as_dict(fields.get("issuetype")).get("name")),
    )


def extract_subtasks(value: Any) -> list[CompactIssueRef]:
    """Subtasks deduplicated by key, first occurrence wins."""
    subtasks: dict[str, CompactIssueRef] = {}
    for entry in as_list(value):
        ref = to_compact_issue_ref(entry)
        if ref and ref.key not in subtasks:
            subtasks[ref.key] = ref
    return list(subtasks.values())


def extract_linked_issues(value: Any) -> list[LinkedIssueRef]:
    """Linked issues deduplicated by direction, key, and relation."""
    linked: list[LinkedIssueRef] = []
    seen: set[tuple[str, str, str]] = set()

    for entry in as_list(value):
        if not isinstance(entry, dict):
            continue

        link_type = as_dict(entry.get("type"))
        link_type_name = normalize_string(link_type.get("name"))

        for direction in ("outward", "inward"):
            ref = to_compact_issue_ref(entry.get(f"{direction}Issue"))
            if not ref:
                continue

            relation = normalize_string(link_type.get(direction)) or link_type_name or "related"
            dedup_key = (direction, ref.key, relation)
            if dedup_key in seen:
                continue

            seen.add(dedup_key)
            linked.append(
                LinkedIssueRef(
                    **ref.model_dump(),
                    relation=relation,
                    direction=direction,
                    link_type=link_type_name,
                )
            )

    return linked


def to_description_output(
    description: Any, description_format: DescriptionFormat | None
) -> str | AdfDocument:
    if description_format == "adf":
        return to_adf_document(description)
    return adf_to_plain_text(description)


def to_focused_issue(
    issue: dict[str, Any],
    comments: list[IssueComment] | None = None,
    comments_meta: IssueCommentsMeta | None = None,
    description_format: DescriptionFormat | None = None,
    config: JiraConfig | None = None,
) -> FocusedIssue:
    """Project a raw Jira issue payload to a FocusedIssue.

    Args:
        issue: Raw issue from the issue or search endpoints.
        comments: Already loaded comments, oldest first.
        comments_meta: How comments were loaded. Defaults to skipped.
        description_format: "plain_text" (default) or "adf".
        config: Connection settings. Defaults to the process configuration.

    Returns:
        FocusedIssue.
    """
    if config is None:
        config = get_jira_config()

    fields = as_dict(issue.get("fields"))

    # Severity lives in a custom field when configured.
    if config.severity_field_id:
        severity_raw = fields.get(config.severity_field_id)
    else:
        severity_raw = fields.get("severity")

    return FocusedIssue(
        key=normalize_string(issue.get("key")) or "",
        summary=normalize_string(fields.get("summary")) or "",
        description=to_description_output(fields.get("description"), description_format),
        fix_versions=extract_name_list(fields.get("fixVersions")),
        affected_versions=extract_name_list(fields.get("versions")),
        status=extract_status(fields.get("status")),
        priority=extract_issue_ref(fields.get("priority")),
        severity=extract_scalar_value(severity_raw),
        issue_type=extract_issue_ref(fields.get("issuetype")),
        project_key=normalize_string(as_dict(fields.get("project")).get("key")),
        parent=to_compact_issue_ref(fields.get("parent")),
        subtasks=extract_subtasks(fields.get("subtasks")),
        linked_issues=extract_linked_issues(fields.get("issuelinks")),
        comments=list(comments or []),
        comments_meta=comments_meta or IssueCommentsMeta(mode="skip", total=0, returned=0),
    )


def get_issue(
    issue_key: str,
    skip_comments: bool | None = None,
    load_only_last_3_comments: bool | None = None,
    description_format: DescriptionFormat | None = None,
) -> FocusedIssue:
    """Get one focused issue by key.

    Args:
        issue_key: Jira issue key (e.g., PROJ-123).
        skip_comments: Do not load comments.
        load_only_last_3_comments: Only the 3 most recent comments (default).
        description_format: "plain_text" (default) or "adf".

    Returns:
        FocusedIssue with comments loaded per the requested policy.
    """
    config = get_jira_config()

    issue = jira_executor.jira_request(
        f"/rest/api/3/issue/{quote(issue_key, safe='')}",
        params={"fields": ",".join(get_issue_fields(config)), "fieldsByKeys": "false"},
    )

    comments, meta = get_issue_comments(issue_key, skip_comments, load_only_last_3_comments)

    return to_focused_issue(as_dict(issue), comments, meta, description_format, config)


def get_issue_project_key(issue_key: str) -> str:
    """Look up the project key of an existing issue."""
    issue = as_dict(
        jira_executor.jira_request(
            f"/rest/api/3/issue/{quote(issue_key, safe='')}",
            params={"fields": "project", "fieldsByKeys": "false"},
        )
    )
    project_key = normalize_string(
        as_dict(as_dict(issue.get("fields")).get("project")).get("key")
    )

    if not project_key:
        raise JiraError(f"Cannot resolve project key for issue {issue_key}.")

    return project_key


def create_issue(
    project_key: str,
    issue_type: str,
    summary: str,
    description: str | AdfDocument | None = None,
    description_format: DescriptionFormat | None = None,
    fix_versions: list[str] | None = None,
    affected_versions: list[str] | None = None,
    priority: str | None = None,
    severity: str | None = None,
    status: str | None = None,
) -> CreateIssueResult:
    """Create an issue and optionally move it to a status.

    Every name is resolved before the issue is created. A requested status
    that has no matching transition is reported in the result instead of
    failing the call, since the issue already exists at that point.

    Args:
        project_key: Project key (e.g., PROJ).
        issue_type: Issue type name or id.
        summary: Issue summary/title.
        description: Plain text, or an ADF document when description_format
            is "adf".
        description_format: "plain_text" (default) or "adf".
        fix_versions: Version names or ids.
        affected_versions: Version names or ids.
        priority: Priority name or id.
        severity: Severity value (requires JIRA_SEVERITY_FIELD_ID).
        status: Target status name or transition id applied after creation.

    Returns:
        CreateIssueResult with the created issue and transition outcome.
    """
    config = get_jira_config()

    summary_text = summary.strip()
    if not summary_text:
        raise JiraValidationError("summary cannot be empty.")

    severity_payload = build_severity_payload(severity, config.severity_value_type)
    severity_field_id = (
        require_severity_field(config, "set") if severity_payload is not None else None
    )

    fields: dict[str, Any] = {
        "project": {"key": project_key},
        "issuetype": {"id": resolve_issue_type_id(project_key, issue_type)},
        "summary": summary_text,
    }

    if description is not None:
        fields["description"] = to_jira_description(description, description_format)

    fix_version_ids = resolve_version_ids(project_key, fix_versions)
    if fix_version_ids:
        fields["fixVersions"] = [{"id": version_id} for version_id in fix_version_ids]

    affected_version_ids = resolve_version_ids(project_key, affected_versions)
    if affected_version_ids:
        fields["versions"] = [{"id": version_id} for version_id in affected_version_ids]

    priority_payload = resolve_priority_payload(priority)
    if priority_payload:
        fields["priority"] = priority_payload

    if severity_field_id:
        fields[severity_field_id] = severity_payload

    created = as_dict(
        jira_executor.jira_request("/rest/api/3/issue", method="POST", body={"fields": fields})
    )
    created_key = normalize_string(created.get("key"))
    if not created_key:
        raise JiraError("Jira did not return a key for the created issue.")

    logger.info("Created issue %s in %s", created_key, project_key)

    transition: IssueTransitionResult | None = None
    if status:
        transition = try_transition_issue(created_key, status)

    issue = get_issue(created_key, description_format=description_format)
    return CreateIssueResult(issue=issue, transition=transition)


def update_issue(
    issue_key: str,
    summary: str | Unset = UNSET,
    description: str | AdfDocument | None | Unset = UNSET,
    description_format: DescriptionFormat | None = None,
    fix_versions: list[str] | Unset = UNSET,
    affected_versions: list[str] | Unset = UNSET,
    priority: str | None | Unset = UNSET,
    severity: str | None | Unset = UNSET,
    status: str | None = None,
    notify_users: bool | None = None,
    skip_comments: bool | None = None,
    load_only_last_3_comments: bool | None = None,
) -> UpdateIssueResult:
    """Update focused fields and optionally transition the issue.

    Each field argument is three-state: UNSET leaves the field untouched,
    None clears it, and a value sets it. Version lists set the full list, so
    an empty list clears them.

    Returns:
        UpdateIssueResult with the refreshed issue and transition outcome.
    """
    config = get_jira_config()
    fields: dict[str, Any] = {}

    if not isinstance(summary, Unset):
        summary_text = summary.strip()
        if not summary_text:
            raise JiraValidationError("summary cannot be empty when provided.")
        fields["summary"] = summary_text

    if not isinstance(description, Unset):
        fields["description"] = (
            None
            if description is None
            else to_jira_description(description, description_format)
        )

    severity_value = build_severity_update_value(severity, config.severity_value_type)
    if not isinstance(severity_value, Unset):
        fields[require_severity_field(config, "update")] = severity_value

    priority_value = build_priority_update_value(priority)
    if not isinstance(priority_value, Unset):
        fields["priority"] = priority_value

    if not isinstance(fix_versions, Unset) or not isinstance(affected_versions, Unset):
        project_key = get_issue_project_key(issue_key)

        if not isinstance(fix_versions, Unset):
            fields["fixVersions"] = [
                {"id": version_id}
                for version_id in resolve_version_ids(project_key, fix_versions)
            ]

        if not isinstance(affected_versions, Unset):
            fields["versions"] = [
                {"id": version_id}
                for version_id in resolve_version_ids(project_key, affected_versions)
            ]

    if not fields and not status:
        raise JiraValidationError(
            "No changes requested. Provide at least one field to update or status."
        )

    if fields:
        params: dict[str, str] = {"returnIssue": "false"}
        if notify_users is not None:
            params["notifyUsers"] = "true" if notify_users else "false"

        jira_executor.jira_request(
            f"/rest/api/3/issue/{quote(issue_key, safe='')}",
            method="PUT",
            params=params,
            body={"fields": fields},
        )
        logger.info("Updated %s: %s", issue_key, ", ".join(sorted(fields)))

    transition: IssueTransitionResult | None = None
    if status:
        transition = try_transition_issue(issue_key, status)

    issue = get_issue(
        issue_key,
        skip_comments=skip_comments,
        load_only_last_3_comments=load_only_last_3_comments,
        description_format=description_format,
    )
    return UpdateIssueResult(issue=issue, transition=transition)


def transition_issue(
    issue_key: str,
    to_status: str,
    skip_comments: bool | None = None,
    load_only_last_3_comments: bool | None = None,
    description_format: DescriptionFormat | None = None,
) -> TransitionIssueResult:
    """Move an issue to another status and return the refreshed issue."""
    transition = try_transition_issue(issue_key, to_status)

    issue = get_issue(
        issue_key,
        skip_comments=skip_comments,
        load_only_last_3_comments=load_only_last_3_comments,
        description_format=description_format,
    )
    return TransitionIssueResult(issue=issue, transition=transition)
