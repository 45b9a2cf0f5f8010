"""Project baseline: one call that tells a caller what a project accepts.

Only the project lookup is mandatory. Every other lookup degrades to an
empty (or default) section plus a human-readable note, so a partially
permitted account still gets a usable snapshot.
"""

import logging
from typing import Any

from src.models.jira_actions import AssignableUser, SprintSummary
from src.models.jira_config import JiraConfig, get_jira_config
from src.models.project_baseline import (
    BUSINESS_FIELDS,
    BusinessFieldName,
    BusinessFieldProfile,
    IssueTypeFieldProfile,
    IssueTypeRef,
    IssueTypeStatuses,
    ProjectBaseline,
    ProjectIdentity,
    ProjectIssueType,
    ProjectPriority,
    ProjectVersion,
    ProjectWorkflow,
    SeverityContext,
    SeverityOption,
    WorkflowFlow,
)
from src.tools import jira_executor
from src.tools.field_values import fetch_project, fetch_project_versions
from src.tools.jira_errors import JiraError, to_error_message
from src.tools.sprints import fetch_active_sprints
from src.tools.tool_utils import (
    as_dict,
    as_list,
    extract_scalar_value,
    normalize_label_for_match,
    normalize_string,
)
from src.tools.users import fetch_top_assignable_users_by_recent_assignments
from src.tools.workflow import build_issue_type_flows, fetch_issue_type_statuses

logger: logging.Logger = logging.getLogger(__name__)

MAX_ALLOWED_VALUES: int = 30
MAX_SEVERITY_OPTIONS: int = 60

ASSIGNABLE_USERS_TRUNCATED_NOTE: str = (
    "Assignable users ranking used a bounded scan window for recent issue history; "
    "ranking may be partial."
)

FieldMetaByIssueType = dict[str, dict[str, Any]]


def _to_priority(value: Any) -> ProjectPriority | None:
    raw = as_dict(value)
    priority_id = normalize_string(raw.get("id"))
    name = normalize_string(raw.get("name"))

    if not priority_id or not name:
        return None

    return ProjectPriority(
        id=priority_id, name=name, description=normalize_string(raw.get("description")) or ""
    )


def _to_priorities(values: Any) -> list[ProjectPriority]:
    priorities = (_to_priority(value) for value in as_list(values))
    return [priority for priority in priorities if priority]


def fetch_priorities(project_id: str) -> list[ProjectPriority]:
    """Priorities of the project's priority scheme.

    Falls back to the global priority list when the scheme search fails or
    returns nothing.
    """
    try:
        response = as_dict(
            jira_executor.jira_request(
                "/rest/api/3/priority/search",
                params={"maxResults": 100, "projectId": project_id},
            )
        )
        priorities = _to_priorities(response.get("values"))
        if priorities:
            return priorities
    except JiraError as e:
        logger.info("Priority scheme search unavailable (%s); using global priorities", e)

    return _to_priorities(jira_executor.jira_request("/rest/api/3/priority"))


def fetch_open_project_versions(project_key: str) -> list[ProjectVersion]:
    """Versions that are neither released nor archived."""
    versions: list[ProjectVersion] = []

    for version in fetch_project_versions(project_key):
        version_id = normalize_string(version.get("id"))
        name = normalize_string(version.get("name"))
        if not version_id or not name:
            continue

        released = version.get("released") is True
        archived = version.get("archived") is True
        if released or archived:
            continue

        versions.append(
            ProjectVersion(
                id=version_id,
                name=name,
                released=released,
                archived=archived,
                release_date=normalize_string(version.get("releaseDate")),
            )
        )

    return versions


def fetch_create_meta_field_map(project_key: str) -> FieldMetaByIssueType:
    """Create-screen field metadata keyed by issue type id."""
    response = as_dict(
        jira_executor.jira_request(
            "/rest/api/3/issue/createmeta",
            params={"projectKeys": project_key, "expand": "projects.issuetypes.fields"},
        )
    )

    wanted = normalize_label_for_match(project_key)
    project_meta = next(
        (
            as_dict(project)
            for project in as_list(response.get("projects"))
            if normalize_label_for_match(normalize_string(as_dict(project).get("key"))) == wanted
        ),
        None,
    )
    if project_meta is None:
        return {}

    by_issue_type: FieldMetaByIssueType = {}
    for issue_type in as_list(project_meta.get("issuetypes")):
        issue_type = as_dict(issue_type)
        issue_type_id = normalize_string(issue_type.get("id"))
        if issue_type_id:
            by_issue_type[issue_type_id] = as_dict(issue_type.get("fields"))

    return by_issue_type


def jira_field_key(field: BusinessFieldName, config: JiraConfig) -> str | None:
    """Jira field key behind a business field name."""
    if field == "severity":
        return config.severity_field_id
    if field == "affectedVersions":
        return "versions"
    return field


def default_allowed_values(
    field: BusinessFieldName,
    priorities: list[ProjectPriority],
    versions: list[ProjectVersion],
) -> list[str]:
    if field == "priority":
        return [priority.name for priority in priorities]
    if field in ("fixVersions", "affectedVersions"):
        return [version.name for version in versions]
    return []


def extract_allowed_values(values: Any) -> list[str]:
    """Distinct scalar labels of a field's allowed values."""
    allowed: list[str] = []

    for value in as_list(values):
        scalar = extract_scalar_value(value)
        if scalar and scalar not in allowed:
            allowed.append(scalar)
        if len(allowed) >= MAX_ALLOWED_VALUES:
            break

    return allowed


def build_business_field_profile(
    field: BusinessFieldName,
    fields_meta: dict[str, Any] | None,
    priorities: list[ProjectPriority],
    versions: list[ProjectVersion],
    config: JiraConfig,
) -> BusinessFieldProfile:
    key = jira_field_key(field, config)
    meta = as_dict(fields_meta).get(key) if key else None

    allowed = extract_allowed_values(as_dict(meta).get("allowedValues")) if meta else []
    required = as_dict(meta).get("required")

    return BusinessFieldProfile(
        field=field,
        required=required if isinstance(required, bool) else field == "summary",
        supported=meta is not None or field != "severity" or bool(config.severity_field_id),
        allowed_values=allowed or default_allowed_values(field, priorities, versions),
    )


def build_field_profile(
    issue_types: list[ProjectIssueType],
    priorities: list[ProjectPriority],
    versions: list[ProjectVersion],
    meta_by_issue_type: FieldMetaByIssueType | None,
    config: JiraConfig,
) -> list[IssueTypeFieldProfile]:
    """Per issue type: which business fields are required, supported, and allowed.

    Pass None for `meta_by_issue_type` to build the default profile used when
    create metadata is unavailable.
    """
    profile: list[IssueTypeFieldProfile] = []

    for issue_type in issue_types:
        fields_meta = (meta_by_issue_type or {}).get(issue_type.id)
        profile.append(
            IssueTypeFieldProfile(
                issue_type=IssueTypeRef(id=issue_type.id, name=issue_type.name),
                fields=[
                    build_business_field_profile(
                        field, fields_meta, priorities, versions, config
                    )
                    for field in BUSINESS_FIELDS
                ],
            )
        )

    return profile


def default_severity_context(config: JiraConfig) -> SeverityContext:
    return SeverityContext(
        configured=bool(config.severity_field_id),
        field_id=config.severity_field_id,
        jql_field=config.severity_jql_field,
        value_type=config.severity_value_type,
        options=[],
    )


def extract_allowed_value_details(values: Any) -> list[SeverityOption]:
    """Allowed values with ids and descriptions, for option-style fields."""
    details: list[SeverityOption] = []

    for raw in as_list(values):
        if isinstance(raw, dict):
            raw_id = raw.get("id")
            option_id = normalize_string(raw_id)
            if option_id is None and not isinstance(raw_id, bool):
                if isinstance(raw_id, (int, float)):
                    option_id = extract_scalar_value(raw_id)

            value = (
                normalize_string(raw.get("value"))
                or normalize_string(raw.get("name"))
                or normalize_string(raw.get("label"))
                or extract_scalar_value(raw)
            )
            if not value:
                continue

            details.append(
                SeverityOption(
                    id=option_id,
                    value=value,
                    description=normalize_string(raw.get("description")) or "",
                )
            )
        else:
            scalar = extract_scalar_value(raw)
            if not scalar:
                continue
            details.append(SeverityOption(value=scalar))

        if len(details) >= MAX_SEVERITY_OPTIONS:
            break

    return details


def build_severity_context(
    project_key: str,
    config: JiraConfig,
    meta_by_issue_type: FieldMetaByIssueType | None = None,
) -> SeverityContext:
    """Severity configuration plus the options Jira offers for it.

    Options are collected across issue types and deduplicated by id and
    case-insensitive value.
    """
    context = default_severity_context(config)
    if not config.severity_field_id:
        return context

    if meta_by_issue_type is None:
        meta_by_issue_type = fetch_create_meta_field_map(project_key)

    options: dict[str, SeverityOption] = {}
    for fields_meta in meta_by_issue_type.values():
        severity_meta = as_dict(fields_meta.get(config.severity_field_id))
        for option in extract_allowed_value_details(severity_meta.get("allowedValues")):
            options.setdefault(f"{option.id or '_'}::{option.value.lower()}", option)

    return context.model_copy(update={"options": list(options.values())})


def _to_issue_type(value: Any) -> ProjectIssueType | None:
    raw = as_dict(value)
    issue_type_id = normalize_string(raw.get("id"))
    name = normalize_string(raw.get("name"))

    if not issue_type_id or not name:
        return None

    return ProjectIssueType(
        id=issue_type_id,
        name=name,
        description=normalize_string(raw.get("description")) or "",
        subtask=raw.get("subtask") is True,
    )


def _unavailable(lookup: str, error: JiraError, notes: list[str]) -> None:
    logger.warning("%s lookup unavailable: %s", lookup, error)
    notes.append(f"{lookup} lookup unavailable: {to_error_message(error)}")


def get_project_baseline(project_key: str) -> ProjectBaseline:
    """Build the project baseline.

    Args:
        project_key: Project key (e.g., PROJ).

    Returns:
        ProjectBaseline; lookups that failed are listed in `notes`.

    Raises:
        JiraError: If the project itself cannot be read.
    """
    config = get_jira_config()

    project = fetch_project(project_key)
    project_id = normalize_string(project.get("id"))
    normalized_key = normalize_string(project.get("key"))
    project_name = normalize_string(project.get("name"))
    if not project_id or not normalized_key or not project_name:
        raise JiraError(f"Jira returned an incomplete project for {project_key}.")

    notes: list[str] = []

    issue_types = [
        issue_type
        for issue_type in (_to_issue_type(value) for value in as_list(project.get("issueTypes")))
        if issue_type
    ]

    priorities: list[ProjectPriority] = []
    try:
        priorities = fetch_priorities(project_id)
    except JiraError as e:
        _unavailable("Priorities", e, notes)

    versions: list[ProjectVersion] = []
    try:
        versions = fetch_open_project_versions(project_key)
    except JiraError as e:
        _unavailable("Versions", e, notes)

    assignable_users: list[AssignableUser] = []
    try:
        assignable_users, truncated = fetch_top_assignable_users_by_recent_assignments(
            project_key
        )
        if truncated:
            notes.append(ASSIGNABLE_USERS_TRUNCATED_NOTE)
    except JiraError as e:
        _unavailable("Assignable users", e, notes)

    issue_type_statuses: list[IssueTypeStatuses] = []
    try:
        issue_type_statuses = fetch_issue_type_statuses(project_key)
    except JiraError as e:
        _unavailable("Workflow status", e, notes)

    meta_by_issue_type: FieldMetaByIssueType | None = None
    try:
        meta_by_issue_type = fetch_create_meta_field_map(project_key)
    except JiraError as e:
        _unavailable("Field profile", e, notes)
    field_profile = build_field_profile(
        issue_types, priorities, versions, meta_by_issue_type, config
    )

    issue_type_flows: list[WorkflowFlow] = []
    try:
        issue_type_flows = build_issue_type_flows(project_key, issue_type_statuses)
    except JiraError as e:
        _unavailable("Workflow transitions", e, notes)

    active_sprints: list[SprintSummary] = []
    try:
        active_sprints = fetch_active_sprints(project_key)
    except JiraError as e:
        _unavailable("Active sprint", e, notes)

    severity = default_severity_context(config)
    try:
        severity = build_severity_context(project_key, config, meta_by_issue_type)
    except JiraError as e:
        _unavailable("Severity", e, notes)

    return ProjectBaseline(
        project=ProjectIdentity(id=project_id, key=normalized_key, name=project_name),
        issue_types=issue_types,
        priorities=priorities,
        versions=versions,
        assignable_users=assignable_users,
        active_sprints=active_sprints,
        severity=severity,
        field_profile=field_profile,
        workflow=ProjectWorkflow(issue_type_flows=issue_type_flows),
        notes=notes,
    )
