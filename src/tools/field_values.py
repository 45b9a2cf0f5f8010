"""Resolving caller values into the payload shapes Jira expects on writes.

Identifiers (issue types, versions, priorities) match by exact id first and
then by case-insensitive name. Any unknown value aborts the write with the
list of valid names attached so the caller can correct it.
"""

import math
from typing import Any
from urllib.parse import quote

from src.models.jira_actions import UNSET, Unset
from src.models.jira_config import JiraConfig, SeverityValueType
from src.models.jira_tickets import AdfDocument, DescriptionFormat
from src.tools import jira_executor
from src.tools.adf import is_adf_document, parse_adf_like_value, plain_text_to_adf
from src.tools.jira_errors import JiraResolutionError, JiraValidationError
from src.tools.tool_utils import as_dict, as_list, normalize_string


def fetch_project(project_key: str) -> dict[str, Any]:
    return as_dict(
        jira_executor.jira_request(f"/rest/api/3/project/{quote(project_key, safe='')}")
    )


def fetch_project_versions(project_key: str) -> list[dict[str, Any]]:
    response = jira_executor.jira_request(
        f"/rest/api/3/project/{quote(project_key, safe='')}/versions"
    )
    return [entry for entry in as_list(response) if isinstance(entry, dict)]


def fetch_all_priorities() -> list[dict[str, Any]]:
    response = jira_executor.jira_request("/rest/api/3/priority")
    return [entry for entry in as_list(response) if isinstance(entry, dict)]


def _match_by_id_or_name(
    candidates: list[dict[str, Any]], requested: str
) -> dict[str, Any] | None:
    value = requested.strip()
    for candidate in candidates:
        if normalize_string(candidate.get("id")) == value:
            return candidate

    lowered = value.lower()
    for candidate in candidates:
        name = normalize_string(candidate.get("name"))
        if name and name.lower() == lowered:
            return candidate

    return None


def _names(candidates: list[dict[str, Any]]) -> list[str]:
    return [name for name in (normalize_string(c.get("name")) for c in candidates) if name]


def resolve_issue_type_id(project_key: str, requested: str) -> str:
    """Resolve an issue type name or id within a project to its id.

    Raises:
        JiraResolutionError: If the project has no such issue type.
    """
    issue_types = [
        entry
        for entry in as_list(fetch_project(project_key).get("issueTypes"))
        if isinstance(entry, dict)
    ]
    match = _match_by_id_or_name(issue_types, requested)
    issue_type_id = normalize_string(match.get("id")) if match else None

    if not issue_type_id:
        available = _names(issue_types)
        raise JiraResolutionError(
            f"Unknown issue type '{requested}' for project {project_key}. "
            f"Available: {', '.join(available) or '(none)'}.",
            valid_values=available,
        )

    return issue_type_id


def resolve_version_ids(project_key: str, requested: list[str] | None) -> list[str]:
    """Resolve project version names or ids to version ids.

    Returns an empty list without calling Jira when nothing was requested.

    Raises:
        JiraResolutionError: Listing every unknown value and the valid names.
    """
    wanted = [value.strip() for value in requested or [] if value.strip()]
    if not wanted:
        return []

    versions = fetch_project_versions(project_key)

    resolved: list[str] = []
    missing: list[str] = []
    for value in wanted:
        match = _match_by_id_or_name(versions, value)
        version_id = normalize_string(match.get("id")) if match else None
        if not version_id:
            missing.append(value)
        elif version_id not in resolved:
            resolved.append(version_id)

    if missing:
        available = _names(versions)
        raise JiraResolutionError(
            f"Unknown project version(s): {', '.join(missing)}. "
            f"Available: {', '.join(available) or '(none)'}.",
            valid_values=available,
        )

    return resolved


def resolve_priority_payload(priority: str | None) -> dict[str, str] | None:
    """Resolve a priority name or id to `{"id": ...}`.

    Returns None for a blank value.

    Raises:
        JiraResolutionError: If no priority matches.
    """
    requested = priority.strip() if priority else ""
    if not requested:
        return None

    priorities = fetch_all_priorities()
    match = _match_by_id_or_name(priorities, requested)
    priority_id = normalize_string(match.get("id")) if match else None

    if not priority_id:
        available = _names(priorities)
        raise JiraResolutionError(
            f"Unknown priority '{requested}'. Available: {', '.join(available) or '(none)'}.",
            valid_values=available,
        )

    return {"id": priority_id}


def build_priority_update_value(
    priority: str | None | Unset,
) -> dict[str, str] | None | Unset:
    """Three-state priority update: UNSET leaves it, None or blank clears it."""
    if isinstance(priority, Unset):
        return UNSET
    if priority is None or not priority.strip():
        return None
    return resolve_priority_payload(priority)


def build_severity_payload(severity: str | None, value_type: SeverityValueType) -> Any:
    """Shape a severity value for the configured field type.

    Returns None for a blank value.

    Raises:
        JiraValidationError: If value_type is "number" and the value is not
            numeric.
    """
    value = severity.strip() if severity else ""
    if not value:
        return None

    if value_type == "string":
        return value

    if value_type == "number":
        try:
            number = float(value)
        except ValueError:
            number = math.nan
        if not math.isfinite(number):
            raise JiraValidationError(
                f"Severity '{value}' is not numeric but JIRA_SEVERITY_VALUE_TYPE is 'number'."
            )
        return int(number) if number.is_integer() else number

    return {"value": value}


def build_severity_update_value(
    severity: str | None | Unset, value_type: SeverityValueType
) -> Any:
    """Three-state severity update: UNSET leaves it, None or blank clears it."""
    if isinstance(severity, Unset):
        return UNSET
    if severity is None or not severity.strip():
        return None
    return build_severity_payload(severity, value_type)


def require_severity_field(config: JiraConfig, action: str) -> str:
    """Return the configured severity field id or fail before any write."""
    if not config.severity_field_id:
        raise JiraValidationError(
            f"Cannot {action} severity: configure JIRA_SEVERITY_FIELD_ID "
            "(for example customfield_12345)."
        )
    return config.severity_field_id


def to_jira_description(
    description: str | AdfDocument, description_format: DescriptionFormat | None
) -> AdfDocument:
    """Convert caller description input to the ADF document Jira stores.

    Raises:
        JiraValidationError: If the value does not match the format.
    """
    if description_format == "adf":
        parsed = parse_adf_like_value(description)
        if parsed is None or not is_adf_document(parsed):
            raise JiraValidationError(
                "description must be a valid ADF document when descriptionFormat=adf. "
                "Expected object: { type: 'doc', version: 1, content: [...] }."
            )
        return parsed

    if not isinstance(description, str):
        raise JiraValidationError(
            "description must be a string when descriptionFormat is plain_text (or omitted)."
        )

    return plain_text_to_adf(description)
