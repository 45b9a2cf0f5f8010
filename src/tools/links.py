"""Resolving business relation labels to Jira issue link types."""

import logging
from typing import Any

from pydantic import BaseModel

from src.models.jira_actions import LinkIssueResult
from src.models.jira_tickets import LinkDirection
from src.tools import jira_executor
from src.tools.adf import plain_text_to_adf
from src.tools.jira_errors import JiraResolutionError, JiraValidationError
from src.tools.tool_utils import as_dict, as_list, normalize_label_for_match, normalize_string

logger: logging.Logger = logging.getLogger(__name__)

# Bounds the size of the error message, not the search.
MAX_RELATIONS_IN_ERROR: int = 40


class ResolvedIssueLink(BaseModel):
    """Link type and issue roles chosen for a relation label."""

    relation: str
    link_type: str
    direction: LinkDirection
    outward_issue_key: str
    inward_issue_key: str


def label_alias_set(label: str) -> set[str]:
    """Match keys for a relation label.

    "is blocked by" yields {"isblockedby", "blockedby"} so either phrasing
    matches.
    """
    normalized = normalize_label_for_match(label)
    aliases: set[str] = set()

    if normalized:
        aliases.add(normalized)

    if normalized.startswith("is") and len(normalized) > 2:
        aliases.add(normalized[2:])

    return aliases


def resolve_issue_link(
    issue_key: str,
    target_issue_key: str,
    relation: str,
    link_types: list[dict[str, Any]],
) -> ResolvedIssueLink:
    """Pick the link type and direction for a relation label.

    Link types are tried in the order Jira returned them. For each, the
    outward label is tested first, then the inward label, then the type name.

    Raises:
        JiraResolutionError: If no link type matches; lists the known labels.
    """
    requested = label_alias_set(relation)

    for link_type in link_types:
        name = normalize_string(link_type.get("name"))
        outward = normalize_string(link_type.get("outward"))
        inward = normalize_string(link_type.get("inward"))

        if not name:
            continue

        if outward and requested & label_alias_set(outward):
            return ResolvedIssueLink(
                relation=outward,
                link_type=name,
                direction="outward",
                outward_issue_key=issue_key,
                inward_issue_key=target_issue_key,
            )

        if inward and requested & label_alias_set(inward):
            return ResolvedIssueLink(
                relation=inward,
                link_type=name,
                direction="inward",
                outward_issue_key=target_issue_key,
                inward_issue_key=issue_key,
            )

        if requested & label_alias_set(name):
            return ResolvedIssueLink(
                relation=outward or name,
                link_type=name,
                direction="outward",
                outward_issue_key=issue_key,
                inward_issue_key=target_issue_key,
            )

    available: list[str] = []
    for link_type in link_types:
        for key in ("outward", "inward", "name"):
            label = normalize_string(link_type.get(key))
            if label and label not in available:
                available.append(label)

    preview = ", ".join(available[:MAX_RELATIONS_IN_ERROR])
    raise JiraResolutionError(
        f"Unknown link relation '{relation}'. Available relations: {preview or '(none)'}.",
        valid_values=available,
    )


def fetch_issue_link_types() -> list[dict[str, Any]]:
    response = as_dict(jira_executor.jira_request("/rest/api/3/issueLinkType"))
    return [entry for entry in as_list(response.get("issueLinkTypes")) if isinstance(entry, dict)]


def link_issue(
    issue_key: str,
    target_issue_key: str,
    relation: str,
    comment: str | None = None,
) -> LinkIssueResult:
    """Create a business relation between two issues.

    Args:
        issue_key: Primary issue key (e.g., PROJ-123).
        target_issue_key: Target issue key (e.g., PROJ-456).
        relation: Relation label, e.g. "blocks", "is blocked by", "relates to".
        comment: Optional plain text comment added with the link.

    Returns:
        LinkIssueResult describing the link that was created.
    """
    issue_key = issue_key.strip()
    target_issue_key = target_issue_key.strip()
    relation = relation.strip()

    if not issue_key or not target_issue_key or not relation:
        raise JiraValidationError("issueKey, targetIssueKey and relation are required.")

    resolved = resolve_issue_link(
        issue_key, target_issue_key, relation, fetch_issue_link_types()
    )

    body: dict[str, Any] = {
        "type": {"name": resolved.link_type},
        "inwardIssue": {"key": resolved.inward_issue_key},
        "outwardIssue": {"key": resolved.outward_issue_key},
    }

    comment_text = comment.strip() if comment else ""
    if comment_text:
        body["comment"] = {"body": plain_text_to_adf(comment_text)}

    jira_executor.jira_request("/rest/api/3/issueLink", method="POST", body=body)
    logger.info(
        "Linked %s -> %s as '%s' (%s)",
        issue_key,
        target_issue_key,
        resolved.relation,
        resolved.link_type,
    )

    return LinkIssueResult(
        issue_key=issue_key,
        target_issue_key=target_issue_key,
        relation=resolved.relation,
        link_type=resolved.link_type,
        direction=resolved.direction,
    )
