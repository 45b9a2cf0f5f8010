"""Applying workflow transitions by status name or transition id."""

import logging
from typing import Any
from urllib.parse import quote

from src.models.jira_actions import IssueTransitionResult
from src.tools import jira_executor
from src.tools.tool_utils import as_dict, as_list, normalize_string

logger: logging.Logger = logging.getLogger(__name__)


def list_issue_transitions(issue_key: str) -> list[dict[str, Any]]:
    """Return the transitions currently available on an issue."""
    response = as_dict(
        jira_executor.jira_request(
            f"/rest/api/3/issue/{quote(issue_key, safe='')}/transitions"
        )
    )
    return [entry for entry in as_list(response.get("transitions")) if isinstance(entry, dict)]


def _lower(value: Any) -> str | None:
    return value.strip().lower() if isinstance(value, str) else None


def match_transition(
    transitions: list[dict[str, Any]], requested: str
) -> dict[str, Any] | None:
    """Find the transition for a requested status.

    Matching is case-insensitive and tries transition id, then transition
    name, then destination status name across all transitions.
    """
    wanted = requested.strip().lower()

    matchers = (
        lambda transition: _lower(transition.get("id")),
        lambda transition: _lower(transition.get("name")),
        lambda transition: _lower(as_dict(transition.get("to")).get("name")),
    )
    for matcher in matchers:
        for transition in transitions:
            if matcher(transition) == wanted:
                return transition

    return None


def try_transition_issue(issue_key: str, status: str) -> IssueTransitionResult:
    """Move an issue to a status if the workflow allows it.

    A missing transition is reported in the result (`applied=False`) rather
    than raised; the caller decides whether that matters.

    Args:
        issue_key: Jira issue key (e.g., PROJ-123).
        status: Target status name or transition id.

    Returns:
        IssueTransitionResult describing what happened.
    """
    requested_status = status.strip()

    if not requested_status:
        return IssueTransitionResult(
            requested_status=status,
            applied=False,
            reason="Requested status is empty.",
        )

    transitions = list_issue_transitions(issue_key)
    matched = match_transition(transitions, requested_status)
    transition_id = normalize_string(matched.get("id")) if matched else None

    if not matched or not transition_id:
        available = [
            label
            for label in (
                normalize_string(as_dict(transition.get("to")).get("name"))
                or normalize_string(transition.get("name"))
                for transition in transitions
            )
            if label
        ]
        logger.info(
            "No transition to '%s' available on %s", requested_status, issue_key
        )
        return IssueTransitionResult(
            requested_status=requested_status,
            applied=False,
            reason=(
                "No matching transition found. Available target statuses: "
                f"{', '.join(available) or '(none)'}."
            ),
        )

    jira_executor.jira_request(
        f"/rest/api/3/issue/{quote(issue_key, safe='')}/transitions",
        method="POST",
        body={"transition": {"id": transition_id}},
    )

    return IssueTransitionResult(
        requested_status=requested_status,
        applied=True,
        transition_id=transition_id,
        target_status=normalize_string(as_dict(matched.get("to")).get("name"))
        or normalize_string(matched.get("name")),
    )
