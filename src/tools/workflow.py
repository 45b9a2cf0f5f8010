"""Sampling a project's workflow graph from recently updated issues.

Jira Cloud exposes no per-project workflow graph to regular users, so the
graph is inferred: for each status, one recent issue sitting in it is asked
which transitions it offers. Statuses without a recent issue stay unsampled
and the coverage counters say so.
"""

import logging
from typing import Any
from urllib.parse import quote

from src.models.project_baseline import (
    IssueTypeRef,
    IssueTypeStatuses,
    WorkflowCoverage,
    WorkflowFlow,
    WorkflowStatus,
    WorkflowTransitionEdge,
)
from src.tools import jira_executor
from src.tools.jira_errors import JiraError
from src.tools.jql import quote_jql_literal
from src.tools.search import legacy_search
from src.tools.tool_utils import as_dict, as_list, normalize_label_for_match, normalize_string
from src.tools.transitions import list_issue_transitions

logger: logging.Logger = logging.getLogger(__name__)

STATUS_SAMPLE_SIZE: int = 100


def _to_workflow_status(value: Any) -> WorkflowStatus | None:
    raw = as_dict(value)
    status_id = normalize_string(raw.get("id"))
    name = normalize_string(raw.get("name"))

    if not status_id or not name:
        return None

    return WorkflowStatus(
        id=status_id,
        name=name,
        category=normalize_string(as_dict(raw.get("statusCategory")).get("name")),
    )


def fetch_issue_type_statuses(project_key: str) -> list[IssueTypeStatuses]:
    """Statuses the project allows, grouped by issue type."""
    response = jira_executor.jira_request(
        f"/rest/api/3/project/{quote(project_key, safe='')}/statuses"
    )

    grouped: list[IssueTypeStatuses] = []
    for entry in as_list(response):
        entry = as_dict(entry)
        issue_type = as_dict(entry.get("issueType"))
        issue_type_id = normalize_string(issue_type.get("id"))
        issue_type_name = normalize_string(issue_type.get("name"))

        if not issue_type_id or not issue_type_name:
            continue

        statuses = [_to_workflow_status(status) for status in as_list(entry.get("statuses"))]
        grouped.append(
            IssueTypeStatuses(
                issue_type=IssueTypeRef(id=issue_type_id, name=issue_type_name),
                statuses=[status for status in statuses if status],
            )
        )

    return grouped


def fetch_recent_issue_keys_by_status(project_key: str, issue_type_name: str) -> dict[str, str]:
    """Most recently updated issue key per normalized status name."""
    jql = (
        f"project = {quote_jql_literal(project_key)} "
        f"AND issuetype = {quote_jql_literal(issue_type_name)} "
        "ORDER BY updated DESC"
    )
    response = legacy_search(jql, ["status"], STATUS_SAMPLE_SIZE)

    by_status: dict[str, str] = {}
    for issue in as_list(response.get("issues")):
        issue = as_dict(issue)
        issue_key = normalize_string(issue.get("key"))
        status_name = normalize_string(
            as_dict(as_dict(issue.get("fields")).get("status")).get("name")
        )

        if not issue_key or not status_name:
            continue

        by_status.setdefault(normalize_label_for_match(status_name), issue_key)

    return by_status


def build_issue_type_flow(project_key: str, issue_type_statuses: IssueTypeStatuses) -> WorkflowFlow:
    """Sample the transition graph of one issue type."""
    statuses = issue_type_statuses.statuses
    samples = fetch_recent_issue_keys_by_status(
        project_key, issue_type_statuses.issue_type.name
    )

    edges: dict[tuple[str, str, str], WorkflowTransitionEdge] = {}
    with_sample = 0
    with_transitions = 0

    for status in statuses:
        sample_key = samples.get(normalize_label_for_match(status.name))
        if not sample_key:
            continue

        with_sample += 1

        try:
            transitions = list_issue_transitions(sample_key)
        except JiraError as e:
            logger.warning("Skipping transitions of %s (%s): %s", sample_key, status.name, e)
            continue

        added = 0
        for transition in transitions:
            to_status = normalize_string(as_dict(transition.get("to")).get("name"))
            transition_name = normalize_string(transition.get("name")) or to_status

            if not to_status or not transition_name:
                continue

            edge_key = (status.name, to_status, transition_name)
            if edge_key in edges:
                continue

            edges[edge_key] = WorkflowTransitionEdge(
                from_status=status.name, to=to_status, transition=transition_name
            )
            added += 1

        if added:
            with_transitions += 1

    return WorkflowFlow(
        issue_type=issue_type_statuses.issue_type,
        statuses=statuses,
        transitions=[edges[key] for key in sorted(edges)],
        coverage=WorkflowCoverage(
            statuses_total=len(statuses),
            statuses_with_sample=with_sample,
            statuses_with_transitions=with_transitions,
        ),
    )


def build_issue_type_flows(
    project_key: str, issue_type_statuses: list[IssueTypeStatuses]
) -> list[WorkflowFlow]:
    """Sampled workflow graph per issue type.

    Transition lookups that fail for a sampled issue are skipped; the status
    then counts as sampled but without transitions. Edges come sorted
    by their (from, to, transition) triple.
    """
    return [
        build_issue_type_flow(project_key, statuses) for statuses in issue_type_statuses
    ]
