"""Building JQL queries from structured filters."""

import re

from pydantic import BaseModel, Field

from src.tools.jira_errors import JiraValidationError

DEFAULT_ORDER_BY: str = "ORDER BY updated DESC"

_ORDER_BY = re.compile(r"\border\s+by\b", re.IGNORECASE)
_CUSTOM_FIELD_ID = re.compile(r"^customfield_(\d+)$", re.IGNORECASE)
_CF_REFERENCE = re.compile(r"^cf\[\d+\]$", re.IGNORECASE)
_BARE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SearchFilters(BaseModel):
    """Structured filters for a focused issue search."""

    project_key: str | None = Field(default=None, description="Project key.")
    issue_keys: list[str] | None = None
    issue_types: list[str] | None = None
    summary_contains: str | None = None
    description_contains: str | None = None
    fix_versions: list[str] | None = None
    affected_versions: list[str] | None = None
    statuses: list[str] | None = None
    priorities: list[str] | None = None
    severities: list[str] | None = None
    jql: str | None = Field(
        default=None, description="Raw JQL combined with the filters using AND."
    )


def quote_jql_literal(value: str) -> str:
    """Quote a JQL string literal, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def has_order_by(jql: str) -> bool:
    return bool(_ORDER_BY.search(jql))


def with_default_order(jql: str) -> str:
    """Append `ORDER BY updated DESC` unless the query already orders."""
    if has_order_by(jql):
        return jql
    return f"{jql} {DEFAULT_ORDER_BY}"


def build_jql_list_clause(field: str, values: list[str] | None) -> str | None:
    """Render `field = "v"` for one value or `field IN ("a", "b")` for many.

    Blank values are dropped; returns None when nothing remains.
    """
    normalized = [value.strip() for value in values or [] if value.strip()]

    if not normalized:
        return None

    if len(normalized) == 1:
        return f"{field} = {quote_jql_literal(normalized[0])}"

    rendered = ", ".join(quote_jql_literal(value) for value in normalized)
    return f"{field} IN ({rendered})"


def format_severity_jql_field(raw: str) -> str:
    """Turn the configured severity field into a JQL field reference.

    `customfield_123` becomes `cf[123]`; `cf[123]` and bare identifiers such
    as `severity` pass through; anything else is quoted.
    """
    value = raw.strip()

    custom_field = _CUSTOM_FIELD_ID.match(value)
    if custom_field:
        return f"cf[{custom_field.group(1)}]"

    if _CF_REFERENCE.match(value) or _BARE_IDENTIFIER.match(value):
        return value

    escaped = value.replace('"', '\\"')
    return f'"{escaped}"'


def build_search_jql(filters: SearchFilters, severity_jql_field: str) -> str:
    """Compile structured filters and optional raw JQL into one query.

    Args:
        filters: Structured filters.
        severity_jql_field: Configured JQL field for severity.

    Returns:
        JQL string, ordered by `updated DESC` unless it already orders.

    Raises:
        JiraValidationError: If there are no filters and no raw JQL.
    """
    clauses: list[str] = []

    if filters.project_key and filters.project_key.strip():
        clauses.append(f"project = {quote_jql_literal(filters.project_key.strip())}")

    list_clauses = [
        ("key", filters.issue_keys),
        ("issuetype", filters.issue_types),
    ]
    for field, values in list_clauses:
        clause = build_jql_list_clause(field, values)
        if clause:
            clauses.append(clause)

    # Text search.
    if filters.summary_contains and filters.summary_contains.strip():
        clauses.append(f"summary ~ {quote_jql_literal(filters.summary_contains.strip())}")
    if filters.description_contains and filters.description_contains.strip():
        clauses.append(
            f"description ~ {quote_jql_literal(filters.description_contains.strip())}"
        )

    list_clauses = [
        ("fixVersion", filters.fix_versions),
        ("affectedVersion", filters.affected_versions),
        ("status", filters.statuses),
        ("priority", filters.priorities),
        (format_severity_jql_field(severity_jql_field), filters.severities),
    ]
    for field, values in list_clauses:
        clause = build_jql_list_clause(field, values)
        if clause:
            clauses.append(clause)

    raw_jql = filters.jql.strip() if filters.jql else ""
    filters_jql = " AND ".join(clauses)

    if raw_jql and filters_jql:
        jql = f"({raw_jql}) AND ({filters_jql})"
    else:
        jql = raw_jql or filters_jql

    if not jql:
        raise JiraValidationError("Provide at least one filter field or a raw jql query.")

    return with_default_order(jql)


def build_strict_jql(raw_jql: str) -> str:
    """Prepare caller-owned raw JQL for the safe-list search."""
    jql = raw_jql.strip()
    if not jql:
        raise JiraValidationError("jql cannot be empty.")
    return with_default_order(jql)
