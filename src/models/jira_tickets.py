"""Focused Jira issue models.

Note: status, priority, and issue type values are flexible strings. Jira
instances configure their own values per project and workflow, so these
models only carry what Jira returned and never validate against a fixed set.
"""

from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)
from pydantic.alias_generators import to_camel

# Type alias for ADF (Atlassian Document Format) documents.
AdfDocument = dict[str, Any]

DescriptionFormat = Literal["plain_text", "adf"]
CommentReadMode = Literal["skip", "last_3", "all"]
LinkDirection = Literal["outward", "inward"]


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SparseModel(CamelModel):
    """Model whose unset (None) members are omitted when serialised."""

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        return {key: value for key, value in handler(self).items() if value is not None}


class IssueRef(SparseModel):
    """Reference to a priority or issue type."""

    id: str | None = None
    name: str | None = None


class IssueStatusRef(SparseModel):
    """Current status of an issue."""

    id: str | None = None
    name: str | None = None
    category: str | None = None


class CommentAuthor(SparseModel):
    """Comment author identity; members are present only when Jira sent them."""

    account_id: str | None = None
    display_name: str | None = None


class IssueComment(CamelModel):
    """Jira comment rendered as plain text."""

    id: str = Field(description="Comment id, or 'unknown' when Jira omitted it.")
    body: str = Field(description="Comment body as plain text.")
    author: CommentAuthor = Field(default_factory=CommentAuthor)
    created: str | None = Field(default=None, description="ISO timestamp when created.")
    updated: str | None = Field(
        default=None, description="ISO timestamp when last updated."
    )


class IssueCommentsMeta(CamelModel):
    """How comments were loaded for a focused issue."""

    mode: CommentReadMode = "skip"
    total: int = 0
    returned: int = 0


class CompactIssueRef(CamelModel):
    """Compact reference to a related issue."""

    key: str
    summary: str = ""
    status: str | None = None
    issue_type: str | None = None


class LinkedIssueRef(CompactIssueRef):
    """Issue reached through an issue link."""

    relation: str
    direction: LinkDirection
    link_type: str | None = None


class FocusedIssue(CamelModel):
    """Reduced, stable view of a Jira issue."""

    key: str = Field(description="Jira issue key (e.g., PROJ-123).")
    summary: str = Field(default="", description="Issue summary/title.")
    description: str | AdfDocument = Field(
        default="", description="Plain text, or an ADF document when requested."
    )
    fix_versions: list[str] = Field(default_factory=list)
    affected_versions: list[str] = Field(default_factory=list)
    status: IssueStatusRef | None = None
    priority: IssueRef | None = None
    severity: str | None = None
    issue_type: IssueRef | None = None
    project_key: str | None = None
    parent: CompactIssueRef | None = None
    subtasks: list[CompactIssueRef] = Field(default_factory=list)
    linked_issues: list[LinkedIssueRef] = Field(default_factory=list)
    comments: list[IssueComment] = Field(
        default_factory=list, description="Comments ordered oldest to newest."
    )
    comments_meta: IssueCommentsMeta = Field(default_factory=IssueCommentsMeta)


class JqlIssueListItem(CamelModel):
    """Context-safe issue row returned by raw JQL search."""

    key: str
    summary: str = ""
    fix_versions: list[str] = Field(default_factory=list)
    sprints: list[str] = Field(default_factory=list)
    assignee: str | None = None
    reporter: str | None = None
    priority: str | None = None
    status: str | None = None
