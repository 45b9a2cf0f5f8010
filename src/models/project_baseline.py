"""Project baseline models.

A baseline is a compressed snapshot of what a project accepts: issue types,
priorities, open versions, who usually gets assigned work, active sprints,
severity options, field requirements per issue type, and a sampled workflow
graph. Lookups that fail are reported in `notes` instead of failing the
whole snapshot.
"""

from typing import Literal

from pydantic import Field

from src.models.jira_actions import AssignableUser, SprintSummary
from src.models.jira_config import SeverityValueType
from src.models.jira_tickets import CamelModel

BusinessFieldName = Literal[
    "summary",
    "description",
    "fixVersions",
    "affectedVersions",
    "priority",
    "severity",
]

BUSINESS_FIELDS: tuple[BusinessFieldName, ...] = (
    "summary",
    "description",
    "fixVersions",
    "affectedVersions",
    "priority",
    "severity",
)


class ProjectIdentity(CamelModel):
    id: str
    key: str
    name: str


class ProjectIssueType(CamelModel):
    id: str
    name: str
    description: str = ""
    subtask: bool = False


class ProjectPriority(CamelModel):
    id: str
    name: str
    description: str = ""


class ProjectVersion(CamelModel):
    id: str
    name: str
    released: bool = False
    archived: bool = False
    release_date: str | None = None


class SeverityOption(CamelModel):
    id: str | None = None
    value: str
    description: str = ""


class SeverityContext(CamelModel):
    """How severity is configured and which values Jira allows."""

    configured: bool
    field_id: str | None = None
    jql_field: str
    value_type: SeverityValueType
    options: list[SeverityOption] = Field(default_factory=list)


class IssueTypeRef(CamelModel):
    id: str
    name: str


class BusinessFieldProfile(CamelModel):
    field: BusinessFieldName
    required: bool
    supported: bool
    allowed_values: list[str] = Field(default_factory=list)


class IssueTypeFieldProfile(CamelModel):
    issue_type: IssueTypeRef
    fields: list[BusinessFieldProfile] = Field(default_factory=list)


class WorkflowStatus(CamelModel):
    id: str
    name: str
    category: str | None = None


class WorkflowTransitionEdge(CamelModel):
    from_status: str = Field(alias="from")
    to: str
    transition: str


class WorkflowCoverage(CamelModel):
    """Sampling coverage; the graph is only as complete as recent activity."""

    statuses_total: int = 0
    statuses_with_sample: int = 0
    statuses_with_transitions: int = 0


class WorkflowFlow(CamelModel):
    """Sampled transition graph for one issue type."""

    issue_type: IssueTypeRef
    statuses: list[WorkflowStatus] = Field(default_factory=list)
    transitions: list[WorkflowTransitionEdge] = Field(default_factory=list)
    coverage: WorkflowCoverage = Field(default_factory=WorkflowCoverage)


class IssueTypeStatuses(CamelModel):
    """Statuses a project allows for one issue type."""

    issue_type: IssueTypeRef
    statuses: list[WorkflowStatus] = Field(default_factory=list)


class ProjectWorkflow(CamelModel):
    issue_type_flows: list[WorkflowFlow] = Field(default_factory=list)


class ProjectBaseline(CamelModel):
    """Per-project snapshot used to ground issue writes."""

    project: ProjectIdentity
    issue_types: list[ProjectIssueType] = Field(default_factory=list)
    priorities: list[ProjectPriority] = Field(default_factory=list)
    versions: list[ProjectVersion] = Field(default_factory=list)
    assignable_users: list[AssignableUser] = Field(default_factory=list)
    active_sprints: list[SprintSummary] = Field(default_factory=list)
    severity: SeverityContext
    field_profile: list[IssueTypeFieldProfile] = Field(default_factory=list)
    workflow: ProjectWorkflow = Field(default_factory=ProjectWorkflow)
    notes: list[str] = Field(default_factory=list)
