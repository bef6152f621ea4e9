"""Audit row and change-log schemas for the activity feed.

This module defines Pydantic models for the raw audit rows captured by the
database triggers and for the enriched, discriminated change-log entries
served to clients. Every entry carries an explicit ``kind`` tag so consumers
can switch on the variant instead of probing which optional key is set.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, List, Literal, Optional, Type, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Mutation captured by an audit row."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Trigger functions report TG_OP, which names inserts INSERT.
OPERATION_ALIASES = {
    "INSERT": Operation.CREATE,
}


class EntryKind(str, Enum):
    """Discriminant of a change-log entry.

    The value doubles as the client-facing key holding the enrichment
    payload, except for ``LOG`` which carries no payload.
    """
    ASSIGNMENT = "assignment"
    COMMENT = "comment"
    MILESTONE = "milestone"
    FILE = "file"
    PROJECT_MEMBER = "projectMember"
    TASK_LABEL = "task_label"
    TASK = "task"
    USER = "user"
    LOG = "log"


class _LogFields(BaseModel):
    """Fields shared by raw audit rows and enriched entries."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Audit row identifier")
    table_name: str = Field(..., description="Table whose row was mutated")
    operation: Operation = Field(..., description="Kind of mutation")
    new_data: Optional[Dict[str, Any]] = Field(default=None, description="Row state after the mutation")
    old_data: Optional[Dict[str, Any]] = Field(default=None, description="Row state before the mutation")
    changed_by: Optional[str] = Field(default=None, description="Actor who performed the mutation")
    changed_by_name: Optional[str] = Field(default=None, description="Joined actor display name")
    changed_by_email: Optional[str] = Field(default=None, description="Joined actor email")
    created_at: Optional[datetime] = Field(default=None, description="When the mutation happened")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Unrecognised row columns, passed through")

    @property
    def snapshot(self) -> Dict[str, Any]:
        """Row state the entry is about: the old row for deletes, otherwise the new one."""
        if self.operation == Operation.DELETE:
            return self.old_data or self.new_data or {}
        return self.new_data or self.old_data or {}


class AuditRow(_LogFields):
    """Immutable record of one create/update/delete mutation."""

    @model_validator(mode="before")
    @classmethod
    def collect_extra_columns(cls, data: Any) -> Any:
        """Move unknown columns into ``extra`` instead of rejecting them."""
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields)
        extra = dict(data.get("extra") or {})
        fields: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "extra":
                continue
            if key in known:
                fields[key] = value
            else:
                extra[key] = value
        fields["extra"] = extra
        return fields

    @field_validator("id", "changed_by", mode="before")
    @classmethod
    def stringify_uuid(cls, v: Any) -> Any:
        if isinstance(v, UUID):
            return str(v)
        return v

    @field_validator("operation", mode="before")
    @classmethod
    def normalize_operation(cls, v: Any) -> Any:
        """Accept trigger op names and any letter case."""
        if isinstance(v, str):
            upper = v.strip().upper()
            return OPERATION_ALIASES.get(upper, upper)
        return v

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> Any:
        """Parse ISO timestamps, including the trailing ``Z`` form."""
        if isinstance(v, str):
            return datetime.fromisoformat(v.replace("Z", "+00:00"))
        return v


class _Details(BaseModel):
    """Joined context records are closed shapes."""
    model_config = ConfigDict(extra="forbid", frozen=True)


class AssignmentDetails(_Details):
    """Task assignment context."""
    task_id: str
    user_id: str
    task_title: str
    assigned_by_name: str
    assigned_by_email: str
    user_name: str
    user_email: str


class CommentDetails(_Details):
    """Comment context."""
    user_id: str
    user_name: str
    user_email: str
    comment: str
    task_title: str


class MilestoneDetails(_Details):
    title: str
    id: str
    project_id: str


class FileDetails(_Details):
    title: str
    id: str
    project_id: str
    task_id: Optional[str] = None
    task_title: str


class ProjectMemberDetails(_Details):
    """Project membership context, including who sent the invitation."""
    user_id: str
    user_name: str
    user_email: str
    project_id: str
    inviter_user_id: str
    inviter_user_name: str
    inviter_user_email: str


class TaskLabelDetails(_Details):
    task_id: str
    task_title: str
    label_id: str
    label_name: str
    project_id: str


class TaskDetails(_Details):
    """Task context; subtasks also name their parent."""
    task_id: str
    task_title: str
    project_id: str
    milestone_id: Optional[str] = None
    milestone_name: Optional[str] = None
    parent_task_id: Optional[str] = None
    parent_task_title: Optional[str] = None


class UserDetails(_Details):
    id: str
    name: str
    email: str


EnrichmentContext = Union[
    AssignmentDetails,
    CommentDetails,
    MilestoneDetails,
    FileDetails,
    ProjectMemberDetails,
    TaskLabelDetails,
    TaskDetails,
    UserDetails,
]


class BaseLogEntry(_LogFields):
    """Common shape of every change-log entry."""
    payload_field: ClassVar[Optional[str]] = None

    @property
    def payload(self) -> Optional[_Details]:
        """The enrichment record, if this variant carries one."""
        if self.payload_field is None:
            return None
        return getattr(self, self.payload_field)

    @property
    def enrichment_key(self) -> Optional[str]:
        """Client-facing key holding the payload."""
        if self.payload_field is None:
            return None
        return self.kind.value  # type: ignore[attr-defined]


class ProjectScopedEntry(BaseLogEntry):
    project_name: Optional[str] = Field(
        default=None,
        alias="projectName",
        description="Owning project; absent when the project has been deleted",
    )


class AssignmentEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "assignment"
    kind: Literal[EntryKind.ASSIGNMENT] = EntryKind.ASSIGNMENT
    assignment: AssignmentDetails


class CommentEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "comment"
    kind: Literal[EntryKind.COMMENT] = EntryKind.COMMENT
    comment: CommentDetails


class MilestoneEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "milestone"
    kind: Literal[EntryKind.MILESTONE] = EntryKind.MILESTONE
    milestone: MilestoneDetails


class FileEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "file"
    kind: Literal[EntryKind.FILE] = EntryKind.FILE
    file: FileDetails


class ProjectMemberEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "project_member"
    kind: Literal[EntryKind.PROJECT_MEMBER] = EntryKind.PROJECT_MEMBER
    project_member: ProjectMemberDetails = Field(..., alias="projectMember")


class TaskLabelEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "task_label"
    kind: Literal[EntryKind.TASK_LABEL] = EntryKind.TASK_LABEL
    task_label: TaskLabelDetails


class TaskEntry(ProjectScopedEntry):
    payload_field: ClassVar[Optional[str]] = "task"
    kind: Literal[EntryKind.TASK] = EntryKind.TASK
    task: TaskDetails


class UserEntry(BaseLogEntry):
    """Account changes; never scoped to a project."""
    payload_field: ClassVar[Optional[str]] = "user"
    kind: Literal[EntryKind.USER] = EntryKind.USER
    user: UserDetails


class BareLogEntry(ProjectScopedEntry):
    """Fallback for rows without a specific enrichment context."""
    kind: Literal[EntryKind.LOG] = EntryKind.LOG


ChangeLogEntry = Annotated[
    Union[
        AssignmentEntry,
        CommentEntry,
        MilestoneEntry,
        FileEntry,
        ProjectMemberEntry,
        TaskLabelEntry,
        TaskEntry,
        UserEntry,
        BareLogEntry,
    ],
    Field(discriminator="kind"),
]


# Fixed mapping from audited table to entry variant.
TABLE_VARIANTS: Dict[str, EntryKind] = {
    "assignments": EntryKind.ASSIGNMENT,
    "comments": EntryKind.COMMENT,
    "milestones": EntryKind.MILESTONE,
    "files": EntryKind.FILE,
    "project_members": EntryKind.PROJECT_MEMBER,
    "task_labels": EntryKind.TASK_LABEL,
    "tasks": EntryKind.TASK,
    "users": EntryKind.USER,
    "projects": EntryKind.LOG,
    "pending_project_invitations": EntryKind.LOG,
}

DETAIL_MODELS: Dict[EntryKind, Type[_Details]] = {
    EntryKind.ASSIGNMENT: AssignmentDetails,
    EntryKind.COMMENT: CommentDetails,
    EntryKind.MILESTONE: MilestoneDetails,
    EntryKind.FILE: FileDetails,
    EntryKind.PROJECT_MEMBER: ProjectMemberDetails,
    EntryKind.TASK_LABEL: TaskLabelDetails,
    EntryKind.TASK: TaskDetails,
    EntryKind.USER: UserDetails,
}

ENTRY_CLASSES: Dict[EntryKind, Type[BaseLogEntry]] = {
    EntryKind.ASSIGNMENT: AssignmentEntry,
    EntryKind.COMMENT: CommentEntry,
    EntryKind.MILESTONE: MilestoneEntry,
    EntryKind.FILE: FileEntry,
    EntryKind.PROJECT_MEMBER: ProjectMemberEntry,
    EntryKind.TASK_LABEL: TaskLabelEntry,
    EntryKind.TASK: TaskEntry,
    EntryKind.USER: UserEntry,
    EntryKind.LOG: BareLogEntry,
}

# Tables whose rows are not scoped to a project.
UNSCOPED_TABLES: FrozenSet[str] = frozenset({"users"})


def variant_for_table(table_name: str) -> Optional[EntryKind]:
    """Return the entry variant for a table, or None if the table is unknown."""
    return TABLE_VARIANTS.get(table_name)


def is_project_scoped(table_name: str) -> bool:
    return table_name in TABLE_VARIANTS and table_name not in UNSCOPED_TABLES


def known_tables() -> List[str]:
    """Get all table names with a known variant."""
    return sorted(TABLE_VARIANTS)


# Top-level keys whose presence carries meaning for clients; passthrough
# columns may never introduce them.
RESERVED_FEED_KEYS: FrozenSet[str] = frozenset(
    {kind.value for kind in EntryKind} | {"kind", "projectName", "project_name", "project_member"}
)


def to_feed_item(entry: BaseLogEntry) -> Dict[str, Any]:
    """Serialize an entry with client-facing keys.

    Passed-through columns are merged back at the top level without
    shadowing any known field. Reserved keys are dropped from the
    passthrough so the enrichment key and ``projectName`` always reflect
    the entry itself.
    """
    data = entry.model_dump(mode="json", by_alias=True, exclude_none=True)
    extra = data.pop("extra", {})
    for key, value in extra.items():
        if key in RESERVED_FEED_KEYS:
            logger.warning(f"Dropping reserved passthrough column '{key}' from entry {entry.id}")
            continue
        data.setdefault(key, value)
    return data
