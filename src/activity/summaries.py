"""Human-readable text for change-log entries."""

from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel

from .schemas import (
    AssignmentEntry,
    BaseLogEntry,
    CommentEntry,
    EntryKind,
    Operation,
    ProjectMemberEntry,
    ProjectScopedEntry,
)

ITEM_TYPE_LABELS: Dict[str, str] = {
    "projects": "Project",
    "tasks": "Task",
    "project_members": "Project Member",
    "files": "File",
    "assignments": "Task Assignment",
    "pending_project_invitations": "Project Invitation",
    "comments": "Comment",
    "milestones": "Milestone",
    "task_labels": "Task Label",
    "users": "User",
}

# Bookkeeping columns that change on every write.
IGNORED_FIELDS: FrozenSet[str] = frozenset({"updated_at", "file_data"})

DEFAULT_MAX_LENGTH = 40
UNKNOWN_PROJECT = "Unknown project"


class FieldChange(BaseModel):
    """Display-ready before/after values of one field."""
    field: str
    old: str
    new: str


def item_type_label(table_name: str) -> str:
    return ITEM_TYPE_LABELS.get(table_name, table_name)


def truncate(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    if value is None or value == "":
        return "(empty)"
    text = str(value)
    if len(text) > max_length:
        return f"{text[:max_length]}..."
    return text


def changed_item_name(entry: BaseLogEntry) -> str:
    """Name of the thing the entry is about."""
    if isinstance(entry, AssignmentEntry):
        return entry.assignment.user_name or "Unknown User"

    if entry.table_name == "pending_project_invitations":
        for data in (entry.new_data, entry.old_data):
            if data and data.get("email"):
                return str(data["email"])
        return "Unknown Email"

    for key in ("name", "title", "file_name"):
        for data in (entry.new_data, entry.old_data):
            if data and data.get(key):
                return str(data[key])
    return "item"


def actor_display(entry: BaseLogEntry, viewer_email: Optional[str] = None) -> str:
    """Who made the change, as ``name (email)``.

    Membership rows fall back to the inviter when the actor was not joined.
    """
    name = entry.changed_by_name
    email = entry.changed_by_email

    if (not name or not email) and isinstance(entry, ProjectMemberEntry):
        name = entry.project_member.inviter_user_name
        email = entry.project_member.inviter_user_email

    if viewer_email and email == viewer_email:
        return "You"
    if name and email:
        return f"{name} ({email})"
    return "Unknown user"


def changed_fields(entry: BaseLogEntry, max_length: int = DEFAULT_MAX_LENGTH) -> List[FieldChange]:
    """Old/new values for every field an update modified."""
    if entry.operation != Operation.UPDATE:
        return []

    before = entry.old_data or {}
    after = entry.new_data or {}
    changes = []
    for field in sorted(set(before) | set(after)):
        if field in IGNORED_FIELDS:
            continue
        left = before.get(field)
        right = after.get(field)
        if left != right:
            changes.append(
                FieldChange(field=field, old=truncate(left, max_length), new=truncate(right, max_length))
            )
    return changes


def describe(entry: BaseLogEntry, unknown_project_label: str = UNKNOWN_PROJECT) -> str:
    """One-line description of an entry for feeds and notifications."""
    project = unknown_project_label
    if isinstance(entry, ProjectScopedEntry) and entry.project_name:
        project = entry.project_name

    op = entry.operation
    item_type = item_type_label(entry.table_name)
    name = changed_item_name(entry)

    if entry.kind == EntryKind.USER:  # type: ignore[attr-defined]
        return {
            Operation.CREATE: "Created account",
            Operation.UPDATE: "Updated profile",
            Operation.DELETE: "Deleted account",
        }[op]

    if isinstance(entry, CommentEntry):
        task = entry.comment.task_title
        return {
            Operation.CREATE: f'Wrote a comment to task "{task}" in project {project}',
            Operation.UPDATE: f'Updated a comment on task "{task}" in project {project}',
            Operation.DELETE: f'Deleted a comment from task "{task}" in project {project}',
        }[op]

    if isinstance(entry, AssignmentEntry):
        task = entry.assignment.task_title
        return {
            Operation.CREATE: f'Assigned {name} to task "{task}" in project {project}',
            Operation.UPDATE: f'Updated assignment of {name} on task "{task}" in project {project}',
            Operation.DELETE: f'Unassigned {name} from task "{task}" in project {project}',
        }[op]

    if entry.table_name == "projects":
        return {
            Operation.CREATE: f'Created project "{name}"',
            Operation.UPDATE: f'Updated project "{name}"',
            Operation.DELETE: f'Deleted project "{name}"',
        }[op]

    return {
        Operation.CREATE: f'Added {item_type} "{name}" to project {project}',
        Operation.UPDATE: f'Updated {item_type} "{name}" in project {project}',
        Operation.DELETE: f'Deleted {item_type} "{name}" from project {project}',
    }[op]
