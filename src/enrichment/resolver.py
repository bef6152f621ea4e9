"""Resolve enrichment context for audit rows from side-loaded lookups.

The persistence layer fetches the users, tasks, milestones, labels and
project names referenced by a batch of audit rows. This module joins them
onto each row, producing the context mapping expected for the row's table
and the owning project's name. Missing people degrade to ``Unknown`` rather
than failing, since audit rows outlive the records they point at.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from activity.schemas import AuditRow, EntryKind, is_project_scoped, variant_for_table

UNKNOWN = "Unknown"


class UserRecord(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class TaskRecord(BaseModel):
    title: str = ""
    project_id: Optional[str] = None
    milestone_id: Optional[str] = None
    parent_task_id: Optional[str] = None


class MilestoneRecord(BaseModel):
    name: str = ""
    project_id: Optional[str] = None


class LabelRecord(BaseModel):
    name: str = ""
    project_id: Optional[str] = None


class ContextLookup(BaseModel):
    """Id-keyed records referenced by a batch of audit rows."""
    users: Dict[str, UserRecord] = Field(default_factory=dict)
    tasks: Dict[str, TaskRecord] = Field(default_factory=dict)
    milestones: Dict[str, MilestoneRecord] = Field(default_factory=dict)
    labels: Dict[str, LabelRecord] = Field(default_factory=dict)
    projects: Dict[str, str] = Field(default_factory=dict, description="Project id to name")


class ResolvedContext(BaseModel):
    """Everything the enricher needs besides the row itself."""
    context: Optional[Dict[str, Any]] = None
    project_name: Optional[str] = None
    project_deleted: bool = False


def _id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _user_name(user: Optional[UserRecord]) -> str:
    if user is None:
        return UNKNOWN
    return user.name or user.email or UNKNOWN


def _user_email(user: Optional[UserRecord]) -> str:
    if user is None:
        return UNKNOWN
    return user.email or user.name or UNKNOWN


def _task_title(lookup: ContextLookup, task_id: Optional[str], default: str = UNKNOWN) -> str:
    task = lookup.tasks.get(task_id) if task_id else None
    return task.title if task and task.title else default


def project_id_for(row: AuditRow, lookup: ContextLookup) -> Optional[str]:
    """Find the project a row belongs to, following task/label/milestone references."""
    data = row.snapshot
    if row.table_name == "projects":
        return _id(data.get("id"))

    project_id = _id(data.get("project_id"))
    if project_id:
        return project_id

    task = lookup.tasks.get(_id(data.get("task_id")) or "")
    if task and task.project_id:
        return task.project_id
    label = lookup.labels.get(_id(data.get("label_id")) or "")
    if label and label.project_id:
        return label.project_id
    milestone = lookup.milestones.get(_id(data.get("milestone_id")) or "")
    if milestone and milestone.project_id:
        return milestone.project_id
    return None


def _assignment(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    task_id = _id(data.get("task_id"))
    user_id = _id(data.get("user_id"))
    user = lookup.users.get(user_id or "")
    assigned_by = lookup.users.get(_id(data.get("assigned_by")) or "")
    return {
        "task_id": task_id or "",
        "user_id": user_id or "",
        "task_title": _task_title(lookup, task_id),
        "assigned_by_name": _user_name(assigned_by),
        "assigned_by_email": _user_email(assigned_by),
        "user_name": _user_name(user),
        "user_email": _user_email(user),
    }


def _comment(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    # The comments table stores the author as author_id.
    user_id = _id(data.get("author_id")) or _id(data.get("user_id"))
    user = lookup.users.get(user_id or "")
    return {
        "user_id": user_id or "",
        "user_name": _user_name(user),
        "user_email": _user_email(user),
        "comment": str(data.get("comment") or ""),
        "task_title": _task_title(lookup, _id(data.get("task_id"))),
    }


def _milestone(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    return {
        "title": str(data.get("name") or ""),
        "id": _id(data.get("id")) or "",
        "project_id": project_id,
    }


def _file(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    task_id = _id(data.get("task_id"))
    return {
        "title": str(data.get("file_name") or ""),
        "id": _id(data.get("id")) or "",
        "project_id": project_id,
        "task_id": task_id,
        "task_title": _task_title(lookup, task_id, default=""),
    }


def _project_member(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    user_id = _id(data.get("user_id"))
    user = lookup.users.get(user_id or "")
    inviter_id = _id(data.get("inviter_user_id")) or row.changed_by
    inviter = lookup.users.get(inviter_id or "")
    inviter_name = _user_name(inviter)
    if inviter is None and data.get("inviter_name"):
        inviter_name = str(data["inviter_name"])
    return {
        "user_id": user_id or "",
        "user_name": _user_name(user),
        "user_email": _user_email(user),
        "project_id": project_id,
        "inviter_user_id": inviter_id or "",
        "inviter_user_name": inviter_name,
        "inviter_user_email": _user_email(inviter),
    }


def _task_label(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    task_id = _id(data.get("task_id"))
    label_id = _id(data.get("label_id"))
    label = lookup.labels.get(label_id or "")
    return {
        "task_id": task_id or "",
        "task_title": _task_title(lookup, task_id),
        "label_id": label_id or "",
        "label_name": label.name if label and label.name else UNKNOWN,
        "project_id": project_id,
    }


def _task(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    task_id = _id(data.get("id"))
    known = lookup.tasks.get(task_id or "")
    milestone_id = _id(data.get("milestone_id")) or (known.milestone_id if known else None)
    milestone = lookup.milestones.get(milestone_id or "")
    parent_id = _id(data.get("parent_task_id")) or (known.parent_task_id if known else None)
    parent_title = _task_title(lookup, parent_id, default="") if parent_id else ""
    return {
        "task_id": task_id or "",
        "task_title": str(data.get("title") or (known.title if known else "")),
        "project_id": project_id,
        "milestone_id": milestone_id,
        "milestone_name": milestone.name if milestone else None,
        "parent_task_id": parent_id,
        "parent_task_title": parent_title or None,
    }


def _user(row: AuditRow, data: Mapping[str, Any], lookup: ContextLookup, project_id: str) -> Dict[str, Any]:
    user = UserRecord(name=_id(data.get("name")), email=_id(data.get("email")))
    return {
        "id": _id(data.get("id")) or "",
        "name": _user_name(user),
        "email": _user_email(user),
    }


ContextBuilder = Callable[[AuditRow, Mapping[str, Any], ContextLookup, str], Dict[str, Any]]

CONTEXT_BUILDERS: Dict[EntryKind, ContextBuilder] = {
    EntryKind.ASSIGNMENT: _assignment,
    EntryKind.COMMENT: _comment,
    EntryKind.MILESTONE: _milestone,
    EntryKind.FILE: _file,
    EntryKind.PROJECT_MEMBER: _project_member,
    EntryKind.TASK_LABEL: _task_label,
    EntryKind.TASK: _task,
    EntryKind.USER: _user,
}


def resolve_context(row: AuditRow, lookup: ContextLookup) -> ResolvedContext:
    """Join lookup records onto one audit row.

    A project-scoped row whose project cannot be found, either because the id
    is missing or because the lookup no longer holds it, is treated as
    belonging to a deleted project.
    """
    kind = variant_for_table(row.table_name)
    project_id = project_id_for(row, lookup)
    project_name = lookup.projects.get(project_id) if project_id else None
    if project_name is None and row.table_name == "projects":
        # A project row knows its own name, even after deletion.
        project_name = _id(row.snapshot.get("name"))

    if kind is None:
        return ResolvedContext(project_name=project_name)

    builder = CONTEXT_BUILDERS.get(kind)
    context = builder(row, row.snapshot, lookup, project_id or "") if builder else None

    if not is_project_scoped(row.table_name):
        return ResolvedContext(context=context)

    return ResolvedContext(
        context=context,
        project_name=project_name,
        project_deleted=project_name is None,
    )
