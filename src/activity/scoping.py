"""Feed scope filters over audit rows.

A row belongs to a scope when either of its before/after snapshots points at
the scoped id. These mirror the predicates the change-log queries apply, so a
batch fetched once can be narrowed without another round trip.
"""

from typing import Iterable, List, Optional, Sequence

from .schemas import AuditRow, Operation


def _snapshot_value(row: AuditRow, key: str, value: str) -> bool:
    for data in (row.old_data, row.new_data):
        found = data.get(key) if data else None
        if found is not None and str(found) == value:
            return True
    return False


def matches_project(row: AuditRow, project_id: str) -> bool:
    """Row touches the project itself or something that carries its id."""
    return _snapshot_value(row, "project_id", project_id) or _snapshot_value(row, "id", project_id)


def matches_task(row: AuditRow, task_id: str) -> bool:
    return _snapshot_value(row, "task_id", task_id) or _snapshot_value(row, "id", task_id)


def matches_entity(row: AuditRow, entity_id: str) -> bool:
    """Row is the history of one comment, milestone or user.

    Old snapshots always match; new snapshots only count for updates so a
    creation row is not mistaken for another entity's history.
    """
    if row.old_data and str(row.old_data.get("id")) == entity_id:
        return True
    return bool(
        row.new_data
        and str(row.new_data.get("id")) == entity_id
        and row.operation == Operation.UPDATE
    )


def matches_user(row: AuditRow, user_id: str) -> bool:
    """Row changes the user's own record."""
    return _snapshot_value(row, "id", user_id)


def filter_rows(
    rows: Iterable[AuditRow],
    project_ids: Optional[Sequence[str]] = None,
    task_id: Optional[str] = None,
    user_id: Optional[str] = None,
    table_names: Optional[Sequence[str]] = None,
    entity_id: Optional[str] = None,
) -> List[AuditRow]:
    """Select rows in any of the given scopes, then restrict by table.

    Scopes combine with OR. With no scope at all every row is in scope.
    """
    has_scope = bool(project_ids) or any(scope is not None for scope in (task_id, user_id, entity_id))
    tables = set(table_names) if table_names else None

    selected = []
    for row in rows:
        if tables is not None and row.table_name not in tables:
            continue
        if has_scope:
            in_scope = (
                any(matches_project(row, pid) for pid in project_ids or ())
                or (task_id is not None and matches_task(row, task_id))
                or (user_id is not None and matches_user(row, user_id))
                or (entity_id is not None and matches_entity(row, entity_id))
            )
            if not in_scope:
                continue
        selected.append(row)
    return selected
