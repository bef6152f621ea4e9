"""Change-log enrichment handler.

This module implements the core enrichment logic that turns a raw audit row
plus its side-loaded, joined context into a discriminated change-log entry.
The transformation is pure: everything it needs is passed in, nothing is
cached, and the same inputs always produce an identical entry.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

import pydantic
from pydantic import BaseModel

from activity.errors import MappingError, UnknownTableWarning
from activity.schemas import (
    DETAIL_MODELS,
    ENTRY_CLASSES,
    AuditRow,
    BareLogEntry,
    BaseLogEntry,
    EntryKind,
    variant_for_table,
)
from activity.validators import validate_audit_row

logger = logging.getLogger(__name__)

RowInput = Union[AuditRow, Mapping[str, Any]]
ContextInput = Union[BaseModel, Mapping[str, Any], None]


class LogEnricher:
    """Builds change-log entries from audit rows."""

    def enrich(
        self,
        row: RowInput,
        context: ContextInput = None,
        project_name: Optional[str] = None,
        *,
        project_deleted: bool = False,
    ) -> BaseLogEntry:
        """Enrich one audit row.

        Args:
            row: Audit row, or a raw mapping that is validated first
            context: Joined details for the row's table, as a record or mapping
            project_name: Name of the owning project
            project_deleted: The owning project no longer exists, so its
                name is omitted and clients show a placeholder

        Returns:
            The entry variant selected by the row's table name

        Raises:
            ValidationError: If a raw row is malformed
            MappingError: If the context or project name does not fit the table
        """
        audit_row = self._coerce_row(row)
        table = audit_row.table_name
        kind = variant_for_table(table)

        if kind is None:
            return self._bare_fallback(audit_row, context, project_name)

        fields = audit_row.model_dump()

        if kind == EntryKind.LOG:
            if context:
                raise MappingError(table, "rows of this table take no enrichment context")
            name = self._resolve_project_name(table, project_name, project_deleted)
            return BareLogEntry(**fields, project_name=name)

        details = self._match_context(table, kind, context)
        entry_cls = ENTRY_CLASSES[kind]
        payload: Dict[str, Any] = {entry_cls.payload_field: details}  # type: ignore[dict-item]

        if kind == EntryKind.USER:
            if project_name is not None:
                logger.debug(f"Ignoring project name on user row {audit_row.id}")
            return entry_cls(**fields, **payload)

        name = self._resolve_project_name(table, project_name, project_deleted)
        return entry_cls(**fields, **payload, project_name=name)

    def _coerce_row(self, row: RowInput) -> AuditRow:
        if isinstance(row, AuditRow):
            return row
        return validate_audit_row(row).unwrap()

    def _match_context(self, table: str, kind: EntryKind, context: ContextInput) -> BaseModel:
        """Check the context against the record implied by the table."""
        model = DETAIL_MODELS[kind]
        if context is None:
            raise MappingError(table, f"{model.__name__} context is required")
        if isinstance(context, model):
            return context
        if isinstance(context, BaseModel):
            raise MappingError(
                table, f"expected {model.__name__} context, got {type(context).__name__}"
            )
        try:
            return model.model_validate(context)
        except pydantic.ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) or "__root__" for err in exc.errors()})
            raise MappingError(
                table, f"context does not match {model.__name__} (fields: {', '.join(fields)})"
            ) from exc

    def _resolve_project_name(
        self, table: str, project_name: Optional[str], project_deleted: bool
    ) -> Optional[str]:
        if project_deleted:
            return None
        if not project_name:
            raise MappingError(table, "projectName is required for project-scoped rows")
        return project_name

    def _bare_fallback(
        self, row: AuditRow, context: ContextInput, project_name: Optional[str]
    ) -> BareLogEntry:
        """Unknown tables become bare entries; the warning is logged, never raised."""
        warning = UnknownTableWarning(row.table_name)
        logger.warning(f"{warning} (row {row.id})")
        if context:
            logger.warning(f"Dropping enrichment context for unknown table '{row.table_name}'")
        return BareLogEntry(**row.model_dump(), project_name=project_name or None)


_default_enricher = LogEnricher()


def enrich(
    row: RowInput,
    context: ContextInput = None,
    project_name: Optional[str] = None,
    *,
    project_deleted: bool = False,
) -> BaseLogEntry:
    """Enrich one audit row with the default enricher."""
    return _default_enricher.enrich(row, context, project_name, project_deleted=project_deleted)
