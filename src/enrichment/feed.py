"""Activity feed assembly.

Takes a batch of raw audit rows read under one snapshot, enriches each row,
and returns the entries newest first. A bad row never sinks the batch:
malformed rows and mapping failures are recorded separately so mapping
failures, which point at upstream consistency bugs, can be alerted on.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence, Union

import pydantic
from pydantic import BaseModel, Field

from activity.config import FeedConfig
from activity.errors import MappingError, UnknownTableWarning, ValidationError
from activity.schemas import AuditRow, BaseLogEntry, ChangeLogEntry, to_feed_item, variant_for_table
from activity.validators import validate_audit_row

from .handler import LogEnricher
from .resolver import ContextLookup, resolve_context

logger = logging.getLogger(__name__)


class FeedResult(BaseModel):
    """Result of assembling a feed from a batch of audit rows."""
    entries: List[ChangeLogEntry] = Field(default_factory=list, description="Entries, newest first")
    total_rows: int = Field(..., ge=0, description="Rows received")

    # Error handling
    validation_errors: List[str] = Field(default_factory=list, description="Malformed rows that were skipped")
    mapping_errors: List[str] = Field(default_factory=list, description="Rows whose context did not fit their table")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal warnings")

    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="When the feed was assembled"
    )

    def feed_items(self) -> List[dict]:
        """Entries serialized with client-facing keys."""
        return [to_feed_item(entry) for entry in self.entries]


def clamp_limit(limit: Optional[int], config: Optional[FeedConfig] = None) -> int:
    """Bound a requested page size to ``[1, max_limit]``."""
    config = config or FeedConfig()
    if limit is None:
        return min(config.default_limit, config.max_limit)
    return max(1, min(limit, config.max_limit))


def _timestamp(entry: BaseLogEntry) -> datetime:
    ts = entry.created_at or datetime.min
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def order_entries(entries: Iterable[BaseLogEntry]) -> List[BaseLogEntry]:
    """Newest first, ties broken by id; undated entries go last."""
    items = list(entries)
    dated = sorted(
        (e for e in items if e.created_at is not None),
        key=lambda e: (_timestamp(e), e.id),
        reverse=True,
    )
    undated = sorted((e for e in items if e.created_at is None), key=lambda e: e.id, reverse=True)
    return dated + undated


def _row_label(raw: Any) -> str:
    if isinstance(raw, AuditRow):
        return raw.id
    if isinstance(raw, dict) and raw.get("id") is not None:
        return str(raw["id"])
    return "<unknown>"


def build_feed(
    rows: Sequence[Union[AuditRow, dict]],
    lookup: Optional[ContextLookup] = None,
    *,
    limit: Optional[int] = None,
    enricher: Optional[LogEnricher] = None,
    config: Optional[FeedConfig] = None,
) -> FeedResult:
    """Enrich, order and page a batch of audit rows.

    Args:
        rows: Audit rows or raw row mappings
        lookup: Records referenced by the rows
        limit: Requested page size; clamped to the configured bounds
        enricher: Enricher to use; a fresh one by default
        config: Feed settings

    Returns:
        FeedResult with the page of entries and everything that was skipped
    """
    config = config or FeedConfig()
    enricher = enricher or LogEnricher()
    lookup = lookup or ContextLookup()

    entries: List[BaseLogEntry] = []
    validation_errors: List[str] = []
    mapping_errors: List[str] = []
    warnings: List[str] = []

    for raw in rows:
        try:
            row = raw if isinstance(raw, AuditRow) else validate_audit_row(raw).unwrap()
        except ValidationError as e:
            logger.warning(f"Skipping malformed audit row {_row_label(raw)}: {e}")
            validation_errors.append(f"{_row_label(raw)}: {e}")
            continue

        if variant_for_table(row.table_name) is None:
            warnings.append(str(UnknownTableWarning(row.table_name)))

        try:
            resolved = resolve_context(row, lookup)
        except pydantic.ValidationError as e:
            error = MappingError(row.table_name, f"unresolvable context ({e.error_count()} error(s))")
            logger.error(f"Context resolution failed for row {row.id}: {error}")
            mapping_errors.append(f"{row.id}: {error}")
            continue

        try:
            entry = enricher.enrich(
                row,
                resolved.context,
                resolved.project_name,
                project_deleted=resolved.project_deleted,
            )
        except MappingError as e:
            logger.error(f"Change log mapping failed for row {row.id}: {e}")
            mapping_errors.append(f"{row.id}: {e}")
            continue
        entries.append(entry)

    page = order_entries(entries)[: clamp_limit(limit, config)]
    logger.info(
        f"Assembled feed with {len(page)} of {len(entries)} entries from {len(rows)} rows"
    )

    return FeedResult(
        entries=page,
        total_rows=len(rows),
        validation_errors=validation_errors,
        mapping_errors=mapping_errors,
        warnings=warnings,
    )
