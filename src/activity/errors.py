"""Error taxonomy for the activity feed.

Validation problems are recoverable and reported as a complete batch of
issues. Mapping problems indicate an upstream data-consistency bug and are
kept distinct so they can be alerted on rather than shown to end users.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single violated field."""
    field: str = Field(..., description="Dotted path of the offending field")
    code: str = Field(..., description="Machine-readable violation code")
    message: str = Field(..., description="Human-readable explanation")

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ActivityError(Exception):
    """Base class for activity feed errors."""


class ValidationError(ActivityError):
    """One or more fields of a candidate record are invalid."""

    def __init__(self, issues: List[ValidationIssue], entity: Optional[str] = None):
        self.issues = list(issues)
        self.entity = entity
        prefix = f"Invalid {entity}" if entity else "Invalid input"
        details = "; ".join(str(issue) for issue in self.issues)
        super().__init__(f"{prefix}: {details}")

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]


class MappingError(ActivityError):
    """Enrichment context does not fit the variant implied by the table name."""

    def __init__(self, table_name: str, reason: str):
        self.table_name = table_name
        self.reason = reason
        super().__init__(f"Cannot map change log row for table '{table_name}': {reason}")


class UnknownTableWarning(UserWarning):
    """Audit row references a table with no enrichment variant.

    Handled by the bare-log fallback; logged and collected, never raised.
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"No enrichment variant for table '{table_name}', using bare log entry")
