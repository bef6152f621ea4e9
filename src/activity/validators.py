"""Batch validators for project-management entities.

Each entity is declared as a Pydantic model whose fields carry the rules
(required, strict primitive type, length and range bounds). Validation is
never fail-fast: every violated field is reported, one issue per field, so a
caller can render all problems at once. Fields are strict, so values are
checked for shape and presence but never coerced.
"""

import logging
import re
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

import pydantic
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictBytes,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
)

from .errors import ValidationError, ValidationIssue
from .schemas import AuditRow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ROOT_FIELD = "__root__"


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Label(_Entity):
    """Task label scoped to a project."""
    id: Optional[StrictStr] = None
    project_id: StrictStr = Field(..., min_length=1)
    name: StrictStr = Field(..., min_length=1)
    description: StrictStr = Field(default="", description="May be empty; defaults to empty")
    color: StrictStr = Field(..., min_length=1)


class Milestone(_Entity):
    """Project milestone with optional denormalized task counts."""
    id: StrictStr = Field(..., min_length=1)
    name: StrictStr = Field(..., min_length=1)
    description: StrictStr = ""
    due_date: Optional[StrictStr] = None
    project_id: StrictStr = Field(..., min_length=1)
    created_at: Optional[StrictStr] = None
    all_tasks_count: Optional[StrictInt] = Field(default=None, ge=0)
    completed_tasks_count: Optional[StrictInt] = Field(default=None, ge=0)
    color: Optional[StrictStr] = None
    labels: Optional[List[Label]] = None

    @field_validator("completed_tasks_count")
    @classmethod
    def check_completed_within_total(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        """Completed tasks can never outnumber all tasks."""
        total = info.data.get("all_tasks_count")
        if v is not None and total is not None and v > total:
            raise ValueError(
                f"completed_tasks_count ({v}) cannot exceed all_tasks_count ({total})"
            )
        return v


class File(_Entity):
    """Uploaded file metadata."""
    id: StrictStr = Field(..., min_length=1)
    file_name: StrictStr = Field(..., min_length=1)
    file_path: Optional[StrictStr] = None
    mime_type: StrictStr = Field(..., min_length=1)
    size: StrictInt = Field(..., ge=0, description="Size in bytes")
    uploaded_by_name: StrictStr
    uploaded_by_email: StrictStr
    task_id: Optional[StrictStr] = None
    created_at: StrictStr
    file_data: Optional[StrictBytes] = None


class Project(_Entity):
    name: StrictStr = Field(..., min_length=2)
    description: StrictStr = ""
    owner_id: StrictStr = Field(..., min_length=1, alias="ownerId")


class Task(_Entity):
    title: StrictStr = Field(..., min_length=2)
    description: StrictStr = ""
    due_date: Optional[StrictStr] = None
    priority: Optional[StrictStr] = None
    status: StrictStr = Field(..., min_length=1)


class User(_Entity):
    """Registration input for a user account."""
    email: StrictStr
    name: StrictStr = Field(..., min_length=3)
    password: StrictStr = Field(..., min_length=6)
    is_premium: StrictBool = Field(default=False, alias="isPremium")

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("must be a valid email address")
        return v


EntityT = TypeVar("EntityT", bound=BaseModel)


class ValidationResult(BaseModel, Generic[EntityT]):
    """Outcome of validating one candidate: a typed value or every issue found."""
    entity: str
    value: Optional[EntityT] = None
    errors: List[ValidationIssue] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> EntityT:
        """Return the validated value or raise with all issues."""
        if self.errors or self.value is None:
            raise ValidationError(self.errors, entity=self.entity)
        return self.value


def _issues_from(exc: pydantic.ValidationError) -> List[ValidationIssue]:
    """Translate pydantic errors into one issue per offending field."""
    issues: Dict[str, ValidationIssue] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or ROOT_FIELD
        if field in issues:
            continue
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        issues[field] = ValidationIssue(field=field, code=err["type"], message=message)
    return list(issues.values())


def validate(model: Type[EntityT], candidate: Any, entity: Optional[str] = None) -> ValidationResult[EntityT]:
    """Validate an untyped candidate against an entity model."""
    name = entity or model.__name__.lower()
    try:
        value = model.model_validate(candidate)
    except pydantic.ValidationError as exc:
        issues = _issues_from(exc)
        logger.debug(f"Rejected {name} candidate with {len(issues)} issue(s)")
        return ValidationResult[model](entity=name, errors=issues)  # type: ignore[valid-type]
    return ValidationResult[model](entity=name, value=value)  # type: ignore[valid-type]


def validate_label(candidate: Any) -> ValidationResult[Label]:
    return validate(Label, candidate)


def validate_milestone(candidate: Any) -> ValidationResult[Milestone]:
    return validate(Milestone, candidate)


def validate_file(candidate: Any) -> ValidationResult[File]:
    return validate(File, candidate)


def validate_project(candidate: Any) -> ValidationResult[Project]:
    return validate(Project, candidate)


def validate_task(candidate: Any) -> ValidationResult[Task]:
    return validate(Task, candidate)


def validate_user(candidate: Any) -> ValidationResult[User]:
    return validate(User, candidate)


def validate_audit_row(candidate: Any) -> ValidationResult[AuditRow]:
    """Validate a raw audit row as produced by the change-log query."""
    return validate(AuditRow, candidate, entity="audit_row")


ENTITY_MODELS: Dict[str, Type[BaseModel]] = {
    "label": Label,
    "milestone": Milestone,
    "file": File,
    "project": Project,
    "task": Task,
    "user": User,
    "audit_row": AuditRow,
}


def validate_entity(entity: str, candidate: Any) -> ValidationResult[Any]:
    """Validate a candidate by entity name."""
    try:
        model = ENTITY_MODELS[entity]
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity}") from None
    return validate(model, candidate, entity=entity)


# Labels every new project starts with.
DEFAULT_LABELS: List[Tuple[str, str, str]] = [
    # Technical
    ("Frontend", "UI/browser-related work", "#4E8FD9"),
    ("Backend", "Server/database work", "#5A9AE6"),
    ("API", "API endpoints or integrations", "#3D88B0"),
    # Design
    ("UI", "User interface design", "#8D74C9"),
    ("UX", "User experience flow", "#A066A0"),
    ("Theme", "Styling/visual design", "#B584AD"),
    # Documentation
    ("Docs", "Documentation updates", "#5CA271"),
    ("Finance", "Payments/accounting", "#6BB38A"),
    ("Legal", "Contracts/compliance", "#5DAA90"),
    # Problems
    ("Bug", "Something's broken", "#E06C5E"),
    ("Security", "Vulnerability fix", "#D95C4A"),
    # Misc
    ("Content", "Copywriting/assets", "#D9AE67"),
    ("Mobile", "Phone/tablet related", "#C0B18D"),
]


def default_labels(project_id: str) -> List[Label]:
    """Build the default label set for a project."""
    return [
        validate_label(
            {"project_id": project_id, "name": name, "description": description, "color": color}
        ).unwrap()
        for name, description, color in DEFAULT_LABELS
    ]
