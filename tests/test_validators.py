"""Tests for the batch entity validators."""

import pytest

from activity.errors import ValidationError
from activity.validators import (
    DEFAULT_LABELS,
    Label,
    default_labels,
    validate_audit_row,
    validate_entity,
    validate_file,
    validate_label,
    validate_milestone,
    validate_project,
    validate_task,
    validate_user,
)


def _file(**overrides):
    data = {
        "id": "f1",
        "file_name": "spec.pdf",
        "mime_type": "application/pdf",
        "size": 1024,
        "uploaded_by_name": "Ann",
        "uploaded_by_email": "ann@x.com",
        "created_at": "2024-01-01T00:00:00Z",
    }
    data.update(overrides)
    return data


def _codes(result):
    return {issue.field: issue.code for issue in result.errors}


class TestLabelValidation:
    """Test label validation."""

    def test_valid_label(self):
        result = validate_label({"project_id": "p1", "name": "Bug", "color": "#E06C5E"})

        assert result.ok
        assert result.value.description == ""
        assert result.value.id is None

    def test_empty_description_is_valid(self):
        result = validate_label({"project_id": "p1", "name": "Bug", "color": "#fff", "description": ""})
        assert result.ok

    def test_all_missing_fields_reported(self):
        """Validation is not fail-fast: every missing field is reported."""
        result = validate_label({"project_id": "p1"})

        assert not result.ok
        assert result.value is None
        assert _codes(result) == {"name": "missing", "color": "missing"}

    def test_wrong_type_not_coerced(self):
        result = validate_label({"project_id": "p1", "name": 123, "color": "#fff"})
        assert _codes(result) == {"name": "string_type"}

    def test_non_mapping_candidate(self):
        result = validate_label("Bug")

        assert len(result.errors) == 1
        assert result.errors[0].field == "__root__"
        assert result.errors[0].code == "model_type"


class TestMilestoneValidation:
    """Test milestone validation."""

    def test_valid_milestone(self):
        result = validate_milestone({
            "id": "m1",
            "name": "Beta",
            "project_id": "p1",
            "all_tasks_count": 3,
            "completed_tasks_count": 3,
            "labels": [{"project_id": "p1", "name": "Bug", "color": "#fff"}],
        })

        assert result.ok
        assert isinstance(result.value.labels[0], Label)

    def test_completed_cannot_exceed_total(self):
        result = validate_milestone({
            "id": "m1",
            "name": "Beta",
            "project_id": "p1",
            "all_tasks_count": 3,
            "completed_tasks_count": 5,
        })

        assert not result.ok
        issue = result.errors[0]
        assert issue.field == "completed_tasks_count"
        assert issue.code == "value_error"
        assert issue.message == "completed_tasks_count (5) cannot exceed all_tasks_count (3)"

    def test_negative_count_rejected(self):
        result = validate_milestone({"id": "m1", "name": "Beta", "project_id": "p1", "all_tasks_count": -1})
        assert _codes(result) == {"all_tasks_count": "greater_than_equal"}

    def test_nested_label_errors_use_dotted_paths(self):
        result = validate_milestone({
            "id": "m1",
            "name": "Beta",
            "project_id": "p1",
            "labels": [{"project_id": "p1", "name": "Bug"}],
        })
        assert _codes(result) == {"labels.0.color": "missing"}


class TestFileValidation:
    """Test file metadata validation."""

    def test_valid_file(self):
        result = validate_file(_file(file_data=b"%PDF"))
        assert result.ok
        assert result.value.task_id is None

    def test_size_string_not_coerced(self):
        result = validate_file(_file(size="1024"))
        assert _codes(result) == {"size": "int_type"}

    def test_size_bool_rejected(self):
        result = validate_file(_file(size=True))
        assert not result.ok
        assert result.errors[0].field == "size"

    def test_missing_uploader(self):
        data = _file()
        del data["uploaded_by_name"]
        del data["uploaded_by_email"]

        result = validate_file(data)

        assert set(_codes(result)) == {"uploaded_by_name", "uploaded_by_email"}


class TestOtherEntities:
    """Test project, task and user validation."""

    def test_project_name_too_short(self):
        result = validate_project({"name": "A", "owner_id": "u1"})
        assert _codes(result) == {"name": "string_too_short"}

    def test_project_request_body_keys(self):
        """Request bodies name the owner ``ownerId``."""
        result = validate_project({"name": "Web", "ownerId": "u1"})

        assert result.ok
        assert result.value.owner_id == "u1"

    def test_project_missing_owner_reported_under_request_key(self):
        result = validate_project({"name": "Web"})
        assert _codes(result) == {"ownerId": "missing"}

    def test_user_is_premium_request_key(self):
        result = validate_user({"email": "ann@x.com", "name": "Ann", "password": "secret1", "isPremium": True})

        assert result.ok
        assert result.value.is_premium is True

    def test_user_is_premium_not_coerced(self):
        result = validate_user({"email": "ann@x.com", "name": "Ann", "password": "secret1", "isPremium": "yes"})
        assert _codes(result) == {"isPremium": "bool_type"}

    def test_task_requires_status(self):
        result = validate_task({"title": "Fix bug"})
        assert _codes(result) == {"status": "missing"}

    def test_user_email_format(self):
        result = validate_user({"email": "not-an-email", "name": "Ann", "password": "secret1"})

        assert _codes(result) == {"email": "value_error"}
        assert result.errors[0].message == "must be a valid email address"

    def test_user_defaults(self):
        result = validate_user({"email": "ann@x.com", "name": "Ann", "password": "secret1"})
        assert result.ok
        assert result.value.is_premium is False

    def test_audit_row_unknown_operation(self):
        result = validate_audit_row({"id": "1", "table_name": "tasks", "operation": "MERGE"})
        assert _codes(result) == {"operation": "enum"}
        assert result.entity == "audit_row"


class TestValidationResult:
    """Test result unwrapping and lookup by entity name."""

    def test_unwrap_raises_with_all_issues(self):
        result = validate_label({})

        with pytest.raises(ValidationError) as exc_info:
            result.unwrap()

        assert exc_info.value.entity == "label"
        assert set(exc_info.value.fields) == {"project_id", "name", "color"}
        assert str(exc_info.value).startswith("Invalid label: ")

    def test_unwrap_returns_value(self):
        label = validate_label({"project_id": "p1", "name": "Bug", "color": "#fff"}).unwrap()
        assert label.name == "Bug"

    def test_validate_entity_by_name(self):
        result = validate_entity("task", {"title": "Fix bug", "status": "todo"})
        assert result.ok
        assert result.entity == "task"

    def test_validate_entity_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown entity type"):
            validate_entity("widget", {})


class TestDefaultLabels:
    """Test the default label set."""

    def test_default_labels(self):
        labels = default_labels("p1")

        assert len(labels) == len(DEFAULT_LABELS) == 13
        assert all(label.project_id == "p1" for label in labels)
        assert labels[0].name == "Frontend"
        assert labels[-1].color == "#C0B18D"
