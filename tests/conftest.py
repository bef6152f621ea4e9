import sys
from pathlib import Path

import pytest

# Add src/ to the path so tests can import `activity` and `enrichment` as top-level packages.
ROOT = Path(__file__).resolve().parents[1]
SRC = str(ROOT / "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)


@pytest.fixture
def comment_context():
    return {
        "user_id": "u1",
        "user_name": "Ann",
        "user_email": "ann@x.com",
        "comment": "hi",
        "task_title": "Fix bug",
    }


@pytest.fixture
def contexts_by_table(comment_context):
    """A matching context for every enriched table."""
    return {
        "assignments": {
            "task_id": "t1",
            "user_id": "u2",
            "task_title": "Fix bug",
            "assigned_by_name": "Ann",
            "assigned_by_email": "ann@x.com",
            "user_name": "Bob",
            "user_email": "bob@x.com",
        },
        "comments": comment_context,
        "milestones": {"title": "Beta", "id": "m1", "project_id": "p1"},
        "files": {"title": "spec.pdf", "id": "f1", "project_id": "p1", "task_title": ""},
        "project_members": {
            "user_id": "u2",
            "user_name": "Bob",
            "user_email": "bob@x.com",
            "project_id": "p1",
            "inviter_user_id": "u1",
            "inviter_user_name": "Ann",
            "inviter_user_email": "ann@x.com",
        },
        "task_labels": {
            "task_id": "t1",
            "task_title": "Fix bug",
            "label_id": "l1",
            "label_name": "Bug",
            "project_id": "p1",
        },
        "tasks": {"task_id": "t1", "task_title": "Fix bug", "project_id": "p1"},
        "users": {"id": "u1", "name": "Ann", "email": "ann@x.com"},
    }
