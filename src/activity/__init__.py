"""Activity feed data model for the project-management backend.

This package provides the typed contracts behind the activity feed:
- Audit row and change-log entry schemas
- Batch validators for domain entities
- Feed scoping filters and human-readable summaries
- Configuration loading
"""

__version__ = "0.1.0"
