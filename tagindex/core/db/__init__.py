"""
Internal DB subpackage for tagindex.

Splits the store into focused units (models, schema/migrations, queries)
while keeping `TagDb` as the single public interface that the rest of the
codebase imports from `tagindex.core.tag_db`.
"""

from __future__ import annotations

# Models / DTOs
from .models import TagInput, TagRecord

# Schema / migrations
from .schema import SCHEMA_VERSION, ensure_schema, migrate

__all__ = [
    # models
    "TagInput",
    "TagRecord",
    # schema
    "SCHEMA_VERSION",
    "ensure_schema",
    "migrate",
]
