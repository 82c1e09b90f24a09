"""
Core domain package.

This package contains the scan-and-reconcile pipeline (classifier, walker,
extractor, reconciler) and the tag store. It is independent of the command
line layer; `tagindex.commands` and `tagindex.__main__` sit on top of it.

We intentionally keep exports minimal; consumers should usually import from the
specific module they need (e.g. `tagindex.core.reconciler`).
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "ExtractionError",
    "StoreError",
    "StoreConsistencyError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class ExtractionError(CoreError):
    """Raised when metadata cannot be read from a single file (recoverable)."""


class StoreError(CoreError):
    """Raised when the tag store is unusable. Aborts the whole operation."""


class StoreConsistencyError(StoreError):
    """Raised when a write affected an unexpected number of rows."""
