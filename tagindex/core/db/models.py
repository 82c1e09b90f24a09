"""
DB models (DTOs) and small normalization helpers for the tag store.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

# Text layout of the `ts` column. Fixed width, so string order == time order.
TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


@dataclass(frozen=True, slots=True)
class TagRecord:
    """
    Tag record as stored in SQLite.

    Notes:
    - `path` is the natural key; `id` is the surrogate assigned on insert.
    - Numeric columns are never NULL; missing values are stored as 0.
    """

    id: int
    path: str
    title: str | None
    artist: str | None
    composer: str | None
    album: str | None
    genre: str | None
    year: str | None
    comment: str | None
    description: str | None
    duration: int
    bitrate: int
    num_chapters: int
    ts: datetime


@dataclass(frozen=True, slots=True)
class TagInput:
    """
    Input record used by the reconciler for both insert and update.

    An update always rewrites every metadata column, so every field is
    carried even when absent.
    """

    path: str
    title: str | None = None
    artist: str | None = None
    composer: str | None = None
    album: str | None = None
    genre: str | None = None
    year: str | None = None
    comment: str | None = None
    description: str | None = None
    duration: int = 0
    bitrate: int = 0
    num_chapters: int = 0


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def coerce_int(value: int | float | None) -> int:
    """Coerce optional numeric metadata to int; absent becomes 0."""
    if value is None:
        return 0
    return int(value)


def format_ts(value: datetime) -> str:
    """Render a timestamp in the stored (UTC, microsecond) layout."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TS_FORMAT)


def parse_ts(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
