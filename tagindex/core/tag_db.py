"""
Tag store access layer.

Goals:
- One table (`tags`), keyed by file path, with a surrogate integer id.
- SQLite + aiosqlite, async/await friendly.
- Schema versioned via user_version migrations (see `tagindex.core.db.schema`).

Note:
- Models/DTOs and normalization helpers live in `tagindex.core.db.models`
- Schema/migrations live in `tagindex.core.db.schema`
- Query functions live in `tagindex.core.db.queries_tags`
- `TagDb` is the public facade used by the rest of the codebase
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import TracebackType

import aiosqlite

from tagindex.core import StoreConsistencyError, StoreError
from tagindex.core.db import queries_tags
from tagindex.core.db.models import TagInput, TagRecord, format_ts
from tagindex.core.db.schema import ensure_schema as ensure_schema_sql

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TagDb:
    """
    Async access layer for the tag store.

    Usage:
        db = TagDb("tags.db")
        await db.open()
        await db.ensure_schema()
        ... queries ...
        await db.close()

    or `async with TagDb("tags.db") as db:` which opens and ensures the schema.

    Notes:
    - A single connection is shared for the whole invocation.
    - Writes are not committed implicitly; the reconciler commits per file.
    """

    def __init__(
        self, db_path: str | Path, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._clock = clock
        self._last_ts: datetime | None = None

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        logger.debug("Opening tag store at %s", self._db_path)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA journal_mode = WAL;")
        await self._conn.execute("PRAGMA synchronous = NORMAL;")

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    async def __aenter__(self) -> TagDb:
        await self.open()
        await self.ensure_schema()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("TagDb is not open. Call await db.open() first.")
        return self._conn

    def _next_ts(self) -> str:
        """Issue a timestamp strictly later than any previously issued one."""
        now = self._clock()
        if self._last_ts is not None and now <= self._last_ts:
            now = self._last_ts + _TICK
        self._last_ts = now
        return format_ts(now)

    async def ensure_schema(self) -> None:
        """Create or migrate schema to current version."""
        await ensure_schema_sql(self._require_conn())

    async def commit(self) -> None:
        await self._require_conn().commit()

    # ===========================================================================
    # Reconcile primitives
    # ===========================================================================

    async def find_id_by_path(self, path: str) -> int | None:
        return await queries_tags.find_id_by_path(self._require_conn(), path)

    async def insert(self, record: TagInput) -> int:
        """Insert a new row for `record.path`. Returns the assigned id."""
        return await queries_tags.insert_tag(
            self._require_conn(), record, ts=self._next_ts()
        )

    async def update(self, tag_id: int, record: TagInput) -> None:
        """
        Rewrite all metadata columns of row `tag_id` and refresh its timestamp.

        Exactly one row must change; anything else means the store no longer
        matches what `find_id_by_path` just reported.
        """
        n = await queries_tags.update_tag(
            self._require_conn(), tag_id, record, ts=self._next_ts()
        )
        if n != 1:
            raise StoreConsistencyError(
                f"Update of tag id {tag_id} ({record.path}) affected {n} rows, expected 1."
            )

    # ===========================================================================
    # Reads / bulk
    # ===========================================================================

    async def get_by_id(self, tag_id: int) -> TagRecord | None:
        return await queries_tags.get_tag_by_id(self._require_conn(), tag_id)

    async def get_by_path(self, path: str) -> TagRecord | None:
        return await queries_tags.get_tag_by_path(self._require_conn(), path)

    async def list_all(self) -> list[TagRecord]:
        return await queries_tags.list_tags(self._require_conn())

    async def count(self) -> int:
        return await queries_tags.count_tags(self._require_conn())

    async def delete_all(self) -> int:
        """Delete every row and commit. Returns the number of rows removed."""
        conn = self._require_conn()
        n = await queries_tags.delete_all_tags(conn)
        await conn.commit()
        return n
