"""
Tag table DB queries used by `tagindex.core.tag_db.TagDb`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- These functions assume `conn.row_factory = aiosqlite.Row`.
- None of them commit; the caller owns the transaction boundary.

Important:
- Do NOT interpolate user input into SQL.
"""

from __future__ import annotations

import aiosqlite

from tagindex.core.db.models import TagInput, TagRecord, parse_ts


def _row_to_tag(row: aiosqlite.Row) -> TagRecord:
    """Convert an aiosqlite Row to a TagRecord dataclass."""
    return TagRecord(
        id=int(row["id"]),
        path=str(row["path"]),
        title=row["title"],
        artist=row["artist"],
        composer=row["composer"],
        album=row["album"],
        genre=row["genre"],
        year=row["year"],
        comment=row["comment"],
        description=row["description"],
        duration=int(row["duration"] or 0),
        bitrate=int(row["bitrate"] or 0),
        num_chapters=int(row["num_chapters"] or 0),
        ts=parse_ts(row["ts"]),
    )


def _params(record: TagInput) -> dict[str, object]:
    return {
        "title": record.title,
        "artist": record.artist,
        "composer": record.composer,
        "album": record.album,
        "genre": record.genre,
        "year": record.year,
        "comment": record.comment,
        "description": record.description,
        "duration": int(record.duration),
        "bitrate": int(record.bitrate),
        "num_chapters": int(record.num_chapters),
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def find_id_by_path(conn: aiosqlite.Connection, path: str) -> int | None:
    cursor = await conn.execute("SELECT id FROM tags WHERE path = ?;", (path,))
    row = await cursor.fetchone()
    return int(row["id"]) if row else None


async def get_tag_by_id(conn: aiosqlite.Connection, tag_id: int) -> TagRecord | None:
    cursor = await conn.execute("SELECT * FROM tags WHERE id = ?;", (int(tag_id),))
    row = await cursor.fetchone()
    return _row_to_tag(row) if row else None


async def get_tag_by_path(conn: aiosqlite.Connection, path: str) -> TagRecord | None:
    cursor = await conn.execute("SELECT * FROM tags WHERE path = ?;", (path,))
    row = await cursor.fetchone()
    return _row_to_tag(row) if row else None


async def list_tags(conn: aiosqlite.Connection) -> list[TagRecord]:
    """All rows ordered by path (binary collation, same as the UNIQUE index)."""
    cursor = await conn.execute("SELECT * FROM tags ORDER BY path ASC;")
    rows = await cursor.fetchall()
    return [_row_to_tag(r) for r in rows]


async def count_tags(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM tags;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def insert_tag(conn: aiosqlite.Connection, record: TagInput, *, ts: str) -> int:
    """Insert a new row. Returns the id SQLite assigned."""
    params = _params(record)
    params["path"] = record.path
    params["ts"] = ts
    cursor = await conn.execute(
        """
        INSERT INTO tags(
            path, title, artist, composer, album, genre, year,
            comment, description, duration, bitrate, num_chapters, ts
        ) VALUES (
            :path, :title, :artist, :composer, :album, :genre, :year,
            :comment, :description, :duration, :bitrate, :num_chapters, :ts
        )
        """,
        params,
    )
    return int(cursor.lastrowid)


async def update_tag(
    conn: aiosqlite.Connection, tag_id: int, record: TagInput, *, ts: str
) -> int:
    """Rewrite every metadata column of a row. Returns the affected row count."""
    params = _params(record)
    params["id"] = int(tag_id)
    params["ts"] = ts
    cursor = await conn.execute(
        """
        UPDATE tags SET
            title        = :title,
            artist       = :artist,
            composer     = :composer,
            album        = :album,
            genre        = :genre,
            year         = :year,
            comment      = :comment,
            description  = :description,
            duration     = :duration,
            bitrate      = :bitrate,
            num_chapters = :num_chapters,
            ts           = :ts
        WHERE id = :id
        """,
        params,
    )
    return cursor.rowcount


async def delete_all_tags(conn: aiosqlite.Connection) -> int:
    """Delete every row. Returns count of deleted rows."""
    cursor = await conn.execute("DELETE FROM tags;")
    return cursor.rowcount
