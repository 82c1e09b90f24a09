"""
Command surface: list, scan and clear against an open `TagDb`.

Each command writes its user-facing text to `out` (stdout by default).
Per-file scan errors go through logging, so they land on stderr.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import TextIO

from tagindex.core.db.models import TagRecord
from tagindex.core.extractor import MediaMetadata, MetadataExtractor
from tagindex.core.reconciler import Reconciler, ScanConfig, ScanResult
from tagindex.core.tag_db import TagDb

logger = logging.getLogger(__name__)

LIST_HEADER = "id|path|title|album|artist"


def _s(value: str | None) -> str:
    return value if value is not None else ""


def format_row(record: TagRecord) -> str:
    """One pipe-delimited List line; absent strings render empty."""
    return "|".join(
        (
            str(record.id),
            record.path,
            _s(record.title),
            _s(record.album),
            _s(record.artist),
        )
    )


def format_file_line(path: str, meta: MediaMetadata) -> str:
    return f"File {path} metadata: {meta.as_dict()}"


async def cmd_list(db: TagDb, *, out: TextIO | None = None) -> int:
    """Print every row ordered by path. Returns the number of rows printed."""
    out = sys.stdout if out is None else out
    records = await db.list_all()
    print(LIST_HEADER, file=out)
    for record in records:
        print(format_row(record), file=out)
    return len(records)


async def cmd_scan(
    db: TagDb,
    dirs: Sequence[str | os.PathLike[str]],
    *,
    extractor: MetadataExtractor | None = None,
    config: ScanConfig | None = None,
    out: TextIO | None = None,
) -> ScanResult:
    """Run the reconcile pipeline over `dirs`, printing one line per processed file."""
    out = sys.stdout if out is None else out

    def _on_file(path: str, meta: MediaMetadata) -> None:
        print(format_file_line(path, meta), file=out)

    reconciler = Reconciler(db, extractor, config=config, on_file=_on_file)
    return await reconciler.scan(dirs)


async def cmd_clear(db: TagDb, *, out: TextIO | None = None) -> int:
    """Delete every row. Returns the number removed."""
    out = sys.stdout if out is None else out
    n = await db.delete_all()
    print(f"Deleted {n} rows", file=out)
    return n
