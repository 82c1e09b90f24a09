"""
Scan-and-reconcile pipeline.

Walks one or more roots, keeps regular files whose name classifies as audio,
extracts their metadata and brings the tag store in line with it:

- path not in the store -> insert (new id)
- path already stored   -> rewrite all metadata + refresh ts (same id)

Failure policy:
- traversal, path-encoding and extraction errors are per-file: logged,
  recorded as `ScanIssue`, and the scan moves on.
- anything raised by the store propagates and aborts the whole scan.

Files are processed strictly one after another; the lookup-then-insert/update
sequence relies on being the only writer.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from tagindex.core import ExtractionError
from tagindex.core.classifier import AudioClassifier
from tagindex.core.db.models import TagInput, coerce_int, normalize_text
from tagindex.core.extractor import MediaMetadata, MetadataExtractor, MutagenExtractor
from tagindex.core.tag_db import TagDb
from tagindex.core.walker import walk

logger = logging.getLogger(__name__)

FileCallback = Callable[[str, MediaMetadata], None]


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """Knobs for walking and classifying. Defaults match a plain `scan DIR`."""

    follow_symlinks: bool = False
    extra_extensions: frozenset[str] = frozenset()


class IssueKind(str, Enum):
    TRAVERSAL = "traversal"
    ENCODING = "encoding"
    EXTRACTION = "extraction"


class FileStatus(Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ScanIssue:
    path: Path
    kind: IssueKind
    message: str


@dataclass(frozen=True, slots=True)
class FileOutcome:
    path: Path
    status: FileStatus
    tag_id: int | None = None
    metadata: MediaMetadata | None = None
    issue: ScanIssue | None = None


@dataclass(frozen=True, slots=True)
class ScanResult:
    scanned_files: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0
    issues: tuple[ScanIssue, ...] = field(default=())

    @property
    def errors(self) -> int:
        return len(self.issues)

    def with_outcome(self, outcome: FileOutcome) -> ScanResult:
        issues = self.issues + (outcome.issue,) if outcome.issue is not None else self.issues
        return replace(
            self,
            scanned_files=self.scanned_files + 1,
            added=self.added + (outcome.status is FileStatus.ADDED),
            updated=self.updated + (outcome.status is FileStatus.UPDATED),
            skipped=self.skipped + (outcome.status is FileStatus.SKIPPED),
            issues=issues,
        )

    def with_issue(self, issue: ScanIssue) -> ScanResult:
        return replace(self, issues=self.issues + (issue,))

    def __add__(self, other: ScanResult) -> ScanResult:
        return ScanResult(
            scanned_files=self.scanned_files + other.scanned_files,
            added=self.added + other.added,
            updated=self.updated + other.updated,
            skipped=self.skipped + other.skipped,
            issues=self.issues + other.issues,
        )


def to_tag_input(path: str, meta: MediaMetadata) -> TagInput:
    """Map an extractor snapshot onto a store record; absent numbers become 0."""
    return TagInput(
        path=path,
        title=normalize_text(meta.title),
        artist=normalize_text(meta.artist),
        composer=normalize_text(meta.composer),
        album=normalize_text(meta.album),
        genre=normalize_text(meta.genre),
        year=normalize_text(meta.year),
        comment=normalize_text(meta.comment),
        description=normalize_text(meta.description),
        duration=coerce_int(meta.duration),
        bitrate=coerce_int(meta.bitrate),
        num_chapters=coerce_int(meta.chapter_count),
    )


class Reconciler:
    """
    Drives candidate files through extraction and into the tag store.

    Dependencies:
    - `TagDb` (must be open, schema ensured)
    - a `MetadataExtractor` (mutagen-backed by default)
    """

    def __init__(
        self,
        db: TagDb,
        extractor: MetadataExtractor | None = None,
        *,
        config: ScanConfig | None = None,
        on_file: FileCallback | None = None,
    ) -> None:
        self._db = db
        self._extractor = extractor if extractor is not None else MutagenExtractor()
        self._config = config if config is not None else ScanConfig()
        self._classifier = AudioClassifier(self._config.extra_extensions)
        self._on_file = on_file

    @property
    def config(self) -> ScanConfig:
        return self._config

    def is_candidate(self, path: str | os.PathLike[str]) -> bool:
        return self._classifier.is_audio(path)

    async def reconcile_file(self, path: str | os.PathLike[str]) -> FileOutcome:
        """
        Extract one file and insert or update its row.

        Per-file problems come back as a SKIPPED outcome carrying an issue;
        store errors are raised.
        """
        fs_path = Path(path)
        string_path = os.fspath(fs_path)
        try:
            string_path.encode("utf-8")
        except UnicodeEncodeError as e:
            issue = ScanIssue(fs_path, IssueKind.ENCODING, f"Non UTF-8 path: {e.reason}")
            logger.warning("Error %s when extracting meta from %r", issue.message, string_path)
            return FileOutcome(fs_path, FileStatus.SKIPPED, issue=issue)

        try:
            meta = await asyncio.to_thread(self._extractor.extract, string_path)
        except ExtractionError as e:
            issue = ScanIssue(fs_path, IssueKind.EXTRACTION, str(e))
            logger.warning("Error %s when extracting meta from %s", e, string_path)
            return FileOutcome(fs_path, FileStatus.SKIPPED, issue=issue)

        if self._on_file is not None:
            self._on_file(string_path, meta)

        record = to_tag_input(string_path, meta)
        tag_id = await self._db.find_id_by_path(string_path)
        if tag_id is not None:
            await self._db.update(tag_id, record)
            status = FileStatus.UPDATED
        else:
            tag_id = await self._db.insert(record)
            status = FileStatus.ADDED
        await self._db.commit()

        logger.debug("%s %s (id=%d)", status.value.capitalize(), string_path, tag_id)
        return FileOutcome(fs_path, status, tag_id=tag_id, metadata=meta)

    async def scan_root(self, root: str | os.PathLike[str]) -> ScanResult:
        """Reconcile every audio file under `root`."""
        result = ScanResult()
        for entry in walk(root, follow_symlinks=self._config.follow_symlinks):
            if entry.error is not None:
                issue = ScanIssue(entry.path, IssueKind.TRAVERSAL, str(entry.error))
                logger.warning("Error: %s", entry.error)
                result = result.with_issue(issue)
                continue
            if not entry.is_file or not self.is_candidate(entry.path):
                continue
            result = result.with_outcome(await self.reconcile_file(entry.path))
        return result

    async def scan(self, roots: Iterable[str | os.PathLike[str]]) -> ScanResult:
        """Reconcile each root in the given order and merge the results."""
        total = ScanResult()
        for root in roots:
            logger.debug("Processing %s", root)
            total = total + await self.scan_root(root)
        logger.info(
            "Scan finished: %d files, %d added, %d updated, %d skipped, %d errors",
            total.scanned_files,
            total.added,
            total.updated,
            total.skipped,
            total.errors,
        )
        return total
