"""
Tests for tagindex.core.reconciler.

These tests verify the scan-and-reconcile pipeline end to end against an
in-memory store, with a fake extractor standing in for mutagen:
- idempotence, uniqueness and update-in-place semantics
- per-file error isolation (extraction, encoding, traversal)
- non-audio exclusion and numeric coercion
- store errors abort the scan
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest
from conftest import FakeExtractor, make_wav, tag_wav

from tagindex.core import ExtractionError, StoreConsistencyError, StoreError
from tagindex.core.extractor import MediaMetadata
from tagindex.core.reconciler import (
    FileStatus,
    IssueKind,
    Reconciler,
    ScanConfig,
    ScanIssue,
    ScanResult,
    to_tag_input,
)
from tagindex.core.tag_db import TagDb


class TestToTagInput:
    def test_numeric_fields_default_to_zero(self) -> None:
        record = to_tag_input("/a.mp3", MediaMetadata(title="A"))
        assert record.duration == 0
        assert record.bitrate == 0
        assert record.num_chapters == 0

    def test_duration_truncated(self) -> None:
        record = to_tag_input("/a.mp3", MediaMetadata(duration=215.93, bitrate=128000))
        assert record.duration == 215
        assert record.bitrate == 128000

    def test_blank_strings_become_absent(self) -> None:
        record = to_tag_input("/a.mp3", MediaMetadata(title="  ", artist="X "))
        assert record.title is None
        assert record.artist == "X"


class TestScanResult:
    def test_add_merges(self) -> None:
        issue = ScanIssue(Path("/x"), IssueKind.TRAVERSAL, "boom")
        a = ScanResult(scanned_files=2, added=1, updated=1)
        b = ScanResult(scanned_files=1, skipped=1, issues=(issue,))
        total = a + b
        assert total.scanned_files == 3
        assert total.added == 1
        assert total.updated == 1
        assert total.skipped == 1
        assert total.errors == 1


class TestReconcileFile:
    """Single-file reconcile step."""

    async def test_insert_then_update_same_id(self, db: TagDb, tmp_path: Path) -> None:
        path = tmp_path / "a.mp3"
        path.write_bytes(b"x")
        extractor = FakeExtractor({"a.mp3": MediaMetadata(title="First")})
        reconciler = Reconciler(db, extractor)

        first = await reconciler.reconcile_file(path)
        assert first.status is FileStatus.ADDED

        extractor.results["a.mp3"] = MediaMetadata(title="Second", artist="Someone")
        second = await reconciler.reconcile_file(path)
        assert second.status is FileStatus.UPDATED
        assert second.tag_id == first.tag_id

        row = await db.get_by_path(str(path))
        assert row is not None
        assert row.title == "Second"
        assert row.artist == "Someone"
        assert await db.count() == 1

    async def test_extraction_error_is_skipped(
        self, db: TagDb, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "bad.mp3"
        path.write_bytes(b"x")
        extractor = FakeExtractor({"bad.mp3": ExtractionError("cannot parse")})

        with caplog.at_level(logging.WARNING, logger="tagindex.core.reconciler"):
            outcome = await Reconciler(db, extractor).reconcile_file(path)

        assert outcome.status is FileStatus.SKIPPED
        assert outcome.issue is not None
        assert outcome.issue.kind is IssueKind.EXTRACTION
        assert "cannot parse" in outcome.issue.message
        assert await db.count() == 0
        assert any(
            "bad.mp3" in r.getMessage() and "cannot parse" in r.getMessage()
            for r in caplog.records
        )

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX byte paths only")
    async def test_non_utf8_path_is_skipped(self, db: TagDb, tmp_path: Path) -> None:
        raw = os.fsencode(tmp_path) + b"/bad-\xff.mp3"
        path = Path(os.fsdecode(raw))
        extractor = FakeExtractor()

        outcome = await Reconciler(db, extractor).reconcile_file(path)

        assert outcome.status is FileStatus.SKIPPED
        assert outcome.issue is not None
        assert outcome.issue.kind is IssueKind.ENCODING
        assert extractor.calls == []
        assert await db.count() == 0

    async def test_on_file_callback(self, db: TagDb, tmp_path: Path) -> None:
        path = tmp_path / "a.mp3"
        path.write_bytes(b"x")
        seen: list[tuple[str, MediaMetadata]] = []

        reconciler = Reconciler(db, FakeExtractor(), on_file=lambda p, m: seen.append((p, m)))
        await reconciler.reconcile_file(path)

        assert seen == [(str(path), MediaMetadata(title="a"))]


class TestScan:
    """Whole-directory properties."""

    async def test_example_scenario(self, db: TagDb, tmp_path: Path) -> None:
        music = tmp_path / "music"
        music.mkdir()
        (music / "a.mp3").write_bytes(b"x")
        (music / "notes.txt").write_text("notes")
        extractor = FakeExtractor({"a.mp3": MediaMetadata(title="Song A")})

        result = await Reconciler(db, extractor).scan([music])

        rows = await db.list_all()
        assert len(rows) == 1
        assert rows[0].path == str(music / "a.mp3")
        assert rows[0].title == "Song A"
        assert result.errors == 0
        assert [os.path.basename(c) for c in extractor.calls] == ["a.mp3"]

    async def test_non_audio_excluded(self, db: TagDb, music_dir: Path) -> None:
        extractor = FakeExtractor()
        result = await Reconciler(db, extractor).scan([music_dir])

        paths = [r.path for r in await db.list_all()]
        assert paths == [str(music_dir / "a.mp3"), str(music_dir / "sub" / "b.flac")]
        assert result.scanned_files == 2
        assert result.added == 2

    async def test_idempotent_rescan(self, db: TagDb, music_dir: Path) -> None:
        reconciler = Reconciler(db, FakeExtractor())

        first = await reconciler.scan([music_dir])
        rows1 = await db.list_all()
        second = await reconciler.scan([music_dir])
        rows2 = await db.list_all()

        assert first.added == 2 and first.updated == 0
        assert second.added == 0 and second.updated == 2
        assert [r.id for r in rows1] == [r.id for r in rows2]
        assert [r.path for r in rows1] == [r.path for r in rows2]
        for before, after in zip(rows1, rows2):
            assert after.ts > before.ts

    async def test_paths_stay_unique_across_roots(self, db: TagDb, music_dir: Path) -> None:
        reconciler = Reconciler(db, FakeExtractor())
        await reconciler.scan([music_dir, music_dir / "sub", music_dir])

        paths = [r.path for r in await db.list_all()]
        assert len(paths) == len(set(paths)) == 2

    async def test_partial_failure_completeness(
        self, db: TagDb, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        root = tmp_path / "lib"
        root.mkdir()
        names = [f"{i:02d}.mp3" for i in range(6)]
        for n in names:
            (root / n).write_bytes(b"x")
        failing = {"01.mp3", "04.mp3"}
        extractor = FakeExtractor({n: ExtractionError(f"bad {n}") for n in failing})

        with caplog.at_level(logging.WARNING, logger="tagindex.core.reconciler"):
            result = await Reconciler(db, extractor).scan([root])

        assert await db.count() == len(names) - len(failing)
        assert result.skipped == len(failing)
        assert result.errors == len(failing)
        assert {i.path.name for i in result.issues} == failing
        warnings = [
            r
            for r in caplog.records
            if r.name == "tagindex.core.reconciler" and r.levelno == logging.WARNING
        ]
        assert len(warnings) == len(failing)
        # Every file was attempted, in name order.
        assert [os.path.basename(c) for c in extractor.calls] == names

    async def test_missing_root_does_not_stop_other_roots(
        self, db: TagDb, music_dir: Path, tmp_path: Path
    ) -> None:
        result = await Reconciler(db, FakeExtractor()).scan([tmp_path / "missing", music_dir])

        assert await db.count() == 2
        assert result.errors == 1
        assert result.issues[0].kind is IssueKind.TRAVERSAL

    async def test_numeric_coercion(self, db: TagDb, tmp_path: Path) -> None:
        (tmp_path / "n.mp3").write_bytes(b"x")
        extractor = FakeExtractor({"n.mp3": MediaMetadata(title="No numbers")})

        await Reconciler(db, extractor).scan([tmp_path])

        row = await db.get_by_path(str(tmp_path / "n.mp3"))
        assert row is not None
        assert (row.duration, row.bitrate, row.num_chapters) == (0, 0, 0)

    async def test_extra_extensions_from_config(self, db: TagDb, tmp_path: Path) -> None:
        (tmp_path / "x.dff").write_bytes(b"x")
        reconciler = Reconciler(
            db, FakeExtractor(), config=ScanConfig(extra_extensions=frozenset({".dff"}))
        )
        result = await reconciler.scan([tmp_path])
        assert result.added == 1

    async def test_real_files_with_mutagen(self, db: TagDb, tmp_path: Path) -> None:
        root = tmp_path / "wavs"
        root.mkdir()
        tag_wav(make_wav(root / "one.wav"), title="One", artist="A", album="Alb")
        make_wav(root / "two.wav")
        (root / "broken.wav").write_bytes(b"RIFF....not a wave file")

        result = await Reconciler(db).scan([root])

        rows = {Path(r.path).name: r for r in await db.list_all()}
        assert set(rows) == {"one.wav", "two.wav"}
        assert rows["one.wav"].title == "One"
        assert rows["one.wav"].duration == 1
        assert rows["two.wav"].title is None
        assert result.skipped == 1
        assert result.issues[0].kind is IssueKind.EXTRACTION


class TestStoreErrorsAreFatal:
    """Persistence failures propagate instead of being skipped."""

    async def test_closed_store_aborts_scan(self, music_dir: Path) -> None:
        db = TagDb(":memory:")
        with pytest.raises(StoreError):
            await Reconciler(db, FakeExtractor()).scan([music_dir])

    async def test_update_count_mismatch_aborts_scan(self, db: TagDb, music_dir: Path) -> None:
        class VanishingDb:
            """Reports an id that no longer exists, as if the row were deleted underneath."""

            def __init__(self, inner: TagDb) -> None:
                self._inner = inner

            async def find_id_by_path(self, path: str) -> int | None:
                return 999

            def __getattr__(self, name: str):
                return getattr(self._inner, name)

        extractor = FakeExtractor()
        with pytest.raises(StoreConsistencyError):
            await Reconciler(VanishingDb(db), extractor).scan([music_dir])  # type: ignore[arg-type]

        # Aborted at the first file; the second was never extracted.
        assert len(extractor.calls) == 1
