"""
Shared fixtures and fakes for the tagindex test suite.
"""

from __future__ import annotations

import os
import threading
import wave
from pathlib import Path

import pytest
from mutagen.id3 import COMM, TALB, TCOM, TCON, TDRC, TIT2, TPE1
from mutagen.wave import WAVE

from tagindex.core.extractor import MediaMetadata
from tagindex.core.tag_db import TagDb


class FakeExtractor:
    """
    Stand-in for the mutagen extractor.

    Results are keyed by file name. Unknown names yield a snapshot whose title
    is the file stem; names mapped to an exception raise it.
    """

    def __init__(self, results: dict[str, MediaMetadata | Exception] | None = None) -> None:
        self.results = dict(results or {})
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def extract(self, path: str) -> MediaMetadata:
        with self._lock:
            self.calls.append(path)
        name = os.path.basename(path)
        result = self.results.get(name)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return MediaMetadata(title=Path(path).stem)
        return result


def make_wav(path: Path, *, seconds: int = 1, rate: int = 8000) -> Path:
    """Write a silent mono 16-bit PCM WAV file."""
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(b"\x00\x00" * rate * seconds)
    return path


def tag_wav(
    path: Path,
    *,
    title: str | None = None,
    artist: str | None = None,
    album: str | None = None,
    composer: str | None = None,
    genre: str | None = None,
    year: str | None = None,
    comment: str | None = None,
) -> Path:
    """Attach an ID3 chunk to a WAV file written by `make_wav`."""
    audio = WAVE(str(path))
    if audio.tags is None:
        audio.add_tags()
    frames = [
        (TIT2, title),
        (TPE1, artist),
        (TALB, album),
        (TCOM, composer),
        (TCON, genre),
        (TDRC, year),
    ]
    for frame_cls, value in frames:
        if value is not None:
            audio.tags.add(frame_cls(encoding=3, text=[value]))
    if comment is not None:
        audio.tags.add(COMM(encoding=3, lang="eng", desc="", text=[comment]))
    audio.save()
    return path


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
async def db() -> TagDb:
    """Create an in-memory tag store for testing."""
    db = TagDb(":memory:")
    await db.open()
    await db.ensure_schema()
    yield db
    await db.close()


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    """
    A small tree:

        music/
          a.mp3
          notes.txt
          sub/
            b.flac
            cover.jpg
    """
    root = tmp_path / "music"
    (root / "sub").mkdir(parents=True)
    (root / "a.mp3").write_bytes(b"not really mpeg")
    (root / "notes.txt").write_text("liner notes")
    (root / "sub" / "b.flac").write_bytes(b"not really flac")
    (root / "sub" / "cover.jpg").write_bytes(b"\xff\xd8\xff")
    return root
