from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from mutagen import File as mutagen_file
from mutagen.id3 import ID3

from tagindex.core import ExtractionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MediaMetadata:
    """
    Metadata snapshot for one file.

    Every field may be absent (`None`). Text stays text (including `year`,
    which is stored as the tag's own spelling, e.g. "1999" or "1999-03-01").
    """

    title: str | None = None
    artist: str | None = None
    composer: str | None = None
    album: str | None = None
    genre: str | None = None
    year: str | None = None
    comment: str | None = None
    description: str | None = None
    duration: float | None = None
    bitrate: int | None = None
    chapter_count: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Present fields only, in declaration order (used for scan diagnostics)."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class MetadataExtractor(Protocol):
    """Anything that can turn a UTF-8 path into a `MediaMetadata` or raise `ExtractionError`."""

    def extract(self, path: str) -> MediaMetadata: ...


def _clean_str(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s if s else None


def _first_text(value: Any) -> str | None:
    """
    Mutagen returns different shapes depending on container/tag type:
    - ID3 frames
    - lists of strings
    - plain strings
    - objects with `.text`
    We normalize to a single string (first item if multiple).
    """
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return _first_text(value[0])

    # Mutagen ID3 frames often have `.text` list
    text = getattr(value, "text", None)
    if text is not None:
        return _first_text(text)

    if isinstance(value, bytes):
        return _clean_str(value.decode("utf-8", errors="replace"))

    try:
        s = str(value)
    except Exception:
        return None

    return _clean_str(s)


def _fold_keys(tags: Any) -> dict[str, Any] | None:
    """
    Index a mutagen tag container by casefolded key.

    Key spelling differs per format: ID3 "TIT2", Vorbis "title",
    APEv2 "Title", ASF "WM/AlbumTitle". The first spelling seen wins.
    """
    if tags is None:
        return None
    folded: dict[str, Any] = {}
    try:
        for k in list(tags.keys()):
            if isinstance(k, str):
                folded.setdefault(k.casefold(), tags[k])
    except (AttributeError, KeyError, TypeError):
        # Some tag containers are not dict-like
        return None
    return folded


def _tags_get(tags: dict[str, Any] | None, keys: Iterable[str]) -> Any:
    """Look up the first present key in a `_fold_keys` mapping."""
    if not tags:
        return None
    for k in keys:
        k = k.casefold()
        if k in tags:
            return tags[k]
    return None


def _tags_get_prefixed(tags: dict[str, Any] | None, prefix: str) -> Any:
    """
    ID3 frames that carry a description/language are keyed like
    "COMM::eng" or "TXXX:DESCRIPTION"; match on the key prefix.
    """
    if not tags:
        return None
    prefix = prefix.casefold()
    for k in sorted(tags):
        if k.casefold().startswith(prefix):
            return tags[k]
    return None


def _count_chapters(audio: Any, tags: dict[str, Any] | None) -> int | None:
    """
    Chapter markers live in different places per container:
    - MP4/M4B: `audio.chapters` (Nero/QuickTime chapter list)
    - ID3: CHAP frames
    - Vorbis comments: CHAPTER001, CHAPTER002, ... (plus CHAPTER001NAME etc.)
    """
    chapters = getattr(audio, "chapters", None)
    if chapters is not None:
        try:
            return len(chapters)
        except TypeError:
            pass

    id3 = audio.tags if isinstance(getattr(audio, "tags", None), ID3) else None
    if id3 is not None:
        return len(id3.getall("CHAP"))

    if tags:
        markers = {
            k.upper()
            for k in tags
            if isinstance(k, str) and k.upper().startswith("CHAPTER") and k[7:].isdigit()
        }
        if markers:
            return len(markers)

    return None


def _extract_metadata(path: str) -> MediaMetadata:
    """
    Extract metadata using mutagen.

    This function is synchronous; the reconciler runs it in a worker thread.
    """
    audio = mutagen_file(path)
    if audio is None:
        raise ValueError("unsupported or unreadable audio file")

    tags = _fold_keys(getattr(audio, "tags", None))

    duration: float | None = None
    bitrate: int | None = None
    info = getattr(audio, "info", None)
    if info is not None:
        length = getattr(info, "length", None)
        if isinstance(length, (int, float)) and length > 0:
            duration = float(length)

        br = getattr(info, "bitrate", None)
        if isinstance(br, int) and br > 0:
            bitrate = br

    # Keys: ID3=TIT2, Vorbis/APEv2/ASF=title, MP4=©nam
    title = _first_text(_tags_get(tags, ("TIT2", "title", "©nam")))
    # Keys: ID3=TPE1, Vorbis/APEv2=artist, ASF=Author, MP4=©ART
    artist = _first_text(_tags_get(tags, ("TPE1", "artist", "Author", "©ART")))
    # Keys: ID3=TCOM, Vorbis/APEv2=composer, ASF=WM/Composer, MP4=©wrt
    composer = _first_text(_tags_get(tags, ("TCOM", "composer", "WM/Composer", "©wrt")))
    # Keys: ID3=TALB, Vorbis/APEv2=album, ASF=WM/AlbumTitle, MP4=©alb
    album = _first_text(_tags_get(tags, ("TALB", "album", "WM/AlbumTitle", "©alb")))
    # Keys: ID3=TCON, Vorbis/APEv2=genre, ASF=WM/Genre, MP4=©gen
    genre = _first_text(_tags_get(tags, ("TCON", "genre", "WM/Genre", "©gen")))
    # Keys: ID3=TDRC/TYER, Vorbis=date, APEv2=year, ASF=WM/Year, MP4=©day
    year = _first_text(_tags_get(tags, ("TDRC", "TYER", "date", "year", "WM/Year", "©day")))
    # Keys: ID3=COMM:<desc>:<lang>, Vorbis/APEv2=comment, MP4=©cmt
    comment = _first_text(_tags_get(tags, ("comment", "©cmt"))) or _first_text(
        _tags_get_prefixed(tags, "COMM")
    )
    # Keys: ID3=TXXX:DESCRIPTION, Vorbis/ASF=description, MP4=desc
    description = _first_text(
        _tags_get(tags, ("description", "desc", "TXXX:DESCRIPTION"))
    )


    return MediaMetadata(
        title=title,
        artist=artist,
        composer=composer,
        album=album,
        genre=genre,
        year=year,
        comment=comment,
        description=description,
        duration=duration,
        bitrate=bitrate,
        chapter_count=_count_chapters(audio, tags),
    )


class MutagenExtractor:
    """`MetadataExtractor` backed by mutagen."""

    def extract(self, path: str) -> MediaMetadata:
        try:
            return _extract_metadata(path)
        except Exception as e:  # noqa: BLE001 - any decode failure is a per-file failure
            raise ExtractionError(f"{type(e).__name__}: {e}") from e
