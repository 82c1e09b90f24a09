from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterable

# Audio extensions that the platform MIME tables (/etc/mime.types, the Windows
# registry) frequently lack or map to something else.
EXTRA_AUDIO_TYPES: dict[str, str] = {
    ".aac": "audio/aac",
    ".aif": "audio/x-aiff",
    ".aiff": "audio/x-aiff",
    ".ape": "audio/x-ape",
    ".dsf": "audio/x-dsf",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
    ".m4b": "audio/mp4",
    ".mka": "audio/x-matroska",
    ".mpc": "audio/x-musepack",
    ".oga": "audio/ogg",
    ".ogg": "audio/ogg",
    ".opus": "audio/ogg",
    ".wma": "audio/x-ms-wma",
    ".wv": "audio/x-wavpack",
}


class AudioClassifier:
    """
    Decide from a file name alone whether it is a candidate audio file.

    Uses a private `mimetypes.MimeTypes` table so registering extra types does
    not leak into the process-wide `mimetypes` module state.
    """

    def __init__(self, extra_extensions: Iterable[str] = ()) -> None:
        self._types = mimetypes.MimeTypes()
        for ext, mime in EXTRA_AUDIO_TYPES.items():
            self._types.add_type(mime, ext)
        for ext in extra_extensions:
            ext = ext.lower()
            if not ext.startswith("."):
                ext = "." + ext
            self._types.add_type(f"audio/x-{ext[1:]}", ext)

    def guess_type(self, path: str | os.PathLike[str]) -> str | None:
        name = os.path.basename(os.fspath(path))
        mime, encoding = self._types.guess_type(name, strict=False)
        # "x.mp3.gz" is a gzip archive, not audio.
        if encoding is not None:
            return None
        return mime

    def is_audio(self, path: str | os.PathLike[str]) -> bool:
        mime = self.guess_type(path)
        if mime is None:
            return False
        return mime.split("/", 1)[0] == "audio"


_default = AudioClassifier()


def is_audio(path: str | os.PathLike[str]) -> bool:
    """True iff the content type guessed from `path`'s name is `audio/*`."""
    return _default.is_audio(path)
