"""
Tests for tagindex.core.classifier.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tagindex.core.classifier import AudioClassifier, is_audio


class TestIsAudio:
    """Name-based audio classification."""

    @pytest.mark.parametrize(
        "name",
        ["a.mp3", "b.flac", "c.ogg", "d.opus", "e.m4a", "f.m4b", "g.wav", "h.aiff", "i.wv"],
    )
    def test_audio_extensions(self, name: str) -> None:
        assert is_audio(name) is True

    @pytest.mark.parametrize(
        "name", ["notes.txt", "cover.jpg", "movie.mp4", "playlist.pdf", "archive.zip"]
    )
    def test_non_audio_extensions(self, name: str) -> None:
        assert is_audio(name) is False

    def test_unknown_extension_is_not_audio(self) -> None:
        assert is_audio("mystery.zzzq") is False

    def test_no_extension_is_not_audio(self) -> None:
        assert is_audio("README") is False

    def test_extension_case_is_ignored(self) -> None:
        assert is_audio("LOUD.MP3") is True

    def test_directory_part_is_ignored(self) -> None:
        """Only the file name matters, not dots in parent directories."""
        assert is_audio(Path("/music/album.flac/notes.txt")) is False
        assert is_audio(Path("/music/v1.0/track.mp3")) is True

    def test_compressed_audio_is_not_audio(self) -> None:
        assert is_audio("track.mp3.gz") is False


class TestAudioClassifier:
    """Configurable classifier instance."""

    def test_extra_extension_registered(self) -> None:
        classifier = AudioClassifier(extra_extensions=[".dff"])
        assert classifier.is_audio("x.dff") is True

    def test_extra_extension_without_dot(self) -> None:
        classifier = AudioClassifier(extra_extensions=["tak"])
        assert classifier.is_audio("x.tak") is True

    def test_extra_extension_does_not_leak(self) -> None:
        AudioClassifier(extra_extensions=[".qqqaudio"])
        assert is_audio("x.qqqaudio") is False

    def test_guess_type(self) -> None:
        classifier = AudioClassifier()
        assert classifier.guess_type("a.flac") == "audio/flac"
        assert classifier.guess_type("a.unknownext") is None
