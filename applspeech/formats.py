"""
applspeech.formats - Supported audio container formats.

Maps a file extension (or, for stdin, the first few bytes of the payload)
to one of the audio formats the speech engines accept.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from pathlib import PurePosixPath
from urllib.parse import urlsplit


class AudioFormat(str, Enum):
    """Audio container format, keyed by lowercase file extension."""

    FLAC = "flac"
    WAV = "wav"
    M4A = "m4a"
    MP3 = "mp3"
    OGG = "ogg"
    OGA = "oga"


CORE_FORMATS: frozenset[AudioFormat] = frozenset(
    {AudioFormat.FLAC, AudioFormat.WAV, AudioFormat.M4A, AudioFormat.MP3}
)
LEGACY_FORMATS: frozenset[AudioFormat] = CORE_FORMATS | {AudioFormat.OGG, AudioFormat.OGA}

URL_SCHEMES = {"file", "http", "https", "tg", "telegram"}


def supported_formats(legacy: bool = False) -> frozenset[AudioFormat]:
    """Return the active format set. Legacy builds also accept Ogg containers."""
    return LEGACY_FORMATS if legacy else CORE_FORMATS


def format_list(formats: Iterable[AudioFormat]) -> str:
    """Render formats as sorted, comma-separated extensions."""
    return ", ".join(sorted(fmt.value for fmt in formats))


def extension_of(path_or_url: str) -> str:
    """Lowercase extension without the dot; query strings of URLs are ignored."""
    path = path_or_url
    parts = urlsplit(path_or_url)
    if parts.scheme.lower() in URL_SCHEMES:
        path = parts.path
    return PurePosixPath(path).suffix.lower().lstrip(".")


def classify(
    path_or_url: str,
    supported: Iterable[AudioFormat] = CORE_FORMATS,
) -> AudioFormat | None:
    """Classify a path or URL by its extension.

    Args:
        path_or_url: Local path or URL
        supported: Active format set

    Returns:
        The matching format, or None if the extension is not supported
    """
    try:
        fmt = AudioFormat(extension_of(path_or_url))
    except ValueError:
        return None
    return fmt if fmt in supported else None


def sniff(data: bytes) -> AudioFormat:
    """Guess the container of a stdin payload from its magic bytes.

    Unrecognized data is tagged m4a; the engine rejects malformed
    containers later.
    """
    if data[:4] == b"RIFF":
        return AudioFormat.WAV
    if data[:4] == b"fLaC":
        return AudioFormat.FLAC
    if data[:1] == b"\xff" or data[:3] == b"ID3":
        return AudioFormat.MP3
    return AudioFormat.M4A
