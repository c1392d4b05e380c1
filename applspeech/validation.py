"""
applspeech.validation - Input file and dependency checks.

Validates audio files before they reach a speech engine and checks for
external tools the analyzers need.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path

from applspeech.exceptions import (
    AudioFileNotFoundError,
    DependencyError,
    UnsupportedAudioFormatError,
)
from applspeech.formats import CORE_FORMATS, AudioFormat, classify


def check_audio_file(
    path: Path,
    formats: Iterable[AudioFormat] = CORE_FORMATS,
) -> AudioFormat:
    """Validate that an audio file has a supported extension and exists.

    The extension is checked first so an unsupported file is reported as
    such whether or not it exists.

    Args:
        path: Local audio file
        formats: Active format set

    Returns:
        The file's audio format

    Raises:
        UnsupportedAudioFormatError: If the extension is not supported
        AudioFileNotFoundError: If the file does not exist
    """
    formats = frozenset(formats)
    fmt = classify(str(path), formats)
    if fmt is None:
        raise UnsupportedAudioFormatError(str(path), formats)
    if not path.is_file():
        raise AudioFileNotFoundError(str(path))
    return fmt


def check_ffmpeg() -> str:
    """Check that FFmpeg is on PATH.

    Returns:
        Path to the ffmpeg executable

    Raises:
        DependencyError: If FFmpeg is not found
    """
    ffmpeg_path = shutil.which("ffmpeg")
    if not ffmpeg_path:
        raise DependencyError(
            "ffmpeg",
            "FFmpeg not found in PATH",
            "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)",
        )
    return ffmpeg_path
