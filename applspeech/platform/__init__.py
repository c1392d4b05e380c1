"""
applspeech.platform - Speech platform adapters.

macOS uses the Speech framework through pyobjc; other hosts use the
portable platform. Both get the faster-whisper transcriber as the modern
engine when it is installed.
"""

from __future__ import annotations

import sys

from applspeech.platform.base import SpeechPlatform, TranscriberSupport
from applspeech.platform.darwin import DarwinSpeechPlatform
from applspeech.platform.portable import PortableSpeechPlatform
from applspeech.platform.whisper import (
    DEFAULT_MODEL,
    WhisperTranscriberSupport,
    whisper_available,
)


def detect_platform(whisper_model: str = DEFAULT_MODEL) -> SpeechPlatform:
    """Build the speech platform for the current host.

    Args:
        whisper_model: faster-whisper model used by the modern engine

    Raises:
        DependencyError: On macOS without the pyobjc Speech bindings
    """
    support: TranscriberSupport | None = None
    if whisper_available():
        support = WhisperTranscriberSupport(model=whisper_model)

    if sys.platform == "darwin":
        return DarwinSpeechPlatform(transcriber_support=support)
    return PortableSpeechPlatform(transcriber_support=support)
