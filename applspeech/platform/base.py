"""
applspeech.platform.base - Speech platform collaborator interface.

The platform owns permission state, the legacy single-shot recognizer and,
where the build supports it, the modern streaming transcriber with its
per-locale model inventory. Everything here is read through these
protocols so the orchestration code never touches framework types.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol


class AuthorizationState(str, Enum):
    """Permission state for a platform resource. Opaque, unordered."""

    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"
    NOT_DETERMINED = "notDetermined"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RecognitionResult:
    """One callback payload from the legacy recognizer."""

    text: str
    is_final: bool


RecognitionHandler = Callable[["RecognitionResult | None", "BaseException | None"], None]


class LegacyRecognizer(Protocol):
    """Locale-bound single-shot recognizer."""

    @property
    def is_available(self) -> bool: ...

    @property
    def supports_on_device_recognition(self) -> bool: ...

    def recognize(self, path: Path, *, on_device: bool, handler: RecognitionHandler) -> None:
        """Start one recognition request over the whole file.

        ``handler`` may be called from any thread, zero or more times with
        non-final results, then once with a final result or an error.
        """
        ...


class TranscriptionSession(Protocol):
    """Streaming analysis of one audio file."""

    async def run(self) -> None:
        """Feed the file through the analyzer; ends the result stream when done."""
        ...

    def results(self) -> AsyncIterator[str]:
        """Incremental text results, exhausted once ``run`` finishes."""
        ...


class InstallationRequest(Protocol):
    async def download_and_install(self) -> None: ...


class TranscriberSupport(Protocol):
    """Modern streaming transcriber and its locale/model inventory."""

    async def equivalent_locale(self, locale: str) -> str | None:
        """Engine's own best match for a locale, if any."""
        ...

    async def supported_locales(self) -> list[str]: ...

    async def installed_locales(self) -> list[str]: ...

    async def installation_request(self, locale: str) -> InstallationRequest | None:
        """Request that installs the model for ``locale``; None if nothing to install."""
        ...

    def create_session(
        self, path: Path, locale: str, *, finish_after_file: bool
    ) -> TranscriptionSession: ...


class SpeechPlatform(Protocol):
    """Permission state and speech engines of the host."""

    def speech_authorization(self) -> AuthorizationState: ...

    async def request_speech_authorization(self) -> AuthorizationState: ...

    def microphone_authorization(self) -> AuthorizationState: ...

    async def request_microphone_authorization(self) -> bool: ...

    def legacy_recognizer(self, locale: str) -> LegacyRecognizer | None:
        """Recognizer for ``locale``, or None if the locale has none."""
        ...

    def transcriber_support(self) -> TranscriberSupport | None:
        """Modern transcriber, or None if this build does not provide one."""
        ...
