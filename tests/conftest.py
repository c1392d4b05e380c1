"""
Test configuration, shared fixtures and protocol-conforming fakes.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from pathlib import Path

import pytest

from applspeech.platform.base import AuthorizationState, RecognitionResult

# --- Protocol-conforming fakes ---


class FakeRecognizer:
    """Legacy recognizer that replays scripted callbacks."""

    def __init__(
        self,
        results: Iterable[RecognitionResult] = (),
        error: BaseException | None = None,
        available: bool = True,
        on_device: bool = True,
    ) -> None:
        self.is_available = available
        self.supports_on_device_recognition = on_device
        self._results = list(results)
        self._error = error
        self.requests: list[tuple[Path, bool]] = []

    def recognize(self, path, *, on_device, handler) -> None:
        self.requests.append((path, on_device))
        for result in self._results:
            handler(result, None)
        if self._error is not None:
            handler(None, self._error)


class FakeSession:
    """Streaming session that emits scripted chunks, then optionally fails."""

    def __init__(self, chunks: Iterable[str] = (), error: Exception | None = None) -> None:
        self._chunks = list(chunks)
        self._error = error
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()

    async def run(self) -> None:
        try:
            for chunk in self._chunks:
                await self._queue.put(chunk)
            if self._error is not None:
                raise self._error
        finally:
            await self._queue.put(None)

    async def results(self) -> AsyncIterator[str]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk


class FakeInstallationRequest:
    def __init__(self, support: FakeTranscriberSupport, locale: str) -> None:
        self.support = support
        self.locale = locale

    async def download_and_install(self) -> None:
        self.support.install_calls.append(self.locale)
        if self.support.install_error is not None:
            raise self.support.install_error
        self.support.installed.append(self.locale)


class FakeTranscriberSupport:
    """Modern transcriber with an in-memory locale and model inventory."""

    def __init__(
        self,
        supported: Iterable[str] = ("en-US", "fr-FR"),
        installed: Iterable[str] = (),
        equivalents: dict[str, str] | None = None,
        chunks: Iterable[str] = (),
        session_error: Exception | None = None,
        install_error: Exception | None = None,
    ) -> None:
        self.supported = list(supported)
        self.installed = list(installed)
        self.equivalents = equivalents or {}
        self.chunks = list(chunks)
        self.session_error = session_error
        self.install_error = install_error
        self.install_calls: list[str] = []
        self.sessions: list[tuple[Path, str, bool]] = []

    async def equivalent_locale(self, locale: str) -> str | None:
        return self.equivalents.get(locale)

    async def supported_locales(self) -> list[str]:
        return list(self.supported)

    async def installed_locales(self) -> list[str]:
        return list(self.installed)

    async def installation_request(self, locale: str) -> FakeInstallationRequest | None:
        if locale in self.installed:
            return None
        return FakeInstallationRequest(self, locale)

    def create_session(self, path: Path, locale: str, *, finish_after_file: bool) -> FakeSession:
        self.sessions.append((path, locale, finish_after_file))
        return FakeSession(self.chunks, self.session_error)


class FakeSpeechPlatform:
    """SpeechPlatform with fixed permission answers."""

    def __init__(
        self,
        speech: AuthorizationState = AuthorizationState.AUTHORIZED,
        speech_request: AuthorizationState | None = None,
        microphone: AuthorizationState = AuthorizationState.NOT_DETERMINED,
        microphone_grant: bool = True,
        recognizer: FakeRecognizer | None = None,
        support: FakeTranscriberSupport | None = None,
    ) -> None:
        self.speech = speech
        self.speech_request = speech_request or speech
        self.microphone = microphone
        self.microphone_grant = microphone_grant
        self.recognizer = recognizer
        self.support = support
        self.speech_requests = 0
        self.microphone_requests = 0
        self.recognizer_locales: list[str] = []

    def speech_authorization(self) -> AuthorizationState:
        return self.speech

    async def request_speech_authorization(self) -> AuthorizationState:
        self.speech_requests += 1
        return self.speech_request

    def microphone_authorization(self) -> AuthorizationState:
        return self.microphone

    async def request_microphone_authorization(self) -> bool:
        self.microphone_requests += 1
        return self.microphone_grant

    def legacy_recognizer(self, locale: str) -> FakeRecognizer | None:
        self.recognizer_locales.append(locale)
        return self.recognizer

    def transcriber_support(self) -> FakeTranscriberSupport | None:
        return self.support


# --- Fixtures ---


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config and credentials out of tests."""
    monkeypatch.setenv("APPLSPEECH_CONFIG", str(tmp_path / "no-config.yaml"))
    for name in (
        "APPLSPEECH_LOCALE",
        "APPLSPEECH_ENGINE",
        "APPLSPEECH_OUTPUT_FORMAT",
        "APPLSPEECH_LEGACY_FORMATS",
        "APPLSPEECH_HTTP_TIMEOUT",
        "APPLSPEECH_BOT_TOKEN_ENV",
        "APPLSPEECH_WHISPER_MODEL",
        "APPLSPEECH_VERBOSE",
        "TELEGRAM_BOT_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    """A small file with a supported extension."""
    path = tmp_path / "clip.wav"
    path.write_bytes(b"RIFF\x24\x00\x00\x00WAVEfmt ")
    return path


@pytest.fixture
def legacy_platform() -> FakeSpeechPlatform:
    """Platform whose legacy recognizer returns one final result."""
    recognizer = FakeRecognizer(results=[RecognitionResult("hello world", is_final=True)])
    return FakeSpeechPlatform(recognizer=recognizer)


@pytest.fixture
def modern_platform() -> FakeSpeechPlatform:
    """Platform whose modern engine has en-US installed."""
    support = FakeTranscriberSupport(installed=["en-US"], chunks=["hello ", "from ", "modern"])
    recognizer = FakeRecognizer(results=[RecognitionResult("legacy text", is_final=True)])
    return FakeSpeechPlatform(recognizer=recognizer, support=support)
