"""
applspeech.transcribe.engine - Transcription engine selection.

Two engines share one interface: the legacy single-shot recognizer and
the modern streaming transcriber. ``auto`` picks the modern engine when
the environment reports its model installed for the locale, and the
legacy engine otherwise.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Collection
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from applspeech import environment
from applspeech.environment import EnvironmentStatus, is_model_installed, resolve_supported_locale
from applspeech.exceptions import (
    ApplSpeechError,
    LocaleUnsupportedError,
    ModelNotInstalledError,
    NoFinalResultError,
    SpeechNotAuthorizedError,
    SpeechNotAvailableError,
    TranscriptionFailedError,
)
from applspeech.formats import CORE_FORMATS, AudioFormat
from applspeech.platform.base import AuthorizationState, RecognitionResult, SpeechPlatform
from applspeech.validation import check_audio_file

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"


class EngineChoice(str, Enum):
    AUTO = "auto"
    LEGACY = "legacy"
    MODERN = "modern"


@dataclass(frozen=True)
class Transcript:
    text: str
    locale: str
    engine: EngineChoice


class FileTranscriber(Protocol):
    engine: EngineChoice

    async def transcribe_file(self, path: Path) -> str: ...


def select_engine(requested: EngineChoice, snapshot: EnvironmentStatus) -> EngineChoice:
    """Resolve ``auto`` against an environment snapshot.

    Explicit choices are returned unchanged; their preconditions are checked
    by the engine itself.
    """
    if requested is not EngineChoice.AUTO:
        return requested
    modern = snapshot.engines.modern
    if modern.available and modern.model_installed:
        return EngineChoice.MODERN
    return EngineChoice.LEGACY


class LegacyTranscriber:
    """Single request over the whole file; waits for the first final result."""

    engine = EngineChoice.LEGACY

    def __init__(
        self,
        platform: SpeechPlatform,
        locale: str = DEFAULT_LOCALE,
        formats: Collection[AudioFormat] = CORE_FORMATS,
    ) -> None:
        self.platform = platform
        self.locale = locale
        self.formats = formats

    async def transcribe_file(self, path: Path) -> str:
        check_audio_file(path, self.formats)

        recognizer = self.platform.legacy_recognizer(self.locale)
        if recognizer is None or not recognizer.is_available:
            raise SpeechNotAvailableError()

        state = await self.platform.request_speech_authorization()
        if state != AuthorizationState.AUTHORIZED:
            raise SpeechNotAuthorizedError()

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[str] = loop.create_future()

        def handler(result: RecognitionResult | None, error: BaseException | None) -> None:
            loop.call_soon_threadsafe(_settle, outcome, result, error)

        on_device = recognizer.supports_on_device_recognition
        logger.debug("Legacy recognition of %s (on_device=%s)", path, on_device)
        recognizer.recognize(path, on_device=on_device, handler=handler)
        return await outcome


def _settle(
    outcome: asyncio.Future[str],
    result: RecognitionResult | None,
    error: BaseException | None,
) -> None:
    if outcome.done():
        return
    if error is not None:
        outcome.set_exception(TranscriptionFailedError(str(error)))
        return
    if result is None or not result.is_final:
        return
    outcome.set_result(result.text)


class ModernTranscriber:
    """Streaming session over the file, folded into one string."""

    engine = EngineChoice.MODERN

    def __init__(
        self,
        platform: SpeechPlatform,
        locale: str = DEFAULT_LOCALE,
        formats: Collection[AudioFormat] = CORE_FORMATS,
    ) -> None:
        self.platform = platform
        self.locale = locale
        self.formats = formats

    async def transcribe_file(self, path: Path) -> str:
        check_audio_file(path, self.formats)

        state = await self.platform.request_speech_authorization()
        if state != AuthorizationState.AUTHORIZED:
            raise SpeechNotAuthorizedError()

        support = self.platform.transcriber_support()
        if support is None:
            raise SpeechNotAvailableError("modern speech engine is not available on this system")

        supported = await resolve_supported_locale(support, self.locale)
        if supported is None:
            raise LocaleUnsupportedError(self.locale)

        if not await is_model_installed(support, supported):
            raise ModelNotInstalledError(supported)

        logger.debug("Modern transcription of %s (locale=%s)", path, supported)
        session = support.create_session(path, supported, finish_after_file=True)
        analysis = asyncio.create_task(session.run())
        try:
            text = await _collect(session.results())
        except BaseException:
            analysis.cancel()
            raise
        await analysis

        text = text.strip()
        if not text:
            raise NoFinalResultError()
        return text


async def _collect(results: AsyncIterator[str]) -> str:
    parts = []
    async for chunk in results:
        parts.append(chunk)
    return "".join(parts)


def create_transcriber(
    engine: EngineChoice,
    platform: SpeechPlatform,
    locale: str = DEFAULT_LOCALE,
    formats: Collection[AudioFormat] = CORE_FORMATS,
) -> FileTranscriber:
    if engine is EngineChoice.MODERN:
        return ModernTranscriber(platform, locale, formats)
    if engine is EngineChoice.LEGACY:
        return LegacyTranscriber(platform, locale, formats)
    raise ValueError(f"Engine must be resolved before use: {engine.value}")


async def transcribe_file(
    path: Path,
    platform: SpeechPlatform,
    locale: str = DEFAULT_LOCALE,
    engine: EngineChoice = EngineChoice.AUTO,
    formats: Collection[AudioFormat] = CORE_FORMATS,
) -> Transcript:
    """Transcribe a local audio file.

    Args:
        path: Local audio file
        platform: Speech platform
        locale: BCP 47 locale identifier
        engine: auto, legacy or modern
        formats: Active format set

    Returns:
        Transcript with the text and the engine that produced it

    Raises:
        InputError: If the file is missing or unsupported
        TranscriptionError: If the engine fails
    """
    chosen = engine
    if engine is EngineChoice.AUTO:
        snapshot = await environment.status(locale, platform)
        chosen = select_engine(engine, snapshot)
    logger.info("Using %s engine for %s", chosen.value, locale)

    transcriber = create_transcriber(chosen, platform, locale, formats)
    try:
        text = await transcriber.transcribe_file(path)
    except ApplSpeechError:
        raise
    except Exception as e:
        raise TranscriptionFailedError(str(e)) from e

    return Transcript(text=text, locale=locale, engine=chosen)
