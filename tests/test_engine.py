"""Tests for applspeech.transcribe.engine module."""

from __future__ import annotations

from pathlib import Path

import pytest

from applspeech.environment import status
from applspeech.exceptions import (
    AudioFileNotFoundError,
    LocaleUnsupportedError,
    ModelNotInstalledError,
    NoFinalResultError,
    SpeechNotAuthorizedError,
    SpeechNotAvailableError,
    TranscriptionFailedError,
    UnsupportedAudioFormatError,
)
from applspeech.platform.base import AuthorizationState, RecognitionResult
from applspeech.transcribe.engine import (
    EngineChoice,
    LegacyTranscriber,
    ModernTranscriber,
    create_transcriber,
    select_engine,
    transcribe_file,
)
from tests.conftest import FakeRecognizer, FakeSpeechPlatform, FakeTranscriberSupport


class TestSelectEngine:
    @pytest.mark.asyncio
    async def test_auto_prefers_installed_modern(self, modern_platform: FakeSpeechPlatform) -> None:
        snapshot = await status("en-US", modern_platform)
        assert select_engine(EngineChoice.AUTO, snapshot) is EngineChoice.MODERN

    @pytest.mark.asyncio
    async def test_auto_falls_back_without_model(self) -> None:
        platform = FakeSpeechPlatform(
            recognizer=FakeRecognizer(), support=FakeTranscriberSupport(installed=[])
        )
        snapshot = await status("en-US", platform)
        assert select_engine(EngineChoice.AUTO, snapshot) is EngineChoice.LEGACY

    @pytest.mark.asyncio
    async def test_auto_falls_back_without_modern_engine(
        self, legacy_platform: FakeSpeechPlatform
    ) -> None:
        snapshot = await status("en-US", legacy_platform)
        assert select_engine(EngineChoice.AUTO, snapshot) is EngineChoice.LEGACY

    @pytest.mark.asyncio
    async def test_explicit_choice_bypasses_check(
        self, legacy_platform: FakeSpeechPlatform
    ) -> None:
        snapshot = await status("en-US", legacy_platform)
        assert select_engine(EngineChoice.MODERN, snapshot) is EngineChoice.MODERN

    def test_auto_cannot_be_instantiated(self, legacy_platform: FakeSpeechPlatform) -> None:
        with pytest.raises(ValueError):
            create_transcriber(EngineChoice.AUTO, legacy_platform)


class TestLegacyTranscriber:
    @pytest.mark.asyncio
    async def test_final_result(
        self, legacy_platform: FakeSpeechPlatform, audio_file: Path
    ) -> None:
        text = await LegacyTranscriber(legacy_platform).transcribe_file(audio_file)
        assert text == "hello world"
        assert legacy_platform.recognizer.requests == [(audio_file, True)]

    @pytest.mark.asyncio
    async def test_partial_results_are_skipped(self, audio_file: Path) -> None:
        recognizer = FakeRecognizer(
            results=[
                RecognitionResult("hel", is_final=False),
                RecognitionResult("hello there", is_final=True),
                RecognitionResult("ignored", is_final=True),
            ]
        )
        platform = FakeSpeechPlatform(recognizer=recognizer)
        assert await LegacyTranscriber(platform).transcribe_file(audio_file) == "hello there"

    @pytest.mark.asyncio
    async def test_server_recognition_when_on_device_unsupported(self, audio_file: Path) -> None:
        recognizer = FakeRecognizer(
            results=[RecognitionResult("ok", is_final=True)], on_device=False
        )
        await LegacyTranscriber(FakeSpeechPlatform(recognizer=recognizer)).transcribe_file(
            audio_file
        )
        assert recognizer.requests == [(audio_file, False)]

    @pytest.mark.asyncio
    async def test_error_callback(self, audio_file: Path) -> None:
        recognizer = FakeRecognizer(
            results=[RecognitionResult("partial", is_final=False)],
            error=RuntimeError("No speech detected"),
        )
        platform = FakeSpeechPlatform(recognizer=recognizer)
        with pytest.raises(TranscriptionFailedError) as exc_info:
            await LegacyTranscriber(platform).transcribe_file(audio_file)
        assert exc_info.value.detail == "No speech detected"

    @pytest.mark.asyncio
    async def test_no_recognizer(self, audio_file: Path) -> None:
        with pytest.raises(SpeechNotAvailableError):
            await LegacyTranscriber(FakeSpeechPlatform()).transcribe_file(audio_file)

    @pytest.mark.asyncio
    async def test_recognizer_unavailable(self, audio_file: Path) -> None:
        platform = FakeSpeechPlatform(recognizer=FakeRecognizer(available=False))
        with pytest.raises(SpeechNotAvailableError):
            await LegacyTranscriber(platform).transcribe_file(audio_file)
        assert platform.speech_requests == 0

    @pytest.mark.asyncio
    async def test_not_authorized(self, audio_file: Path) -> None:
        platform = FakeSpeechPlatform(
            speech_request=AuthorizationState.DENIED, recognizer=FakeRecognizer()
        )
        with pytest.raises(SpeechNotAuthorizedError):
            await LegacyTranscriber(platform).transcribe_file(audio_file)
        assert platform.recognizer.requests == []

    @pytest.mark.asyncio
    async def test_missing_file(self, legacy_platform: FakeSpeechPlatform, tmp_path: Path) -> None:
        with pytest.raises(AudioFileNotFoundError):
            await LegacyTranscriber(legacy_platform).transcribe_file(tmp_path / "nope.wav")
        assert legacy_platform.speech_requests == 0

    @pytest.mark.asyncio
    async def test_unsupported_format(self, legacy_platform: FakeSpeechPlatform) -> None:
        with pytest.raises(UnsupportedAudioFormatError) as exc_info:
            await LegacyTranscriber(legacy_platform).transcribe_file(Path("a.ogg"))
        assert "supported: flac, m4a, mp3, wav" in exc_info.value.message


class TestModernTranscriber:
    @pytest.mark.asyncio
    async def test_folds_results(
        self, modern_platform: FakeSpeechPlatform, audio_file: Path
    ) -> None:
        text = await ModernTranscriber(modern_platform).transcribe_file(audio_file)
        assert text == "hello from modern"
        assert modern_platform.support.sessions == [(audio_file, "en-US", True)]

    @pytest.mark.asyncio
    async def test_uses_equivalent_locale(self, audio_file: Path) -> None:
        support = FakeTranscriberSupport(
            installed=["en-US"], equivalents={"en-AU": "en-US"}, chunks=["g'day"]
        )
        platform = FakeSpeechPlatform(support=support)
        assert await ModernTranscriber(platform, "en-AU").transcribe_file(audio_file) == "g'day"
        assert support.sessions[0][1] == "en-US"

    @pytest.mark.asyncio
    async def test_whitespace_only_is_no_result(self, audio_file: Path) -> None:
        support = FakeTranscriberSupport(installed=["en-US"], chunks=[" ", "\n"])
        with pytest.raises(NoFinalResultError):
            await ModernTranscriber(FakeSpeechPlatform(support=support)).transcribe_file(audio_file)

    @pytest.mark.asyncio
    async def test_no_modern_engine(
        self, legacy_platform: FakeSpeechPlatform, audio_file: Path
    ) -> None:
        with pytest.raises(SpeechNotAvailableError):
            await ModernTranscriber(legacy_platform).transcribe_file(audio_file)

    @pytest.mark.asyncio
    async def test_not_authorized(self, audio_file: Path) -> None:
        platform = FakeSpeechPlatform(
            speech_request=AuthorizationState.RESTRICTED,
            support=FakeTranscriberSupport(installed=["en-US"]),
        )
        with pytest.raises(SpeechNotAuthorizedError):
            await ModernTranscriber(platform).transcribe_file(audio_file)

    @pytest.mark.asyncio
    async def test_locale_unsupported(self, audio_file: Path) -> None:
        platform = FakeSpeechPlatform(support=FakeTranscriberSupport(supported=["en-US"]))
        with pytest.raises(LocaleUnsupportedError):
            await ModernTranscriber(platform, "ja-JP").transcribe_file(audio_file)

    @pytest.mark.asyncio
    async def test_model_not_installed(self, audio_file: Path) -> None:
        platform = FakeSpeechPlatform(support=FakeTranscriberSupport(installed=[]))
        with pytest.raises(ModelNotInstalledError) as exc_info:
            await ModernTranscriber(platform).transcribe_file(audio_file)
        assert exc_info.value.locale == "en-US"

    @pytest.mark.asyncio
    async def test_session_failure_propagates(self, audio_file: Path) -> None:
        support = FakeTranscriberSupport(
            installed=["en-US"], chunks=["partial"], session_error=RuntimeError("decoder died")
        )
        with pytest.raises(RuntimeError, match="decoder died"):
            await ModernTranscriber(FakeSpeechPlatform(support=support)).transcribe_file(audio_file)


class TestTranscribeFile:
    @pytest.mark.asyncio
    async def test_auto_uses_modern(
        self, modern_platform: FakeSpeechPlatform, audio_file: Path
    ) -> None:
        transcript = await transcribe_file(audio_file, modern_platform)
        assert transcript.engine is EngineChoice.MODERN
        assert transcript.text == "hello from modern"
        assert transcript.locale == "en-US"

    @pytest.mark.asyncio
    async def test_auto_uses_legacy(
        self, legacy_platform: FakeSpeechPlatform, audio_file: Path
    ) -> None:
        transcript = await transcribe_file(audio_file, legacy_platform)
        assert transcript.engine is EngineChoice.LEGACY
        assert transcript.text == "hello world"

    @pytest.mark.asyncio
    async def test_explicit_legacy(
        self, modern_platform: FakeSpeechPlatform, audio_file: Path
    ) -> None:
        transcript = await transcribe_file(
            audio_file, modern_platform, engine=EngineChoice.LEGACY
        )
        assert transcript.text == "legacy text"

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_wrapped(self, audio_file: Path) -> None:
        support = FakeTranscriberSupport(
            installed=["en-US"], session_error=RuntimeError("decoder died")
        )
        platform = FakeSpeechPlatform(support=support)
        with pytest.raises(TranscriptionFailedError) as exc_info:
            await transcribe_file(audio_file, platform, engine=EngineChoice.MODERN)
        assert exc_info.value.detail == "decoder died"

    @pytest.mark.asyncio
    async def test_domain_errors_pass_through(
        self, legacy_platform: FakeSpeechPlatform, tmp_path: Path
    ) -> None:
        with pytest.raises(AudioFileNotFoundError):
            await transcribe_file(tmp_path / "missing.mp3", legacy_platform)
