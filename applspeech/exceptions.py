"""
applspeech.exceptions - Custom exception classes.

All applspeech exceptions inherit from ApplSpeechError and carry a stable
``code`` used in the JSON error envelope.
"""

from __future__ import annotations

from collections.abc import Iterable

from applspeech.formats import AudioFormat, format_list


class ApplSpeechError(Exception):
    """Base exception for all applspeech errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(ApplSpeechError):
    """Configuration loading or validation error."""

    code = "config_error"


class DependencyError(ApplSpeechError):
    """Required dependency missing or misconfigured."""

    code = "dependency_missing"

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.install_hint = install_hint
        text = f"{dependency}: {message}"
        if install_hint:
            text = f"{text} ({install_hint})"
        super().__init__(text)


# Input resolution


class InputError(ApplSpeechError):
    """Audio input could not be resolved to a readable local file."""

    code = "input_error"


class MissingSourceError(InputError):
    code = "missing_file"

    def __init__(self) -> None:
        super().__init__("missing audio file path")


class AudioFileNotFoundError(InputError):
    code = "file_not_found"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"file not found: {path}")


class UnsupportedAudioFormatError(InputError):
    """Extension is not in the active supported-format set."""

    code = "unsupported_audio_format"

    def __init__(self, path: str, supported: Iterable[AudioFormat]) -> None:
        self.path = path
        self.supported = frozenset(supported)
        exts = format_list(self.supported)
        super().__init__(f"unsupported audio format: {path} (supported: {exts})")


class StdinEmptyError(InputError):
    code = "stdin_empty"

    def __init__(self) -> None:
        super().__init__("no audio data received on stdin")


class InvalidFileIDError(InputError):
    code = "invalid_file_id"

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"no Telegram file id in: {source}")


class MissingBotCredentialError(InputError):
    code = "missing_bot_token"

    def __init__(self, variable: str = "TELEGRAM_BOT_TOKEN") -> None:
        self.variable = variable
        super().__init__(f"Telegram bot token is not set ({variable})")


class RemoteRequestFailedError(InputError):
    """Remote server answered with a non-2xx status."""

    code = "remote_request_failed"

    def __init__(self, source: str, status_code: int) -> None:
        self.source = source
        self.status_code = status_code
        super().__init__(f"remote request failed: {source} (HTTP {status_code})")


class RemoteNetworkError(InputError):
    """Transport-level failure before any HTTP response arrived."""

    code = "remote_network_error"

    def __init__(self, source: str, error_code: str) -> None:
        self.source = source
        self.error_code = error_code
        super().__init__(f"network error while fetching {source} ({error_code})")


class RemoteInvalidResponseError(InputError):
    code = "remote_invalid_response"

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"invalid response while fetching {source}")


class RemotePayloadError(InputError):
    """Telegram Bot API answered with an unusable payload."""

    code = "remote_invalid_payload"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Telegram Bot API returned an invalid payload for {operation}")


# Speech engines


class TranscriptionError(ApplSpeechError):
    """Speech engine error."""

    code = "transcription_error"


class SpeechEnvironmentError(ApplSpeechError):
    """Model installation or engine availability error."""

    code = "environment_error"


class SpeechNotAvailableError(TranscriptionError):
    code = "speech_not_available"

    def __init__(self, message: str = "speech recognition is not available on this device"):
        super().__init__(message)


class SpeechNotAuthorizedError(TranscriptionError):
    code = "speech_not_authorized"

    def __init__(self) -> None:
        super().__init__("speech recognition is not authorized")


class LocaleUnsupportedError(TranscriptionError, SpeechEnvironmentError):
    code = "locale_unsupported"

    def __init__(self, locale: str) -> None:
        self.locale = locale
        super().__init__(f"modern speech engine does not support locale: {locale}")


class ModelNotInstalledError(TranscriptionError):
    code = "model_not_installed"

    def __init__(self, locale: str) -> None:
        self.locale = locale
        super().__init__(
            f"speech model for {locale} is not installed "
            f"(run: applspeech authorize --download-model --locale {locale})"
        )


class NoFinalResultError(TranscriptionError):
    code = "no_final_result"

    def __init__(self) -> None:
        super().__init__("no transcription result produced")


class TranscriptionFailedError(TranscriptionError):
    code = "transcription_failed"

    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"transcription failed: {message}")


class TranscriberNotAvailableError(SpeechEnvironmentError):
    code = "transcriber_not_available"

    def __init__(self) -> None:
        super().__init__("modern speech engine is not available on this system")


class ModelInstallFailedError(SpeechEnvironmentError):
    code = "model_install_failed"

    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"failed to download/install speech model: {message}")


# Voice analysis


class VoiceAnalysisError(ApplSpeechError):
    """Voice analysis error."""

    code = "analysis_error"


class AnalysisFailedError(VoiceAnalysisError):
    code = "analysis_failed"

    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"voice analysis failed: {message}")
