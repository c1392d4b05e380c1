"""
applspeech.platform.darwin - macOS Speech and AVFoundation through pyobjc.

Provides speech/microphone permission state and SFSpeechRecognizer as the
legacy engine. SpeechAnalyzer has no Objective-C bridge, so the modern
transcriber comes from the support object passed in.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from applspeech.exceptions import DependencyError
from applspeech.platform.base import (
    AuthorizationState,
    RecognitionHandler,
    RecognitionResult,
    TranscriberSupport,
)

logger = logging.getLogger(__name__)


def _load_frameworks() -> tuple[Any, Any, Any]:
    try:
        import AVFoundation
        import Foundation
        import Speech
    except ImportError as e:
        raise DependencyError(
            "pyobjc",
            "macOS Speech framework bindings not installed",
            "Install with: pip install 'applspeech[macos]'",
        ) from e
    return AVFoundation, Foundation, Speech


async def _await_callback(start: Callable[[Callable[[Any], None]], None]) -> Any:
    """Run a completion-handler API and await the value it delivers."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def deliver(value: Any) -> None:
        loop.call_soon_threadsafe(_set_once, future, value)

    start(deliver)
    return await future


def _set_once(future: asyncio.Future[Any], value: Any) -> None:
    if not future.done():
        future.set_result(value)


class DarwinLegacyRecognizer:
    """LegacyRecognizer wrapping an SFSpeechRecognizer."""

    def __init__(self, recognizer: Any, foundation: Any, speech: Any) -> None:
        self._recognizer = recognizer
        self._foundation = foundation
        self._speech = speech
        self._task: Any = None

    @property
    def is_available(self) -> bool:
        return bool(self._recognizer.isAvailable())

    @property
    def supports_on_device_recognition(self) -> bool:
        return bool(self._recognizer.supportsOnDeviceRecognition())

    def recognize(self, path: Path, *, on_device: bool, handler: RecognitionHandler) -> None:
        url = self._foundation.NSURL.fileURLWithPath_(str(path))
        request = self._speech.SFSpeechURLRecognitionRequest.alloc().initWithURL_(url)
        request.setShouldReportPartialResults_(False)
        if on_device:
            request.setRequiresOnDeviceRecognition_(True)

        def result_handler(result: Any, error: Any) -> None:
            if error is not None:
                handler(None, RuntimeError(str(error.localizedDescription())))
                return
            if result is None:
                return
            text = str(result.bestTranscription().formattedString())
            handler(RecognitionResult(text=text, is_final=bool(result.isFinal())), None)

        self._task = self._recognizer.recognitionTaskWithRequest_resultHandler_(
            request, result_handler
        )


class DarwinSpeechPlatform:
    """SpeechPlatform for macOS."""

    def __init__(self, transcriber_support: TranscriberSupport | None = None) -> None:
        self._avfoundation, self._foundation, self._speech = _load_frameworks()
        self._transcriber_support = transcriber_support

        sp = self._speech
        self._speech_states = {
            sp.SFSpeechRecognizerAuthorizationStatusAuthorized: AuthorizationState.AUTHORIZED,
            sp.SFSpeechRecognizerAuthorizationStatusDenied: AuthorizationState.DENIED,
            sp.SFSpeechRecognizerAuthorizationStatusRestricted: AuthorizationState.RESTRICTED,
            sp.SFSpeechRecognizerAuthorizationStatusNotDetermined: (
                AuthorizationState.NOT_DETERMINED
            ),
        }
        av = self._avfoundation
        self._microphone_states = {
            av.AVAuthorizationStatusAuthorized: AuthorizationState.AUTHORIZED,
            av.AVAuthorizationStatusDenied: AuthorizationState.DENIED,
            av.AVAuthorizationStatusRestricted: AuthorizationState.RESTRICTED,
            av.AVAuthorizationStatusNotDetermined: AuthorizationState.NOT_DETERMINED,
        }

    def speech_authorization(self) -> AuthorizationState:
        status = self._speech.SFSpeechRecognizer.authorizationStatus()
        return self._speech_states.get(status, AuthorizationState.UNKNOWN)

    async def request_speech_authorization(self) -> AuthorizationState:
        status = await _await_callback(self._speech.SFSpeechRecognizer.requestAuthorization_)
        return self._speech_states.get(status, AuthorizationState.UNKNOWN)

    def microphone_authorization(self) -> AuthorizationState:
        av = self._avfoundation
        status = av.AVCaptureDevice.authorizationStatusForMediaType_(av.AVMediaTypeAudio)
        return self._microphone_states.get(status, AuthorizationState.UNKNOWN)

    async def request_microphone_authorization(self) -> bool:
        av = self._avfoundation

        def start(deliver: Callable[[Any], None]) -> None:
            av.AVCaptureDevice.requestAccessForMediaType_completionHandler_(
                av.AVMediaTypeAudio, deliver
            )

        return bool(await _await_callback(start))

    def legacy_recognizer(self, locale: str) -> DarwinLegacyRecognizer | None:
        ns_locale = self._foundation.NSLocale.localeWithLocaleIdentifier_(locale)
        recognizer = self._speech.SFSpeechRecognizer.alloc().initWithLocale_(ns_locale)
        if recognizer is None:
            logger.debug("No SFSpeechRecognizer for locale %s", locale)
            return None
        # Deliver callbacks off the main queue; a CLI process does not run a main run loop.
        recognizer.setQueue_(self._foundation.NSOperationQueue.alloc().init())
        return DarwinLegacyRecognizer(recognizer, self._foundation, self._speech)

    def transcriber_support(self) -> TranscriberSupport | None:
        return self._transcriber_support
