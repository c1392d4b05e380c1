"""
applspeech.platform.portable - Platform for hosts without a consent layer.

Local inference on Linux and Windows needs no speech permission, so speech
recognition reports authorized. There is no legacy recognizer; the modern
transcriber is whatever support object is passed in.
"""

from __future__ import annotations

from applspeech.platform.base import (
    AuthorizationState,
    LegacyRecognizer,
    TranscriberSupport,
)


class PortableSpeechPlatform:
    def __init__(self, transcriber_support: TranscriberSupport | None = None) -> None:
        self._transcriber_support = transcriber_support

    def speech_authorization(self) -> AuthorizationState:
        return AuthorizationState.AUTHORIZED

    async def request_speech_authorization(self) -> AuthorizationState:
        return AuthorizationState.AUTHORIZED

    def microphone_authorization(self) -> AuthorizationState:
        return AuthorizationState.UNKNOWN

    async def request_microphone_authorization(self) -> bool:
        return False

    def legacy_recognizer(self, locale: str) -> LegacyRecognizer | None:
        return None

    def transcriber_support(self) -> TranscriberSupport | None:
        return self._transcriber_support
