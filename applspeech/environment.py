"""
applspeech.environment - Speech environment readiness.

Merges permission state and engine/model availability into one snapshot,
and drives the authorization sequence (permission prompts plus optional
model installation). Snapshots are recomputed on every query: permissions
can be revoked outside this process at any time.
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from applspeech.exceptions import (
    LocaleUnsupportedError,
    ModelInstallFailedError,
    TranscriberNotAvailableError,
)
from applspeech.platform.base import AuthorizationState, SpeechPlatform, TranscriberSupport

logger = logging.getLogger(__name__)


class _StatusModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class LegacyEngineStatus(_StatusModel):
    available: bool
    recognizer_available: bool | None = None
    supports_on_device_recognition: bool | None = None


class ModernEngineStatus(_StatusModel):
    available: bool
    supported_locale: str | None = None
    model_installed: bool | None = None


class Permissions(_StatusModel):
    speech_recognition: AuthorizationState
    microphone: AuthorizationState


class Engines(_StatusModel):
    legacy: LegacyEngineStatus
    modern: ModernEngineStatus


class EnvironmentStatus(_StatusModel):
    """Point-in-time readiness snapshot."""

    ok: bool
    locale: str
    permissions: Permissions
    engines: Engines

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def normalize_locale(identifier: str) -> str:
    """Case-insensitive form with ``_`` and ``-`` treated alike."""
    return identifier.replace("_", "-").lower()


async def resolve_supported_locale(support: TranscriberSupport, locale: str) -> str | None:
    """Find the modern engine's locale equivalent to ``locale``.

    Asks the engine first, then falls back to a normalized exact match
    against its supported locales.
    """
    equivalent = await support.equivalent_locale(locale)
    if equivalent:
        return equivalent

    target = normalize_locale(locale)
    for candidate in await support.supported_locales():
        if normalize_locale(candidate) == target:
            return candidate
    return None


async def is_model_installed(support: TranscriberSupport, supported_locale: str) -> bool:
    installed = {normalize_locale(item) for item in await support.installed_locales()}
    return normalize_locale(supported_locale) in installed


def legacy_status(platform: SpeechPlatform, locale: str) -> LegacyEngineStatus:
    recognizer = platform.legacy_recognizer(locale)
    if recognizer is None:
        return LegacyEngineStatus(available=False)
    return LegacyEngineStatus(
        available=True,
        recognizer_available=recognizer.is_available,
        supports_on_device_recognition=recognizer.supports_on_device_recognition,
    )


async def modern_status(platform: SpeechPlatform, locale: str) -> ModernEngineStatus:
    support = platform.transcriber_support()
    if support is None:
        return ModernEngineStatus(available=False)

    supported = await resolve_supported_locale(support, locale)
    if supported is None:
        return ModernEngineStatus(available=True, supported_locale=None, model_installed=False)

    return ModernEngineStatus(
        available=True,
        supported_locale=supported,
        model_installed=await is_model_installed(support, supported),
    )


def is_ready(
    speech: AuthorizationState,
    legacy: LegacyEngineStatus,
    modern: ModernEngineStatus,
) -> bool:
    """True when speech is authorized and at least one engine can serve the locale."""
    if speech != AuthorizationState.AUTHORIZED:
        return False
    legacy_ready = legacy.available and bool(legacy.recognizer_available)
    modern_ready = modern.available and bool(modern.model_installed)
    return legacy_ready or modern_ready


async def status(locale: str, platform: SpeechPlatform) -> EnvironmentStatus:
    """Query permissions and both engines for ``locale``.

    The four checks share no state and run concurrently.
    """
    speech, microphone, legacy, modern = await asyncio.gather(
        asyncio.to_thread(platform.speech_authorization),
        asyncio.to_thread(platform.microphone_authorization),
        asyncio.to_thread(legacy_status, platform, locale),
        modern_status(platform, locale),
    )

    snapshot = EnvironmentStatus(
        ok=is_ready(speech, legacy, modern),
        locale=locale,
        permissions=Permissions(speech_recognition=speech, microphone=microphone),
        engines=Engines(legacy=legacy, modern=modern),
    )
    logger.debug("Environment status for %s: ok=%s", locale, snapshot.ok)
    return snapshot


async def ensure_installed(locale: str, platform: SpeechPlatform) -> None:
    """Install the modern engine's model for ``locale`` unless already present.

    Raises:
        TranscriberNotAvailableError: If this build has no modern engine
        LocaleUnsupportedError: If the locale has no modern-engine equivalent
        ModelInstallFailedError: If the download or install fails
    """
    support = platform.transcriber_support()
    if support is None:
        raise TranscriberNotAvailableError()

    supported = await resolve_supported_locale(support, locale)
    if supported is None:
        raise LocaleUnsupportedError(locale)

    if await is_model_installed(support, supported):
        logger.info("Speech model for %s already installed", supported)
        return

    try:
        request = await support.installation_request(supported)
        if request is not None:
            logger.info("Installing speech model for %s", supported)
            await request.download_and_install()
    except Exception as e:
        raise ModelInstallFailedError(str(e)) from e


async def authorize(
    locale: str,
    platform: SpeechPlatform,
    *,
    request_microphone: bool = False,
    download_model: bool = False,
) -> EnvironmentStatus:
    """Prompt for permissions, optionally install the model, then report status.

    Args:
        locale: Locale to check and install for
        platform: Speech platform
        request_microphone: Also prompt for microphone access
        download_model: Install the modern engine's model for the locale

    Returns:
        A fresh EnvironmentStatus snapshot
    """
    speech = await platform.request_speech_authorization()
    logger.info("Speech recognition authorization: %s", speech.value)

    if request_microphone:
        granted = await platform.request_microphone_authorization()
        logger.info("Microphone access granted: %s", granted)

    if download_model:
        await ensure_installed(locale, platform)

    return await status(locale, platform)
