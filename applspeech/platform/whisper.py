"""
applspeech.platform.whisper - Modern streaming transcriber on faster-whisper.

Segments from faster-whisper's lazy generator are the incremental results.
A model counts as installed when it is in the local Hugging Face cache;
multilingual models serve every Whisper language, ``*.en`` models only
English.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from applspeech.exceptions import DependencyError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "small"

_END = None


def _faster_whisper() -> Any:
    try:
        import faster_whisper
        import faster_whisper.tokenizer
        import faster_whisper.utils
    except ImportError as e:
        raise DependencyError(
            "faster-whisper",
            "not installed",
            "Install with: pip install 'applspeech[whisper]'",
        ) from e
    return faster_whisper


def whisper_available() -> bool:
    return importlib.util.find_spec("faster_whisper") is not None


class WhisperModelDownload:
    """Installation request that fetches a model into the local cache."""

    def __init__(self, support: WhisperTranscriberSupport) -> None:
        self.support = support

    async def download_and_install(self) -> None:
        fw = _faster_whisper()
        logger.info("Downloading Whisper model %s", self.support.model)
        await asyncio.to_thread(
            fw.utils.download_model,
            self.support.model,
            cache_dir=self.support.cache_dir,
        )


class WhisperSession:
    """One streaming pass of faster-whisper over a file."""

    def __init__(self, support: WhisperTranscriberSupport, path: Path, language: str) -> None:
        self.support = support
        self.path = path
        self.language = language
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            await asyncio.to_thread(self._transcribe, loop)
        finally:
            self._queue.put_nowait(_END)

    def _transcribe(self, loop: asyncio.AbstractEventLoop) -> None:
        model = self.support.load_model()
        segments, info = model.transcribe(str(self.path), language=self.language)
        logger.debug("Whisper session started (language=%s)", info.language)
        for segment in segments:
            loop.call_soon_threadsafe(self._queue.put_nowait, segment.text)

    async def results(self) -> AsyncIterator[str]:
        while True:
            chunk = await self._queue.get()
            if chunk is _END:
                return
            yield chunk


class WhisperTranscriberSupport:
    """TranscriberSupport backed by a faster-whisper model."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        cache_dir: str | None = None,
        device: str = "auto",
        compute_type: str = "auto",
    ) -> None:
        self.model = model
        self.cache_dir = cache_dir
        self.device = device
        self.compute_type = compute_type

    async def equivalent_locale(self, locale: str) -> str | None:
        language = locale.replace("_", "-").split("-")[0].lower()
        if language in await self.supported_locales():
            return language
        return None

    async def supported_locales(self) -> list[str]:
        if self.model.endswith(".en"):
            return ["en"]
        fw = _faster_whisper()
        return list(fw.tokenizer._LANGUAGE_CODES)

    async def installed_locales(self) -> list[str]:
        if not await asyncio.to_thread(self._is_cached):
            return []
        return await self.supported_locales()

    async def installation_request(self, locale: str) -> WhisperModelDownload | None:
        if await asyncio.to_thread(self._is_cached):
            return None
        return WhisperModelDownload(self)

    def create_session(self, path: Path, locale: str, *, finish_after_file: bool) -> WhisperSession:
        if not finish_after_file:
            raise ValueError("Whisper sessions only transcribe complete files")
        return WhisperSession(self, path, locale)

    def load_model(self) -> Any:
        fw = _faster_whisper()
        return fw.WhisperModel(
            self.model,
            device=self.device,
            compute_type=self.compute_type,
            download_root=self.cache_dir,
            local_files_only=True,
        )

    def _is_cached(self) -> bool:
        fw = _faster_whisper()
        try:
            fw.utils.download_model(self.model, local_files_only=True, cache_dir=self.cache_dir)
        except (OSError, ValueError):
            return False
        return True
