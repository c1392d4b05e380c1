"""
applspeech.inputs.resolver - Turn an input descriptor into a local file.

Handles four source kinds, checked in this order:
- ``file://`` URLs and plain paths are used in place
- ``tg:<id>`` / ``telegram://<id>`` are downloaded through the Bot API
- ``http://`` / ``https://`` URLs are downloaded with a single GET
- ``-`` reads the whole of stdin

Downloads land in a temp file owned by the returned ResolvedInput; the
caller must call ``cleanup()`` once it is done reading.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import tempfile
import uuid
from collections.abc import AsyncIterator, Callable, Collection
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO
from urllib.parse import unquote, urlsplit

from applspeech.exceptions import (
    InvalidFileIDError,
    MissingBotCredentialError,
    StdinEmptyError,
    UnsupportedAudioFormatError,
)
from applspeech.formats import CORE_FORMATS, AudioFormat, classify, sniff
from applspeech.inputs.http import DEFAULT_TIMEOUT, fetch_bytes, http_client
from applspeech.inputs.telegram import TelegramBotAPI, file_id_from_url

logger = logging.getLogger(__name__)

DEFAULT_BOT_TOKEN_ENV = "TELEGRAM_BOT_TOKEN"

CredentialProvider = Callable[[], "str | None"]


def env_credentials(variable: str = DEFAULT_BOT_TOKEN_ENV) -> CredentialProvider:
    """Credential provider that reads the bot token from the environment on each call."""

    def provider() -> str | None:
        return os.environ.get(variable)

    return provider


def _noop() -> None:
    pass


def remove_temp_file(path: Path) -> None:
    """Delete a temp file; failures are logged and ignored."""
    try:
        path.unlink(missing_ok=True)
        logger.debug("Removed temp file %s", path)
    except OSError as e:
        logger.debug("Could not remove temp file %s: %s", path, e)


@dataclass
class ResolvedInput:
    """A readable local audio file plus its cleanup obligation."""

    local_path: Path
    cleanup_action: Callable[[], None] = field(default=_noop, repr=False)
    _cleaned: bool = field(default=False, init=False, repr=False)

    @classmethod
    def borrowed(cls, path: Path) -> ResolvedInput:
        """Caller-owned file; cleanup never touches it."""
        return cls(local_path=path)

    @classmethod
    def temporary(cls, path: Path) -> ResolvedInput:
        """Resolver-owned temp file; cleanup deletes it."""
        return cls(local_path=path, cleanup_action=lambda: remove_temp_file(path))

    def cleanup(self) -> None:
        """Release the input. Safe to call more than once."""
        if self._cleaned:
            return
        self._cleaned = True
        self.cleanup_action()

    def __enter__(self) -> ResolvedInput:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()


async def write_temp_file(data: bytes, extension: str, temp_dir: Path | None = None) -> Path:
    """Write data in one step to a fresh, uniquely named temp file.

    A partially written file is removed before the error propagates.
    """
    directory = temp_dir or Path(tempfile.gettempdir())
    destination = directory / f"{uuid.uuid4().hex}.{extension}"
    try:
        await asyncio.to_thread(destination.write_bytes, data)
    except BaseException:
        remove_temp_file(destination)
        raise
    logger.debug("Wrote %d bytes to %s", len(data), destination)
    return destination


async def resolve(
    source: str,
    *,
    client: Any = None,
    credentials: CredentialProvider | None = None,
    bot_token_env: str = DEFAULT_BOT_TOKEN_ENV,
    stdin: BinaryIO | None = None,
    temp_dir: Path | None = None,
    formats: Collection[AudioFormat] = CORE_FORMATS,
    timeout: float = DEFAULT_TIMEOUT,
) -> ResolvedInput:
    """Resolve an input descriptor to a local file.

    Args:
        source: Local path, file/http(s)/tg/telegram URL, or ``-`` for stdin
        client: HTTP client for downloads (httpx.AsyncClient); one is created if omitted
        credentials: Bot token provider for Telegram sources
        bot_token_env: Environment variable holding the bot token; read when
            no provider is given and named in the missing-token error
        stdin: Binary stream read for ``-``; defaults to the process stdin
        temp_dir: Directory for downloaded files; defaults to the system temp dir
        formats: Active format set
        timeout: Timeout for a client created here

    Returns:
        ResolvedInput whose cleanup the caller must invoke

    Raises:
        InputError: If the source cannot be resolved
    """
    parts = urlsplit(source)
    scheme = parts.scheme.lower()

    if scheme == "file":
        logger.debug("Resolved file URL %s", source)
        return ResolvedInput.borrowed(Path(unquote(parts.path)))

    if scheme in ("tg", "telegram"):
        return await _resolve_telegram(
            source,
            parts,
            client=client,
            credentials=credentials or env_credentials(bot_token_env),
            bot_token_env=bot_token_env,
            temp_dir=temp_dir,
            formats=formats,
            timeout=timeout,
        )

    if scheme in ("http", "https"):
        return await _resolve_http(
            source, client=client, temp_dir=temp_dir, formats=formats, timeout=timeout
        )

    if source == "-":
        return await _resolve_stdin(stdin, temp_dir=temp_dir)

    return ResolvedInput.borrowed(Path(source))


@asynccontextmanager
async def open_input(source: str, **kwargs: Any) -> AsyncIterator[ResolvedInput]:
    """Resolve a source and guarantee cleanup when the block exits."""
    resolved = await resolve(source, **kwargs)
    try:
        yield resolved
    finally:
        resolved.cleanup()


async def _resolve_telegram(
    source: str,
    parts: Any,
    *,
    client: Any,
    credentials: CredentialProvider,
    bot_token_env: str,
    temp_dir: Path | None,
    formats: Collection[AudioFormat],
    timeout: float,
) -> ResolvedInput:
    file_id = file_id_from_url(parts)
    if not file_id:
        raise InvalidFileIDError(source)

    token = credentials()
    if not token:
        raise MissingBotCredentialError(bot_token_env)

    async with http_client(client, timeout) as http:
        api = TelegramBotAPI(token, http)
        file_path = await api.get_file_path(file_id)

        fmt = classify(file_path, formats)
        if fmt is None:
            raise UnsupportedAudioFormatError(f"telegram:{file_path}", formats)

        logger.debug("Downloading Telegram file %s (%s)", file_id, file_path)
        data = await api.download(file_path)

    destination = await write_temp_file(data, fmt.value, temp_dir)
    return ResolvedInput.temporary(destination)


async def _resolve_http(
    url: str,
    *,
    client: Any,
    temp_dir: Path | None,
    formats: Collection[AudioFormat],
    timeout: float,
) -> ResolvedInput:
    fmt = classify(url, formats)
    if fmt is None:
        raise UnsupportedAudioFormatError(url, formats)

    logger.debug("Downloading %s", url)
    async with http_client(client, timeout) as http:
        data = await fetch_bytes(http, url)

    destination = await write_temp_file(data, fmt.value, temp_dir)
    return ResolvedInput.temporary(destination)


async def _resolve_stdin(stdin: BinaryIO | None, *, temp_dir: Path | None) -> ResolvedInput:
    stream = stdin if stdin is not None else sys.stdin.buffer
    data = await asyncio.to_thread(stream.read)
    if not data:
        raise StdinEmptyError()

    fmt = sniff(data)
    logger.debug("Read %d bytes from stdin, detected %s", len(data), fmt.value)
    destination = await write_temp_file(data, fmt.value, temp_dir)
    return ResolvedInput.temporary(destination)
