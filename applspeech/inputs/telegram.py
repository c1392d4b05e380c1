"""
applspeech.inputs.telegram - Telegram Bot API file download.

Two calls: getFile resolves a file id to a storage path, then the file
endpoint serves the bytes. The bot token is part of both URLs, so error
messages name the operation instead of the URL.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import SplitResult

from pydantic import BaseModel, ValidationError

from applspeech.exceptions import RemotePayloadError
from applspeech.inputs.http import fetch_bytes

TELEGRAM_API_BASE = "https://api.telegram.org"


class _FileResult(BaseModel):
    file_path: str | None = None


class _GetFileResponse(BaseModel):
    ok: bool
    result: _FileResult | None = None


def file_id_from_url(parts: SplitResult) -> str | None:
    """Extract the file id from ``telegram://<id>`` or ``tg:<id>``."""
    if parts.netloc:
        return parts.netloc
    trimmed = parts.path.strip("/")
    return trimmed or None


class TelegramBotAPI:
    """Minimal Telegram Bot API client for file downloads."""

    def __init__(self, token: str, client: Any, base_url: str = TELEGRAM_API_BASE) -> None:
        self.token = token
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def get_file_path(self, file_id: str) -> str:
        """Resolve a file id to its remote storage path.

        Raises:
            RemotePayloadError: If the payload is not a successful getFile result
        """
        data = await fetch_bytes(
            self.client,
            f"{self.base_url}/bot{self.token}/getFile",
            subject="telegram getFile",
            params={"file_id": file_id},
        )
        try:
            decoded = _GetFileResponse.model_validate_json(data)
        except ValidationError as e:
            raise RemotePayloadError("getFile") from e

        if not decoded.ok or decoded.result is None or not decoded.result.file_path:
            raise RemotePayloadError("getFile")
        return decoded.result.file_path

    async def download(self, file_path: str) -> bytes:
        """Download a file by its storage path."""
        return await fetch_bytes(
            self.client,
            f"{self.base_url}/file/bot{self.token}/{file_path}",
            subject="telegram download",
        )
