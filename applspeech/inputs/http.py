"""
applspeech.inputs.http - Single-shot GET with classified failures.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from applspeech.exceptions import (
    RemoteInvalidResponseError,
    RemoteNetworkError,
    RemoteRequestFailedError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

# Ordered most specific first: ConnectTimeout is both a timeout and a transport error.
_TRANSPORT_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (httpx.TimeoutException, "timeout"),
    (httpx.ConnectError, "connect_error"),
    (httpx.ReadError, "read_error"),
    (httpx.WriteError, "write_error"),
    (httpx.ProxyError, "proxy_error"),
    (httpx.UnsupportedProtocol, "unsupported_protocol"),
    (httpx.ProtocolError, "protocol_error"),
    (httpx.TooManyRedirects, "too_many_redirects"),
    (httpx.DecodingError, "decoding_error"),
)


def transport_error_code(error: Exception) -> str:
    """Map an httpx request error to a stable error code."""
    for error_type, code in _TRANSPORT_ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return "transport_error"


@asynccontextmanager
async def http_client(
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the caller's client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
        yield owned


async def fetch_bytes(
    client: Any,
    url: str,
    *,
    subject: str | None = None,
    params: dict[str, str] | None = None,
) -> bytes:
    """Issue one GET and return the body.

    Args:
        client: httpx.AsyncClient (or compatible object with an async ``get``)
        url: Request URL
        subject: Name used in error messages; defaults to the URL
        params: Query parameters

    Returns:
        Response body

    Raises:
        RemoteNetworkError: On transport failure
        RemoteInvalidResponseError: If the result is not an HTTP response
        RemoteRequestFailedError: On a non-2xx status
    """
    subject = subject or url
    try:
        response = await client.get(url, params=params)
    except httpx.RequestError as e:
        code = transport_error_code(e)
        logger.debug("GET %s failed: %s (%s)", subject, code, e)
        raise RemoteNetworkError(subject, code) from e

    if not isinstance(response, httpx.Response):
        raise RemoteInvalidResponseError(subject)

    if not response.is_success:
        raise RemoteRequestFailedError(subject, response.status_code)

    logger.debug("GET %s -> %d (%d bytes)", subject, response.status_code, len(response.content))
    return response.content
