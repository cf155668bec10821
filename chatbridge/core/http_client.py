"""Reusable HTTP client utilities."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from .exceptions import ExternalServiceError


@asynccontextmanager
async def async_http_client(
    base_url: str | None = None,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield a configured AsyncClient and close it afterwards."""

    async with httpx.AsyncClient(
        base_url=base_url or "", timeout=timeout, transport=transport
    ) as client:
        yield client


async def fetch_text(base_url: str, path: str, *, timeout: float = 10.0) -> str:
    """GET `path` relative to `base_url` and return the body as text."""

    async with async_http_client(base_url=base_url, timeout=timeout) as client:
        try:
            response = await client.get(path)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"GET {path} failed: {exc}") from exc

    if response.is_error:
        raise ExternalServiceError(f"GET {path} responded with {response.status_code}")
    return response.text
