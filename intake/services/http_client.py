"""Shared HTTP client utilities: reusable httpx client."""

import logging

import httpx

from intake.config import get_settings

logger = logging.getLogger(__name__)

# Module-level shared client (created lazily, lives for the process lifetime)
_client: httpx.AsyncClient | None = None


def get_shared_client() -> httpx.AsyncClient:
    """Return a shared httpx.AsyncClient, creating it on first call."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(timeout=get_settings().network_timeout_seconds)
    return _client


async def close_shared_client() -> None:
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
    _client = None


def postgrest_headers(*, prefer: str | None = None) -> dict[str, str]:
    """Build standard PostgREST request headers.

    Includes the API key headers only when a key is configured.
    """
    settings = get_settings()
    headers: dict[str, str] = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if settings.postgrest_api_key:
        headers["apikey"] = settings.postgrest_api_key
        headers["Authorization"] = f"Bearer {settings.postgrest_api_key}"
    if prefer:
        headers["Prefer"] = prefer
    return headers


def table_url(table: str) -> str:
    return f"{get_settings().postgrest_url.rstrip('/')}/{table}"
