"""Shared upstream HTTP client for the audio proxy."""

import logging
from typing import Optional

import httpx

from settings import get_settings

logger = logging.getLogger(__name__)

# Shared HTTP client for connection pooling
_client: Optional[httpx.AsyncClient] = None
_client_timeout: Optional[int] = None


async def get_client() -> httpx.AsyncClient:
    """Get or create the shared HTTP client.

    Redirects are not followed here; the proxy endpoint follows them
    itself so that every hop is checked against restricted networks.
    """
    global _client, _client_timeout
    s = get_settings()
    # Recreate client if timeout setting changed
    if _client is None or _client.is_closed or _client_timeout != s.proxy_timeout:
        if _client is not None and not _client.is_closed:
            await _client.aclose()
        _client = httpx.AsyncClient(timeout=httpx.Timeout(s.proxy_timeout), follow_redirects=False)
        _client_timeout = s.proxy_timeout
    return _client


async def close_client() -> None:
    """Close the shared client (application shutdown)."""
    global _client, _client_timeout
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        logger.info("[Proxy] Upstream client closed")
    _client = None
    _client_timeout = None
