"""Audio proxy endpoint: fetch a remote URL and stream its body back."""

import logging
from typing import AsyncIterator, Dict, Optional

import httpx
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from routers.proxy._client import get_client
from security import is_valid_range_header
from settings import get_settings
from ytdlp_wrapper import is_safe_url, is_valid_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

DEFAULT_CONTENT_TYPE = "audio/webm"

MAX_REDIRECTS = 5


def build_response_headers(upstream: httpx.Response) -> Dict[str, str]:
    """Headers sent to the caller for a proxied upstream response."""
    headers = {
        "Content-Type": upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
        "Accept-Ranges": "bytes",
        "Access-Control-Allow-Origin": "*",
        "Cache-Control": "no-cache",
    }
    content_length = upstream.headers.get("content-length")
    if content_length:
        headers["Content-Length"] = content_length
    content_range = upstream.headers.get("content-range")
    if content_range:
        headers["Content-Range"] = content_range
    # Raw bytes are forwarded, so any transfer coding must be declared
    content_encoding = upstream.headers.get("content-encoding")
    if content_encoding:
        headers["Content-Encoding"] = content_encoding
    return headers


async def iter_upstream(upstream: httpx.Response, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield the upstream body chunk by chunk, without decoding it.

    The upstream response is closed when iteration ends for any reason,
    including the caller disconnecting mid-stream.
    """
    bytes_sent = 0
    try:
        async for chunk in upstream.aiter_raw(chunk_size=chunk_size):
            bytes_sent += len(chunk)
            yield chunk
    except httpx.HTTPError as e:
        # Headers are already sent; the client sees a truncated body
        logger.error(f"[Proxy] Upstream stream broke after {bytes_sent} bytes: {e}")
        return
    finally:
        await upstream.aclose()
    logger.debug(f"[Proxy] Stream complete: {bytes_sent} bytes")


async def open_upstream(
    client: httpx.AsyncClient,
    url: str,
    headers: Dict[str, str],
    block_private_networks: bool,
) -> httpx.Response:
    """Send the upstream request, following redirects one hop at a time.

    Every redirect target goes through the same SSRF check as the
    caller's URL before it is requested.

    Raises:
        HTTPException: 403 if a redirect points at a restricted network
        httpx.RequestError: On connection failure, timeout or too many redirects
    """
    request = client.build_request("GET", url, headers=headers)
    for _ in range(MAX_REDIRECTS + 1):
        upstream = await client.send(request, stream=True, follow_redirects=False)
        if upstream.next_request is None:
            return upstream

        await upstream.aclose()
        request = upstream.next_request
        target = str(request.url)
        if block_private_networks and not is_safe_url(target):
            logger.warning(f"[Proxy] Blocked redirect from {url} to {target}")
            raise HTTPException(status_code=403, detail="URL targets restricted network resources")
        logger.debug(f"[Proxy] Following redirect to {target}")

    raise httpx.TooManyRedirects(f"Exceeded {MAX_REDIRECTS} redirects", request=request)


@router.get("/proxy")
async def proxy_audio(
    request: Request,
    url: Optional[str] = Query(None, description="Remote audio URL to forward"),
):
    """Forward the bytes of a remote audio URL with permissive CORS headers.

    The caller's Range header is passed upstream so seeking works; a 206
    answer and its Content-Range are returned as-is.
    """
    if not url:
        raise HTTPException(status_code=400, detail="URL parameter is required")

    if not is_valid_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL format")

    s = get_settings()
    if s.proxy_block_private_networks and not is_safe_url(url):
        raise HTTPException(status_code=403, detail="URL targets restricted network resources")

    upstream_headers = {}
    range_header = request.headers.get("range")
    if range_header:
        if is_valid_range_header(range_header):
            upstream_headers["Range"] = range_header
        else:
            logger.warning(f"[Proxy] Ignoring malformed Range header: {range_header!r}")

    client = await get_client()
    try:
        upstream = await open_upstream(client, url, upstream_headers, s.proxy_block_private_networks)
    except httpx.RequestError as e:
        logger.error(f"[Proxy] Upstream request failed: {url} - {e}")
        raise HTTPException(status_code=502, detail="Failed to proxy audio stream")

    if not upstream.is_success:
        status_code = upstream.status_code
        await upstream.aclose()
        logger.warning(f"[Proxy] Upstream returned HTTP {status_code}: {url}")
        raise HTTPException(status_code=status_code, detail="Failed to fetch audio")

    headers = build_response_headers(upstream)
    logger.info(
        f"[Proxy] Forwarding {upstream.status_code} ({headers['Content-Type']}, "
        f"{headers.get('Content-Length', 'unknown')} bytes)"
    )

    return StreamingResponse(
        iter_upstream(upstream, s.proxy_chunk_size),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
