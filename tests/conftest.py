"""Shared test fixtures for YT Audio Proxy tests."""

import json
import os
import socket

# Add project root to path
import sys
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


# =============================================================================
# Mock yt-dlp Subprocess Fixtures
# =============================================================================


class MockProcess:
    """Mock asyncio subprocess for yt-dlp calls."""

    def __init__(
        self,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ):
        self.stdout = stdout.encode() if isinstance(stdout, str) else stdout
        self.stderr = stderr.encode() if isinstance(stderr, str) else stderr
        self.returncode = returncode
        self._killed = False

    async def communicate(self):
        return self.stdout, self.stderr

    async def wait(self):
        return self.returncode

    def kill(self):
        self._killed = True


@pytest.fixture
def mock_ytdlp_video():
    """Sample yt-dlp -J output with muxed, video-only and audio-only formats."""
    return {
        "id": "dQw4w9WgXcQ",
        "title": "Test Video Title",
        "uploader": "Test Channel",
        "duration": 212,
        "formats": [
            {
                "format_id": "18",
                "ext": "mp4",
                "url": "https://example.com/video.mp4",
                "vcodec": "avc1.42001E",
                "acodec": "mp4a.40.2",
                "abr": 96,
            },
            {
                "format_id": "137",
                "ext": "mp4",
                "url": "https://example.com/video_hd.mp4",
                "vcodec": "avc1.640028",
                "acodec": "none",
            },
            {
                "format_id": "140",
                "ext": "m4a",
                "url": "https://example.com/audio.m4a",
                "vcodec": "none",
                "acodec": "mp4a.40.2",
                "abr": 129.5,
            },
            {
                "format_id": "251",
                "ext": "webm",
                "url": "https://example.com/audio.webm",
                "vcodec": "none",
                "acodec": "opus",
                "abr": 135.2,
            },
            {
                "format_id": "sb0",
                "ext": "mhtml",
                "url": "https://example.com/storyboard.mhtml",
                "vcodec": "none",
                "acodec": "none",
            },
        ],
        "extractor": "youtube",
        "webpage_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    }


@pytest.fixture
def mock_ytdlp(mock_ytdlp_video):
    """Mock asyncio.create_subprocess_exec to return the sample video.

    The mock records every call so tests can inspect the yt-dlp arguments.
    """

    async def mock_subprocess(*args, **kwargs):
        return MockProcess(stdout=json.dumps(mock_ytdlp_video))

    with patch("asyncio.create_subprocess_exec", side_effect=mock_subprocess) as mock:
        yield mock


@pytest.fixture
def mock_ytdlp_error():
    """Mock yt-dlp subprocess that returns an error."""

    async def mock_subprocess(*args, **kwargs):
        return MockProcess(
            stdout="",
            stderr="ERROR: [youtube] dQw4w9WgXcQ: Video unavailable",
            returncode=1,
        )

    with patch("asyncio.create_subprocess_exec", side_effect=mock_subprocess) as mock:
        yield mock


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings():
    """Override settings for tests."""
    from settings import Settings

    test_settings = Settings(
        ytdlp_path="yt-dlp",
        ytdlp_timeout=30,
        proxy_timeout=10,
        proxy_chunk_size=4096,
        proxy_block_private_networks=True,
    )

    # Modules hold their own reference to get_settings, so patch the cache it reads
    with patch("settings._cached_settings", test_settings):
        yield test_settings


@pytest.fixture
def mock_dns_public(monkeypatch):
    """Resolve every hostname to a public IP (8.8.8.8)."""
    from security import clear_dns_cache

    clear_dns_cache()

    def mock_getaddrinfo(hostname, port, family=0, type=0, proto=0, flags=0):
        return [(socket.AF_INET, socket.SOCK_STREAM, 0, "", ("8.8.8.8", 80))]

    monkeypatch.setattr(socket, "getaddrinfo", mock_getaddrinfo)
    yield
    clear_dns_cache()


# =============================================================================
# Mock Upstream (httpx) Fixtures
# =============================================================================


class UpstreamRecorder:
    """Records requests seen by an httpx.MockTransport handler."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def mock_upstream():
    """Patch the proxy's shared client with one backed by httpx.MockTransport.

    Usage:
        recorder = mock_upstream(lambda request: httpx.Response(200, content=b"..."))
    """
    patches = []

    def install(handler):
        recorder = UpstreamRecorder(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        p = patch("routers.proxy._streaming.get_client", AsyncMock(return_value=client))
        p.start()
        patches.append(p)
        return recorder

    yield install

    for p in patches:
        p.stop()


# =============================================================================
# FastAPI TestClient Fixtures
# =============================================================================


@pytest.fixture
def app_no_lifespan(test_settings):
    """FastAPI app with the API routers but no lifespan events."""
    from fastapi import FastAPI

    from routers import proxy, stream

    app = FastAPI()
    app.include_router(stream.router, prefix="/api")
    app.include_router(proxy.router, prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


@pytest.fixture
def test_client(app_no_lifespan):
    """FastAPI TestClient for the API routers."""
    with TestClient(app_no_lifespan) as client:
        yield client


@pytest.fixture
def sample_video_id():
    """Valid YouTube video ID for testing."""
    return "dQw4w9WgXcQ"
