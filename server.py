"""YT Audio Proxy - resolve YouTube audio streams and proxy audio bytes."""

import asyncio
import importlib.metadata
import logging
import os
import platform
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

import config
from models import HealthResponse
from routers import proxy, stream
from settings import get_settings

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: load and validate settings
    s = get_settings()
    logger.info(f"Starting with yt-dlp at {s.ytdlp_path} (timeout {s.ytdlp_timeout}s)")
    yield
    # Shutdown: release pooled upstream connections
    await proxy.close_client()


app = FastAPI(
    title="YT Audio Proxy",
    description="Resolves YouTube videos to direct audio streams and proxies audio bytes with CORS",
    version="1.0.0",
    lifespan=lifespan,
)


def configure_cors(app: FastAPI) -> None:
    """Configure CORS middleware based on environment settings.

    The /api endpoints always answer with Access-Control-Allow-Origin: *;
    this middleware only governs preflight requests and other routes.

    - If specific origins are configured, use them with optional credentials
    - If CORS_ALLOW_ALL is true, allow all origins but DISABLE credentials
    - If neither is set, no middleware is added
    """
    origins: list[str] = []
    allow_credentials = False

    if config.CORS_ORIGINS:
        origins = [o.strip() for o in config.CORS_ORIGINS.split(",") if o.strip()]
        allow_credentials = config.CORS_ALLOW_CREDENTIALS
        logger.info(f"CORS configured with specific origins: {origins}, credentials: {allow_credentials}")
    elif config.CORS_ALLOW_ALL:
        # Wildcard + credentials is invalid CORS
        origins = ["*"]
        allow_credentials = False
        logger.warning("CORS configured to allow ALL origins. Credentials are DISABLED.")
    else:
        logger.info("CORS middleware not configured")
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Range", "Accept-Ranges"],
    )


configure_cors(app)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# Mount API routers
app.include_router(stream.router, prefix="/api")
app.include_router(proxy.router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


async def get_version(cmd: list[str]) -> str:
    """Get version from a command."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=5)
        return stdout.decode(errors="replace").strip().split("\n")[0]
    except (OSError, asyncio.TimeoutError):
        return "not available"


def get_server_version() -> str:
    """Get installed package version, optionally with git hash suffix."""
    try:
        base_version = importlib.metadata.version("yt-audio-proxy")
    except importlib.metadata.PackageNotFoundError:
        # Running from a source checkout
        base_version = app.version

    git_hash = os.environ.get("GIT_VERSION", "")
    return f"{base_version}-{git_hash}" if git_hash else base_version


@app.get("/info")
async def info():
    """Server info with dependency versions."""
    s = get_settings()

    ytdlp_version = await get_version([s.ytdlp_path, "--version"])

    packages = {}
    for pkg in ["fastapi", "uvicorn", "httpx", "pydantic"]:
        try:
            packages[pkg] = importlib.metadata.version(pkg)
        except importlib.metadata.PackageNotFoundError:
            packages[pkg] = "not installed"

    return {
        "name": "YT Audio Proxy",
        "version": get_server_version(),
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "dependencies": {
            "yt-dlp": ytdlp_version,
        },
        "packages": packages,
        "config": {
            "ytdlp_timeout": s.ytdlp_timeout,
            "proxy_timeout": s.proxy_timeout,
            "proxy_block_private_networks": s.proxy_block_private_networks,
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host=config.HOST, port=config.PORT, reload=config.DEBUG)
