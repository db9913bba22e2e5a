"""Configuration for YT Audio Proxy.

All settings are startup-only and read from environment variables.
Validated runtime values are exposed through settings.get_settings().
"""

import os

# Server settings
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8080"))

# Debug mode (enables auto-reload in development)
DEBUG = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

# Root log level (DEBUG, INFO, WARNING, ERROR)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS settings for preflight requests
# Comma-separated list of allowed origins (e.g., "https://app.example.com,https://admin.example.com")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

# Allow all origins (development mode) - credentials will be DISABLED in this mode
CORS_ALLOW_ALL = os.getenv("CORS_ALLOW_ALL", "false").lower() in ("true", "1", "yes")

# Allow credentials (cookies, authorization headers) - only works with specific origins
CORS_ALLOW_CREDENTIALS = os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() in ("true", "1", "yes")

# yt-dlp binary and per-call timeout (seconds)
YTDLP_PATH = os.getenv("YTDLP_PATH", "yt-dlp")
YTDLP_TIMEOUT = int(os.getenv("YTDLP_TIMEOUT", "120"))

# Skip TLS certificate verification in yt-dlp (not recommended for production)
YTDLP_SKIP_TLS_VERIFY = os.getenv("YTDLP_SKIP_TLS_VERIFY", "false").lower() in ("true", "1", "yes")

# Upstream fetch timeout for the audio proxy (seconds)
PROXY_TIMEOUT = int(os.getenv("PROXY_TIMEOUT", "30"))

# Reject proxy targets on loopback/private/metadata addresses
PROXY_BLOCK_PRIVATE_NETWORKS = os.getenv("PROXY_BLOCK_PRIVATE_NETWORKS", "true").lower() in ("true", "1", "yes")
