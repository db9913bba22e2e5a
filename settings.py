"""Runtime settings derived from the environment."""

import logging
from typing import Optional

from pydantic import BaseModel, Field

import config

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Validated application settings."""

    # yt-dlp
    ytdlp_path: str = Field(default="yt-dlp")
    ytdlp_timeout: int = Field(default=120, ge=10, le=600)
    ytdlp_skip_tls_verify: bool = False

    # Audio proxy
    proxy_timeout: int = Field(default=30, ge=5, le=300)
    proxy_chunk_size: int = Field(default=64 * 1024, ge=4 * 1024, le=4 * 1024 * 1024)
    proxy_block_private_networks: bool = True

    # Security
    dns_cache_ttl: int = Field(default=30, ge=5, le=3600)


# In-memory cached settings
_cached_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get current settings (cached in memory)."""
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = load_settings()
    return _cached_settings


def load_settings() -> Settings:
    """Build settings from the values read by config at startup."""
    settings = Settings(
        ytdlp_path=config.YTDLP_PATH,
        ytdlp_timeout=config.YTDLP_TIMEOUT,
        ytdlp_skip_tls_verify=config.YTDLP_SKIP_TLS_VERIFY,
        proxy_timeout=config.PROXY_TIMEOUT,
        proxy_block_private_networks=config.PROXY_BLOCK_PRIVATE_NETWORKS,
    )
    logger.debug(f"Settings loaded: {settings.model_dump()}")
    return settings


def invalidate_cache() -> None:
    """Force a rebuild from config on next access."""
    global _cached_settings
    _cached_settings = None
