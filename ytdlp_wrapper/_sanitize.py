"""YtDlpError, video ID and URL validation."""

import logging
import re
import urllib.parse

logger = logging.getLogger(__name__)

# YouTube video IDs are 11 characters: alphanumeric, dash, underscore
VIDEO_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{11}$")

# Watch URLs in the two accepted shapes (youtube.com/watch?v= and youtu.be/)
YOUTUBE_URL_PATTERN = re.compile(
    r"^(https?://)?(www\.)?(youtube\.com/watch\?v=|youtu\.be/)([a-zA-Z0-9_-]{11})$"
)


class YtDlpError(Exception):
    """Error from yt-dlp execution."""

    pass


class NoAudioFormatError(YtDlpError):
    """yt-dlp returned no audio-only format for the video."""

    def __init__(self, message: str = "No audio format found"):
        super().__init__(message)


def is_valid_video_id(video_id: str) -> bool:
    return bool(VIDEO_ID_PATTERN.match(video_id))


def is_valid_youtube_url(url: str) -> bool:
    """Check for a plain youtube.com/watch?v= or youtu.be/ URL.

    Extra query parameters (playlists, timestamps) are not accepted.
    """
    return bool(YOUTUBE_URL_PATTERN.match(url))


def resolve_video_url(query: str) -> str:
    """Turn a video ID or watch URL into the URL handed to yt-dlp.

    Raises:
        ValueError: If query is neither a watch URL nor a video ID
    """
    if is_valid_youtube_url(query):
        if not query.startswith(("http://", "https://")):
            # run_ytdlp only places arguments with a scheme after "--"
            return f"https://{query}"
        return query
    if is_valid_video_id(query):
        return f"https://www.youtube.com/watch?v={query}"
    raise ValueError("Invalid YouTube URL or video ID")


def is_valid_url(url: str) -> bool:
    """Validate URL for fetching (basic security check).

    Rejects:
    - Non http/https schemes
    - URLs without a host
    - URLs starting with '-' (command injection prevention)
    """
    try:
        if url.startswith("-"):
            return False
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return False
        if not parsed.netloc:
            return False
        return True
    except (ValueError, AttributeError):
        return False


def is_safe_url(url: str) -> bool:
    """Check if URL is safe from SSRF attacks, resolving DNS.

    Returns:
        True if URL is safe, False if it targets restricted resources
    """
    from security import is_safe_url_strict

    is_safe, reason = is_safe_url_strict(url, resolve_dns=True)
    if not is_safe:
        logger.warning(f"SSRF blocked: {url} - {reason}")
    return is_safe
