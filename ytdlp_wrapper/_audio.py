"""Audio stream resolution: extract formats and pick the best audio-only one."""

import json
import logging
from typing import List, Optional

from settings import get_settings
from ytdlp_wrapper._core import run_ytdlp
from ytdlp_wrapper._sanitize import NoAudioFormatError, YtDlpError, resolve_video_url

logger = logging.getLogger(__name__)


def is_audio_only(fmt: dict) -> bool:
    """True for formats with an audio codec and no video codec."""
    return fmt.get("acodec") != "none" and fmt.get("vcodec") == "none"


def select_audio_format(formats: List[dict]) -> Optional[dict]:
    """Pick the audio-only format with the highest average bitrate.

    Formats without a URL are skipped. A missing abr ranks as 0 and
    ties keep yt-dlp's original order.
    """
    candidates = [f for f in formats if is_audio_only(f) and f.get("url")]
    if not candidates:
        return None
    return sorted(candidates, key=lambda f: f.get("abr") or 0, reverse=True)[0]


def audio_content_type(fmt: dict) -> str:
    """MIME type advertised for a chosen audio format."""
    return "audio/ogg" if fmt.get("acodec") == "opus" else "audio/mp4"


async def get_audio_info(video_url: str) -> dict:
    """Run yt-dlp for a single video and return its info dict."""
    ytdlp_args = [
        "-J",
        "--no-download",
        "--no-warnings",
        "--no-playlist",
        "--prefer-free-formats",
        "--extractor-args",
        "youtube:skip=dash",
    ]
    if get_settings().ytdlp_skip_tls_verify:
        ytdlp_args.append("--no-check-certificates")
    ytdlp_args.extend([
        "--remote-components",
        "ejs:github",  # Required for YouTube JS challenge solving
    ])

    stdout = await run_ytdlp(*ytdlp_args, video_url)

    try:
        info = json.loads(stdout)
    except json.JSONDecodeError as e:
        logger.error(f"Unparseable yt-dlp output for {video_url}: {e}")
        raise YtDlpError("Invalid response from yt-dlp") from e

    if not isinstance(info, dict):
        raise YtDlpError("Invalid response from yt-dlp")
    return info


async def get_audio_stream(query: str) -> dict:
    """Resolve a video ID or watch URL to its best direct audio stream.

    Args:
        query: 11-character video ID or youtube.com / youtu.be watch URL

    Returns:
        Dict with 'url', 'title' and 'contentType'

    Raises:
        ValueError: If query is not a video ID or watch URL
        NoAudioFormatError: If yt-dlp lists no usable audio-only format
        YtDlpError: If extraction fails
    """
    video_url = resolve_video_url(query)
    info = await get_audio_info(video_url)

    fmt = select_audio_format(info.get("formats") or [])
    if fmt is None:
        raise NoAudioFormatError()

    logger.debug(
        f"Selected format {fmt.get('format_id')} ({fmt.get('acodec')}, {fmt.get('abr')} kbps) for {video_url}"
    )

    return {
        "url": fmt["url"],
        "title": info.get("title"),
        "contentType": audio_content_type(fmt),
    }
