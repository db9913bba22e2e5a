"""Async wrapper for yt-dlp subprocess execution."""

from ytdlp_wrapper._audio import (
    audio_content_type,
    get_audio_info,
    get_audio_stream,
    is_audio_only,
    select_audio_format,
)
from ytdlp_wrapper._core import run_ytdlp
from ytdlp_wrapper._sanitize import (
    NoAudioFormatError,
    YtDlpError,
    is_safe_url,
    is_valid_url,
    is_valid_video_id,
    is_valid_youtube_url,
    resolve_video_url,
)

__all__ = [
    # _sanitize
    "YtDlpError",
    "NoAudioFormatError",
    "is_valid_video_id",
    "is_valid_youtube_url",
    "resolve_video_url",
    "is_valid_url",
    "is_safe_url",
    # _core
    "run_ytdlp",
    # _audio
    "is_audio_only",
    "select_audio_format",
    "audio_content_type",
    "get_audio_info",
    "get_audio_stream",
]
