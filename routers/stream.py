"""Audio stream resolver endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response

from models import AudioStreamResponse
from ytdlp_wrapper import NoAudioFormatError, YtDlpError, get_audio_stream, resolve_video_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


@router.get("/stream", response_model=AudioStreamResponse)
async def resolve_stream(
    response: Response,
    video: Optional[str] = Query(None, description="YouTube video ID or watch URL"),
):
    """Resolve a video to a direct audio-only stream URL.

    Accepts an 11-character video ID or a youtube.com/watch?v= / youtu.be/
    URL. The returned URL points at the video host's CDN and expires after
    a few hours; clients that need CORS-safe playback can pass it to
    /api/proxy.
    """
    if not video:
        raise HTTPException(status_code=400, detail="Video parameter is required")

    try:
        video_url = resolve_video_url(video)
    except ValueError as e:
        logger.warning(f"[Stream] Rejected input: {video!r} - {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = await get_audio_stream(video_url)
    except NoAudioFormatError as e:
        logger.warning(f"[Stream] No audio format: {video}")
        raise HTTPException(status_code=404, detail=str(e))
    except YtDlpError as e:
        logger.error(f"[Stream] yt-dlp error: {video} - {e}")
        raise HTTPException(status_code=502, detail=str(e))

    logger.info(f"[Stream] Resolved {video}: {result['title']!r} ({result['contentType']})")

    response.headers["Access-Control-Allow-Origin"] = "*"
    return result
