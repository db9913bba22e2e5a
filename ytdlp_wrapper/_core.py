"""Core yt-dlp execution: run_ytdlp() and argument processing."""

import asyncio
import logging
from typing import List, Optional, Tuple

from security import sanitize_command_for_logging
from settings import get_settings
from ytdlp_wrapper._sanitize import YtDlpError, is_valid_url

logger = logging.getLogger(__name__)


def _separate_flags_and_urls(args: tuple) -> Tuple[List[str], List[str]]:
    """Separate yt-dlp arguments into flags and URLs.

    Returns:
        Tuple of (flags_list, urls_list)
    """
    flags = []
    urls = []
    for arg in args:
        if isinstance(arg, str) and (arg.startswith("http://") or arg.startswith("https://")):
            urls.append(arg)
        else:
            flags.append(arg)
    return flags, urls


async def run_ytdlp(*args: str, timeout: Optional[int] = None) -> str:
    """Run yt-dlp with given arguments and return stdout.

    URLs are separated from flags and placed after '--' so a URL
    starting with '-' can never be parsed as an option.

    Args:
        *args: yt-dlp arguments
        timeout: Optional timeout in seconds (defaults to ytdlp_timeout)

    Returns:
        stdout from yt-dlp

    Raises:
        ValueError: If any URL argument is malformed
        YtDlpError: On timeout or non-zero exit
    """
    s = get_settings()
    timeout = timeout or s.ytdlp_timeout

    flags, urls = _separate_flags_and_urls(args)

    for u in urls:
        if not is_valid_url(u):
            raise ValueError(f"Invalid URL format: {u}")

    all_args = list(flags)
    if urls:
        all_args.append("--")
        all_args.extend(urls)

    url = urls[0] if urls else None
    logger.debug(f"Running: {sanitize_command_for_logging([s.ytdlp_path, *all_args])}")

    try:
        proc = await asyncio.create_subprocess_exec(
            s.ytdlp_path, *all_args, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        logger.error(f"Could not start yt-dlp at {s.ytdlp_path}: {e}")
        raise YtDlpError(f"yt-dlp could not be started: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error(f"yt-dlp timed out after {timeout}s for URL: {url}")
        raise YtDlpError(f"yt-dlp timed out after {timeout} seconds")

    if proc.returncode != 0:
        error_msg = stderr.decode(errors="replace").strip() if stderr else "Unknown error"
        logger.error(f"yt-dlp failed (exit code {proc.returncode}) for URL: {url}")
        logger.error(f"yt-dlp stderr: {error_msg}")
        raise YtDlpError(f"yt-dlp failed: {error_msg}")

    logger.debug(f"yt-dlp succeeded for URL: {url}")

    return stdout.decode(errors="replace")

