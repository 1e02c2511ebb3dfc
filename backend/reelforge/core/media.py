"""
Media utilities - duration probing for uploaded voiceovers
"""

import asyncio
from typing import Optional

from ..config import FFPROBE_PATH
from .logging import get_logger

logger = get_logger(__name__, component="media")


async def get_media_duration(file_path: str, timeout: float = 30.0) -> Optional[float]:
    """Get duration of a media file in seconds using ffprobe

    Args:
        file_path: Path to media file
        timeout: Seconds to wait for ffprobe

    Returns:
        Duration in seconds, or None if it could not be measured
    """
    cmd = [
        FFPROBE_PATH,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        file_path
    ]

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except (OSError, asyncio.TimeoutError) as e:
        logger.warning("ffprobe failed", extra={"path": file_path, "error": str(e)})
        return None

    try:
        duration = float(stdout.decode().strip())
    except ValueError:
        logger.warning("ffprobe returned no duration", extra={"path": file_path})
        return None

    return duration if duration > 0 else None
