"""
Subtitle generation
"""

from .formatter import (
    CaptionBlock,
    CaptionScene,
    build_caption_blocks,
    format_srt,
    format_timestamp,
    write_srt,
)

__all__ = [
    "CaptionBlock",
    "CaptionScene",
    "build_caption_blocks",
    "format_srt",
    "format_timestamp",
    "write_srt",
]
