"""
Timeline alignment and editing
"""

from .aligner import (
    align,
    caption_timeline,
    count_words,
    normalize_token,
    proportional_durations,
    script_captions,
    tokenize,
)
from .editing import insert_scene, new_scene, remove_scene, replace_scenes

__all__ = [
    "align",
    "caption_timeline",
    "count_words",
    "normalize_token",
    "proportional_durations",
    "script_captions",
    "tokenize",
    "insert_scene",
    "new_scene",
    "remove_scene",
    "replace_scenes",
]
