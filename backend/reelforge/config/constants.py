"""
Constants configuration

API settings, CORS configuration, and pipeline tuning constants.
"""

# API settings
API_TITLE = "ReelForge API"
API_DESCRIPTION = "Generate captioned short-form reels from a topic idea"
API_VERSION = "1.0.0"

# CORS origins
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:5173",
]

# Voiceover upload settings
ALLOWED_AUDIO_MIME_TYPES = [
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/mp4",
    "audio/x-m4a",
    "audio/aac",
    "audio/ogg",
    "audio/webm",
]

ALLOWED_AUDIO_EXTENSIONS = [".mp3", ".wav", ".m4a", ".aac", ".ogg", ".webm"]

# Alignment
MIN_SCENE_DURATION = 0.5          # Floor for zero-word scenes (seconds)
CAPTION_WORDS_PER_GROUP = 5       # Words per script-driven caption span
MIN_MATCH_RATIO = 0.5             # Fraction of scene tokens that must match the transcript

# Captions
CAPTION_WORDS_PER_BLOCK = 5       # Word cap for one burned-in SRT block

# Timeline
PENDING_IMAGE_PROMPT = "pending"

# Output resolution per aspect ratio
ASPECT_RATIO_DIMENSIONS = {
    "9:16": (1080, 1920),
    "16:9": (1920, 1080),
    "1:1": (1080, 1080),
}
DEFAULT_ASPECT_RATIO = "9:16"

# Encoder settings
OUTPUT_FPS = 30
VIDEO_CODEC = "libx264"
VIDEO_PRESET = "veryfast"
VIDEO_CRF = 23
PIXEL_FORMAT = "yuv420p"
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "192k"
KEN_BURNS_MAX_ZOOM = 1.2
ENCODER_STDERR_TAIL_LINES = 12

# Burned-in subtitle style (ASS force_style keys)
SUBTITLE_STYLE = {
    "FontName": "Arial",
    "FontSize": 14,
    "Bold": 1,
    "PrimaryColour": "&H00FFFFFF",
    "OutlineColour": "&H00000000",
    "BorderStyle": 1,
    "Outline": 2,
    "Shadow": 0,
    "Alignment": 2,
    "MarginV": 60,
}

__all__ = [
    "API_TITLE",
    "API_DESCRIPTION",
    "API_VERSION",
    "CORS_ORIGINS",
    "ALLOWED_AUDIO_MIME_TYPES",
    "ALLOWED_AUDIO_EXTENSIONS",
    "MIN_SCENE_DURATION",
    "CAPTION_WORDS_PER_GROUP",
    "MIN_MATCH_RATIO",
    "CAPTION_WORDS_PER_BLOCK",
    "PENDING_IMAGE_PROMPT",
    "ASPECT_RATIO_DIMENSIONS",
    "DEFAULT_ASPECT_RATIO",
    "OUTPUT_FPS",
    "VIDEO_CODEC",
    "VIDEO_PRESET",
    "VIDEO_CRF",
    "PIXEL_FORMAT",
    "AUDIO_CODEC",
    "AUDIO_BITRATE",
    "KEN_BURNS_MAX_ZOOM",
    "ENCODER_STDERR_TAIL_LINES",
    "SUBTITLE_STYLE",
]
