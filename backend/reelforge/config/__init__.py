"""
Application configuration and settings
"""

import os

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from .paths import (
    APP_DIR,
    BACKEND_DIR,
    UPLOAD_DIR,
    OUTPUT_DIR,
    PROJECT_DATA_DIR,
)
from .constants import *  # noqa: F401,F403
from .constants import __all__ as _constants_all
from .models import (
    LLMProviderType,
    TEXT_BACKEND_PREFERENCE,
    DEFAULT_OLLAMA_GENERAL,
    ModelConfig,
    PipelineModels,
    DEFAULT_PIPELINE_MODELS,
    ACTIVE_PIPELINE,
    get_model_config,
    ProviderTimeouts,
    PROVIDER_TIMEOUTS,
)

# External encoder binaries
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
FFPROBE_PATH = os.getenv("FFPROBE_PATH", "ffprobe")

# Voiceover upload limit
MAX_VOICEOVER_SIZE = int(os.getenv("MAX_VOICEOVER_SIZE", str(100 * 1024 * 1024)))  # 100MB default

__all__ = [
    "APP_DIR",
    "BACKEND_DIR",
    "UPLOAD_DIR",
    "OUTPUT_DIR",
    "PROJECT_DATA_DIR",
    "FFMPEG_PATH",
    "FFPROBE_PATH",
    "MAX_VOICEOVER_SIZE",
    "LLMProviderType",
    "TEXT_BACKEND_PREFERENCE",
    "DEFAULT_OLLAMA_GENERAL",
    "ModelConfig",
    "PipelineModels",
    "DEFAULT_PIPELINE_MODELS",
    "ACTIVE_PIPELINE",
    "get_model_config",
    "ProviderTimeouts",
    "PROVIDER_TIMEOUTS",
    *_constants_all,
]
