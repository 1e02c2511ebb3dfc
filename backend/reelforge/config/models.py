"""
Model and provider configuration for pipeline steps

Each text-generation step has its own model configuration so the models can be
tuned independently. Every step names a Gemini model and the Ollama model used
when the project falls back to a local backend.

Timeouts for the external capability providers live here as well. Polling
providers (transcription, image-to-video) also get a cap on the number of polls
so a stuck job ends in a timeout error instead of looping forever.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LLMProviderType(str, Enum):
    """Supported text-generation backends"""
    GEMINI = "gemini"
    OLLAMA = "ollama"


# Order in which text backends are tried when the caller does not pick one
TEXT_BACKEND_PREFERENCE = [LLMProviderType.GEMINI, LLMProviderType.OLLAMA]

DEFAULT_OLLAMA_GENERAL = "gemma3:12b"


@dataclass
class ModelConfig:
    """Configuration for a single text-generation step"""
    model_name: str  # Gemini model name
    ollama_model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    description: str = ""

    def get_model_for_provider(self, provider: LLMProviderType) -> str:
        """Get the model name to send to the given backend"""
        if provider == LLMProviderType.OLLAMA:
            return self.ollama_model or DEFAULT_OLLAMA_GENERAL
        return self.model_name


@dataclass
class PipelineModels:
    """
    Model configuration for each text step of the reel pipeline.

    Pipeline Steps:
    1. Reference lookup - Recall books/articles relevant to the topic
    2. Research synthesis - Merge lookups into a narration-ready summary
    3. Keyword extraction - Pull keywords out of the research summary
    4. Script generation - Draft the scene-by-scene narration
    5. Image prompts - Turn visual descriptions into image prompts
    6. Hashtags - Social tags for the finished reel
    """

    reference_lookup: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-flash",
        temperature=0.3,
        description="Reference search for the topic"
    ))

    research_synthesis: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-flash",
        temperature=0.4,
        description="Summarize research sources"
    ))

    keyword_extraction: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        ollama_model="gemma3:4b",
        temperature=0.2,
        description="Extract research keywords"
    ))

    script_generation: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-pro",
        temperature=0.8,
        description="Write reel narration scripts"
    ))

    image_prompts: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-flash",
        temperature=0.7,
        description="Generate per-scene image prompts"
    ))

    hashtags: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        ollama_model="gemma3:4b",
        temperature=0.7,
        description="Generate social hashtags"
    ))


DEFAULT_PIPELINE_MODELS = PipelineModels()
ACTIVE_PIPELINE = DEFAULT_PIPELINE_MODELS


def get_model_config(step: str) -> ModelConfig:
    """Get the model configuration for a pipeline step

    Raises:
        ValueError: If the step is unknown
    """
    if not hasattr(ACTIVE_PIPELINE, step):
        raise ValueError(f"Unknown pipeline step: {step}")
    return getattr(ACTIVE_PIPELINE, step)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(float(raw), 1.0)
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


@dataclass
class ProviderTimeouts:
    """HTTP timeouts and polling caps for capability providers (seconds)"""
    llm: float = field(default_factory=lambda: _env_float("LLM_TIMEOUT_SECONDS", 120.0))
    web_search: float = field(default_factory=lambda: _env_float("WEB_SEARCH_TIMEOUT_SECONDS", 60.0))
    image_generation: float = field(default_factory=lambda: _env_float("IMAGE_GENERATION_TIMEOUT_SECONDS", 120.0))
    image_download: float = field(default_factory=lambda: _env_float("IMAGE_DOWNLOAD_TIMEOUT_SECONDS", 30.0))
    transcription_request: float = 60.0
    transcription_poll_interval: float = 2.0
    transcription_max_polls: int = field(default_factory=lambda: _env_int("TRANSCRIPTION_MAX_POLLS", 120, 1))
    video_request: float = 60.0
    video_poll_interval: float = 5.0
    video_max_polls: int = field(default_factory=lambda: _env_int("SCENE_VIDEO_MAX_POLLS", 120, 1))


PROVIDER_TIMEOUTS = ProviderTimeouts()


__all__ = [
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
]
