"""
Capability providers

Swappable backends for the pipeline's external capabilities: text generation
(script, research, image prompts, hashtags), image acquisition, scene video
clips and transcription.
"""

from .credentials import (
    Backend,
    CredentialStore,
    StaticCredentialStore,
    EnvCredentialStore,
    ChainedCredentialStore,
)
from .images import (
    AcquiredImage,
    ImageBackend,
    ImageProvider,
    PexelsImageProvider,
    SegmindImageProvider,
    acquire_scene_image,
    dimensions_for,
    missing_image_credential,
    parse_image_backend,
)
from .research import PerplexitySearch, ResearchResult, ResearchService
from .transcription import AssemblyAITranscriber
from .video import ReplicateVideoProvider, SUPPORTED_RESOLUTIONS
from .writing import (
    HashtagGenerator,
    ImagePrompt,
    ImagePromptGenerator,
    ScriptGenerator,
    fallback_image_prompt,
)
from .registry import ProviderRegistry, get_provider_registry

__all__ = [
    "Backend",
    "CredentialStore",
    "StaticCredentialStore",
    "EnvCredentialStore",
    "ChainedCredentialStore",
    "AcquiredImage",
    "ImageBackend",
    "ImageProvider",
    "PexelsImageProvider",
    "SegmindImageProvider",
    "acquire_scene_image",
    "dimensions_for",
    "missing_image_credential",
    "parse_image_backend",
    "PerplexitySearch",
    "ResearchResult",
    "ResearchService",
    "AssemblyAITranscriber",
    "ReplicateVideoProvider",
    "SUPPORTED_RESOLUTIONS",
    "HashtagGenerator",
    "ImagePrompt",
    "ImagePromptGenerator",
    "ScriptGenerator",
    "fallback_image_prompt",
    "ProviderRegistry",
    "get_provider_registry",
]
