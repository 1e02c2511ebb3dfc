"""
Provider registry

Single place where stage operations obtain capability providers. Each lookup
takes the caller's CredentialStore, so nothing here holds per-tenant state.
Tests substitute the registry wholesale.
"""

from typing import Optional, Union

from ...config import ACTIVE_PIPELINE, PipelineModels
from ...core import NoProviderAvailableError
from .credentials import Backend, CredentialStore
from .images import ImageBackend, ImageProvider, get_image_provider
from .llm import LLMProvider, ProviderType, get_llm_provider, has_text_provider
from .research import PerplexitySearch, ResearchService
from .transcription import AssemblyAITranscriber
from .video import ReplicateVideoProvider
from .writing import HashtagGenerator, ImagePromptGenerator, ScriptGenerator

TextBackendChoice = Union[str, ProviderType, None]


class ProviderRegistry:
    def __init__(self, models: PipelineModels = ACTIVE_PIPELINE):
        self.models = models

    def text(self, credentials: CredentialStore, backend: TextBackendChoice = None) -> LLMProvider:
        return get_llm_provider(credentials, backend)

    def has_text(self, credentials: CredentialStore) -> bool:
        return has_text_provider(credentials)

    def script_generator(self, credentials: CredentialStore, backend: TextBackendChoice = None) -> ScriptGenerator:
        return ScriptGenerator(self.text(credentials, backend), self.models)

    def research(self, credentials: CredentialStore, backend: TextBackendChoice = None) -> ResearchService:
        web_search = None
        perplexity_key = credentials.get(Backend.PERPLEXITY)
        if perplexity_key:
            web_search = PerplexitySearch(perplexity_key)
        return ResearchService(self.text(credentials, backend), web_search, self.models)

    def image_prompts(self, credentials: CredentialStore, backend: TextBackendChoice = None) -> ImagePromptGenerator:
        return ImagePromptGenerator(self.text(credentials, backend), self.models)

    def hashtags(self, credentials: CredentialStore) -> Optional[HashtagGenerator]:
        if not self.has_text(credentials):
            return None
        return HashtagGenerator(self.text(credentials), self.models)

    def image(self, backend: ImageBackend, credentials: CredentialStore) -> ImageProvider:
        return get_image_provider(backend, credentials)

    def scene_video(self, credentials: CredentialStore) -> ReplicateVideoProvider:
        token = credentials.get(Backend.REPLICATE)
        if not token:
            raise NoProviderAvailableError("Replicate API token required for scene video generation", backend=Backend.REPLICATE)
        return ReplicateVideoProvider(token)

    def transcriber(self, credentials: CredentialStore) -> Optional[AssemblyAITranscriber]:
        api_key = credentials.get(Backend.ASSEMBLYAI)
        return AssemblyAITranscriber(api_key) if api_key else None


_registry_instance: Optional[ProviderRegistry] = None


def get_provider_registry() -> ProviderRegistry:
    """Get the shared ProviderRegistry instance (singleton pattern)."""
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = ProviderRegistry()
    return _registry_instance
