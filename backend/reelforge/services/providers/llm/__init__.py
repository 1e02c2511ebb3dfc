"""
Text-generation backends
"""

from .base import LLMConfig, LLMProvider, LLMResponse, ProviderType, UsageStats
from .gemini_provider import GeminiProvider
from .ollama_provider import OllamaProvider
from .factory import get_llm_provider, has_text_provider, parse_provider_type

__all__ = [
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "UsageStats",
    "GeminiProvider",
    "OllamaProvider",
    "get_llm_provider",
    "has_text_provider",
    "parse_provider_type",
]
