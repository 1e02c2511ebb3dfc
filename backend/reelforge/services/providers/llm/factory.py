"""
LLM Provider Factory

Resolves a text backend for one caller from the enumerated backends and the
caller's credentials.
"""

from typing import Callable, Dict, Optional, Union

from ....config import TEXT_BACKEND_PREFERENCE
from ....core import NoProviderAvailableError
from ..credentials import Backend, CredentialStore
from .base import LLMProvider, ProviderType
from .gemini_provider import GeminiProvider
from .ollama_provider import OllamaProvider


# Backend -> (credential name, constructor taking the credential)
_PROVIDER_TABLE: Dict[ProviderType, tuple[str, Callable[[str], LLMProvider]]] = {
    ProviderType.GEMINI: (Backend.GEMINI, lambda key: GeminiProvider(api_key=key)),
    ProviderType.OLLAMA: (Backend.OLLAMA, lambda host: OllamaProvider(base_url=host)),
}


def parse_provider_type(value: Union[str, ProviderType, None]) -> Optional[ProviderType]:
    """Parse a caller-supplied backend name.

    Raises:
        ValueError: If the name is not a known text backend
    """
    if value is None or value == "":
        return None
    if isinstance(value, ProviderType):
        return value
    try:
        return ProviderType(value.lower())
    except ValueError:
        raise ValueError(f"Unknown text backend: {value}")


def has_text_provider(credentials: CredentialStore) -> bool:
    return any(credentials.has(_PROVIDER_TABLE[p][0]) for p in TEXT_BACKEND_PREFERENCE)


def get_llm_provider(
    credentials: CredentialStore,
    provider_type: Union[str, ProviderType, None] = None,
) -> LLMProvider:
    """Get an LLM provider for the caller

    Args:
        credentials: Caller's credential store
        provider_type: Specific backend to use; otherwise the first backend in
            preference order that has a credential

    Raises:
        NoProviderAvailableError: If no usable backend is configured
    """
    requested = parse_provider_type(provider_type)
    candidates = [requested] if requested else list(TEXT_BACKEND_PREFERENCE)

    for candidate in candidates:
        credential_name, build = _PROVIDER_TABLE[candidate]
        credential = credentials.get(credential_name)
        if credential:
            return build(credential)

    if requested:
        raise NoProviderAvailableError(
            f"{requested.value.capitalize()} credentials required for text generation",
            backend=requested.value,
        )
    raise NoProviderAvailableError("LLM API key required (Gemini API key or Ollama host)")
