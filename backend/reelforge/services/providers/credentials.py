"""
Credential lookup for capability providers

Per-user API keys are owned by the external key store; server-level keys come
from the environment. Stage operations receive a CredentialStore per call and
only ever ask "is there a credential for backend X, and what is it".
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Sequence


class Backend:
    """Credential names for every external backend"""
    GEMINI = "gemini"
    OLLAMA = "ollama"
    PERPLEXITY = "perplexity"
    SEGMIND = "segmind"
    PEXELS = "pexels"
    REPLICATE = "replicate"
    ASSEMBLYAI = "assemblyai"


ENV_CREDENTIALS: Dict[str, str] = {
    Backend.GEMINI: "GEMINI_API_KEY",
    Backend.OLLAMA: "OLLAMA_HOST",
    Backend.PERPLEXITY: "PERPLEXITY_API_KEY",
    Backend.SEGMIND: "SEGMIND_API_KEY",
    Backend.PEXELS: "PEXELS_API_KEY",
    Backend.REPLICATE: "REPLICATE_API_TOKEN",
    Backend.ASSEMBLYAI: "ASSEMBLYAI_API_KEY",
}


class CredentialStore(ABC):
    """Read-only view of the credentials available to one caller"""

    @abstractmethod
    def get(self, backend: str) -> Optional[str]:
        pass

    def has(self, backend: str) -> bool:
        value = self.get(backend)
        return bool(value and value.strip())


class StaticCredentialStore(CredentialStore):
    """Credentials handed over by the caller, e.g. a user's decrypted keys."""

    def __init__(self, credentials: Optional[Mapping[str, Optional[str]]] = None):
        self._credentials = {k: v for k, v in (credentials or {}).items() if v}

    def get(self, backend: str) -> Optional[str]:
        return self._credentials.get(backend)


class EnvCredentialStore(CredentialStore):
    """Server-level credentials read from the environment at lookup time."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._mapping = dict(mapping or ENV_CREDENTIALS)

    def get(self, backend: str) -> Optional[str]:
        env_name = self._mapping.get(backend)
        if not env_name:
            return None
        return os.getenv(env_name) or None


class ChainedCredentialStore(CredentialStore):
    """First store with a credential wins (user keys before server keys)."""

    def __init__(self, stores: Sequence[CredentialStore]):
        self._stores = list(stores)

    def get(self, backend: str) -> Optional[str]:
        for store in self._stores:
            value = store.get(backend)
            if value:
                return value
        return None
