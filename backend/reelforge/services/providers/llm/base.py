"""
Base classes for text-generation providers

Defines the abstract interface that all LLM backends implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ....config import LLMProviderType

ProviderType = LLMProviderType


@dataclass
class LLMConfig:
    """Configuration for an LLM request"""
    model: str
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    json_output: bool = False  # Ask the backend for a bare JSON document
    system_instruction: Optional[str] = None

    # Provider-specific options
    extra_options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UsageStats:
    """Token usage statistics"""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if self.total_tokens == 0:
            self.total_tokens = self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Unified response from any LLM provider"""
    text: str
    model: str
    provider: ProviderType
    usage: Optional[UsageStats] = None
    raw_response: Any = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers

    Implementations raise ProviderError for transport and API failures so
    callers never see SDK- or httpx-specific exceptions.
    """

    provider_type: ProviderType

    @abstractmethod
    async def generate(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        """Generate a response from the LLM

        Args:
            prompt: The prompt text
            config: LLM configuration options

        Returns:
            LLMResponse with the generated text and metadata
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured well enough to be called"""
        pass

    @abstractmethod
    def list_models(self) -> List[str]:
        pass

    @property
    def name(self) -> str:
        return self.provider_type.value
