"""
Ollama LLM Provider

Implementation of LLMProvider for self-hosted models via Ollama.
"""

from typing import Any, Dict, List, Optional

import httpx

from ....config import PROVIDER_TIMEOUTS, DEFAULT_OLLAMA_GENERAL
from ....core import ProviderError, ProviderTimeoutError, get_logger
from .base import (
    LLMProvider,
    LLMResponse,
    LLMConfig,
    ProviderType,
    UsageStats,
)

logger = get_logger(__name__, component="ollama_provider")


class OllamaProvider(LLMProvider):
    """Ollama LLM Provider for local or workspace-hosted models"""

    provider_type = ProviderType.OLLAMA

    RECOMMENDED_MODELS = [
        "gemma3:12b",
        "gemma3:4b",
        "llama3.3:70b",
        "mistral:7b",
    ]

    DEFAULT_MODEL = DEFAULT_OLLAMA_GENERAL

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        """Initialize Ollama provider

        Args:
            base_url: Ollama server URL (the "credential" for this backend)
            timeout: Request timeout in seconds
        """
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout or PROVIDER_TIMEOUTS.llm
        self._available_models: Optional[List[str]] = None

    def is_available(self) -> bool:
        return bool(self.base_url)

    def list_models(self) -> List[str]:
        if self._available_models is not None:
            return self._available_models

        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.get(f"{self.base_url}/api/tags")
                response.raise_for_status()
                self._available_models = [m["name"] for m in response.json().get("models", [])]
                return self._available_models
        except httpx.HTTPError as e:
            logger.warning("Failed to list Ollama models", extra={"error": str(e)})

        return self.RECOMMENDED_MODELS

    def _resolve_model(self, model: str) -> str:
        # Step configs name Gemini models; the local default stands in for them
        if model.startswith("gemini"):
            return self.DEFAULT_MODEL
        return model

    def _build_options(self, config: LLMConfig) -> Optional[Dict[str, Any]]:
        options: Dict[str, Any] = {}
        if config.temperature is not None:
            options["temperature"] = config.temperature
        if config.max_tokens:
            options["num_predict"] = config.max_tokens
        options.update(config.extra_options)
        return options or None

    def _parse_response(self, data: Dict[str, Any], model: str) -> LLMResponse:
        usage = None
        if "prompt_eval_count" in data or "eval_count" in data:
            usage = UsageStats(
                input_tokens=data.get("prompt_eval_count", 0),
                output_tokens=data.get("eval_count", 0),
            )

        return LLMResponse(
            text=data.get("response", "").strip(),
            model=model,
            provider=self.provider_type,
            usage=usage,
            raw_response=data,
        )

    async def generate(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        config = config or LLMConfig(model=self.DEFAULT_MODEL)
        model = self._resolve_model(config.model)

        payload: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
        }
        options = self._build_options(config)
        if options:
            payload["options"] = options
        if config.system_instruction:
            payload["system"] = config.system_instruction
        if config.json_output:
            payload["format"] = "json"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Ollama request timed out after {self.timeout:.0f}s", backend=self.name) from e
        except httpx.HTTPError as e:
            logger.error("Ollama request failed", extra={"model": model, "error": str(e)})
            raise ProviderError(f"Ollama request failed: {e}", backend=self.name) from e

        return self._parse_response(data, model)
