"""
Gemini LLM Provider

Implementation of LLMProvider for Google's Gemini models.
"""

import asyncio
from typing import Any, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ....config import PROVIDER_TIMEOUTS
from ....core import ProviderError, ProviderTimeoutError, get_logger
from .base import (
    LLMProvider,
    LLMResponse,
    LLMConfig,
    ProviderType,
    UsageStats,
)

logger = get_logger(__name__, component="gemini_provider")


class GeminiProvider(LLMProvider):
    """Google Gemini LLM Provider"""

    provider_type = ProviderType.GEMINI

    AVAILABLE_MODELS = [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-flash-lite-latest",
        "gemini-2.0-flash",
    ]

    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(self, api_key: str, timeout: Optional[float] = None):
        """Initialize Gemini provider

        Args:
            api_key: Gemini API key of the calling user or the server
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.timeout = timeout or PROVIDER_TIMEOUTS.llm
        self.client = None
        if self.api_key:
            self.client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )

    def is_available(self) -> bool:
        return self.client is not None

    def list_models(self) -> List[str]:
        return self.AVAILABLE_MODELS.copy()

    def _build_generation_config(self, config: LLMConfig) -> Optional[Any]:
        kwargs = {}

        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if config.max_tokens:
            kwargs["max_output_tokens"] = config.max_tokens
        if config.json_output:
            kwargs["response_mime_type"] = "application/json"
        if config.system_instruction:
            kwargs["system_instruction"] = config.system_instruction

        if kwargs:
            return types.GenerateContentConfig(**kwargs)
        return None

    def _extract_usage(self, response: Any) -> Optional[UsageStats]:
        usage = getattr(response, "usage_metadata", None)
        if not usage:
            return None
        return UsageStats(
            input_tokens=getattr(usage, "prompt_token_count", 0) or 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) or 0,
        )

    async def generate(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        if not self.is_available():
            raise ProviderError("Gemini provider is not available. Check API key.", backend=self.name)

        config = config or LLMConfig(model=self.DEFAULT_MODEL)
        request_kwargs = {
            "model": config.model,
            "contents": prompt,
        }
        generation_config = self._build_generation_config(config)
        if generation_config:
            request_kwargs["config"] = generation_config

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                **request_kwargs
            )
        except genai_errors.APIError as e:
            logger.error("Gemini request failed", extra={"model": config.model, "error": str(e)})
            raise ProviderError(f"Gemini request failed: {e}", backend=self.name) from e
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Gemini request timed out after {self.timeout:.0f}s", backend=self.name) from e
        except httpx.HTTPError as e:
            logger.error("Gemini transport failed", extra={"model": config.model, "error": str(e)})
            raise ProviderError(f"Gemini request failed: {e}", backend=self.name) from e

        return LLMResponse(
            text=response.text.strip() if response.text else "",
            model=config.model,
            provider=self.provider_type,
            usage=self._extract_usage(response),
            raw_response=response,
        )
