"""
Research capability

Runs independent lookups concurrently (web search, reference search), keeps
whatever succeeded and has the text backend condense it into a summary and
keywords. A single failing lookup never fails the research stage.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, List, Optional

import httpx

from ...config import ACTIVE_PIPELINE, PROVIDER_TIMEOUTS, PipelineModels
from ...core import ProviderError, ProviderTimeoutError, get_logger
from ...models import ResearchSource
from . import prompts
from .llm import LLMConfig, LLMProvider
from .parsing import parse_json_array, response_json

logger = get_logger(__name__, component="research")


@dataclass
class LookupResult:
    name: str
    text: str
    sources: List[ResearchSource] = field(default_factory=list)


@dataclass
class ResearchResult:
    summary: str
    keywords: List[str] = field(default_factory=list)
    sources: List[ResearchSource] = field(default_factory=list)


class PerplexitySearch:
    """Web search through Perplexity's online chat-completions model"""

    API_URL = "https://api.perplexity.ai/chat/completions"
    MODEL = "sonar"

    def __init__(self, api_key: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.timeout = timeout or PROVIDER_TIMEOUTS.web_search

    async def search(self, topic: str) -> LookupResult:
        payload = {
            "model": self.MODEL,
            "messages": [{"role": "user", "content": prompts.WEB_SEARCH_PROMPT.format(topic=topic)}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.API_URL, json=payload, headers=headers)
                response.raise_for_status()
                data = response_json(response, "Web search", backend="perplexity")
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Web search timed out", backend="perplexity") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Web search failed: {e}", backend="perplexity") from e

        choices = data.get("choices") or []
        text = choices[0].get("message", {}).get("content", "") if choices else ""
        sources = [ResearchSource(title=url, url=url) for url in data.get("citations") or [] if isinstance(url, str)]
        return LookupResult(name="web", text=text.strip(), sources=sources)


class ReferenceLookup:
    """Book and article references recalled by the text backend"""

    def __init__(self, llm: LLMProvider, models: PipelineModels = ACTIVE_PIPELINE):
        self.llm = llm
        self.models = models

    async def search(self, topic: str) -> LookupResult:
        step = self.models.reference_lookup
        config = LLMConfig(
            model=step.get_model_for_provider(self.llm.provider_type),
            temperature=step.temperature,
            json_output=True,
        )
        response = await self.llm.generate(prompts.REFERENCE_LOOKUP_PROMPT.format(topic=topic), config)

        sources = []
        for item in parse_json_array(response.text):
            if isinstance(item, dict) and item.get("title"):
                sources.append(ResearchSource(
                    title=str(item["title"]),
                    url=item.get("url") or None,
                    snippet=item.get("snippet") or None,
                ))
        text = "\n".join(f"- {s.title}: {s.snippet or ''}".rstrip(": ") for s in sources)
        return LookupResult(name="references", text=text, sources=sources)


class ResearchService:
    """performResearch: concurrent lookups, then synthesis and keywords"""

    def __init__(
        self,
        llm: LLMProvider,
        web_search: Optional[PerplexitySearch] = None,
        models: PipelineModels = ACTIVE_PIPELINE,
    ):
        self.llm = llm
        self.web_search = web_search
        self.references = ReferenceLookup(llm, models)
        self.models = models

    async def _run_lookups(self, topic: str) -> List[LookupResult]:
        lookups: List[Awaitable[LookupResult]] = [self.references.search(topic)]
        if self.web_search is not None:
            lookups.insert(0, self.web_search.search(topic))

        results = await asyncio.gather(*lookups, return_exceptions=True)

        succeeded = []
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Research lookup failed", extra={"error": str(result)})
                continue
            succeeded.append(result)
        return succeeded

    async def _synthesize(self, topic: str, material: str) -> str:
        step = self.models.research_synthesis
        config = LLMConfig(model=step.get_model_for_provider(self.llm.provider_type), temperature=step.temperature)
        prompt = prompts.RESEARCH_SYNTHESIS_PROMPT.format(topic=topic, material=material or "(no lookups available)")
        response = await self.llm.generate(prompt, config)
        return response.text.strip()

    async def _extract_keywords(self, summary: str) -> List[str]:
        step = self.models.keyword_extraction
        config = LLMConfig(
            model=step.get_model_for_provider(self.llm.provider_type),
            temperature=step.temperature,
            json_output=True,
        )
        try:
            response = await self.llm.generate(prompts.KEYWORD_PROMPT.format(summary=summary), config)
            return [str(k).strip() for k in parse_json_array(response.text) if str(k).strip()]
        except ProviderError as e:
            logger.warning("Keyword extraction failed", extra={"error": str(e)})
            return []

    async def perform_research(self, topic: str) -> ResearchResult:
        """Research a topic.

        Raises:
            ProviderError: If no lookup or synthesis produced any text
        """
        lookups = await self._run_lookups(topic)
        material = "\n\n".join(f"[{r.name}]\n{r.text}" for r in lookups if r.text)
        sources = [source for r in lookups for source in r.sources]

        try:
            summary = await self._synthesize(topic, material)
        except ProviderError as e:
            logger.warning("Research synthesis failed, using raw lookups", extra={"error": str(e)})
            summary = material.strip()

        if not summary:
            raise ProviderError("Research produced no usable summary")

        keywords = await self._extract_keywords(summary)
        logger.info("Research complete", extra={
            "lookups": [r.name for r in lookups],
            "source_count": len(sources),
            "keyword_count": len(keywords),
        })
        return ResearchResult(summary=summary, keywords=keywords, sources=sources)
