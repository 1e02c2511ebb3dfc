import json

import httpx
import pytest

from reelforge.core import ProviderError
from reelforge.services.providers import PerplexitySearch, ResearchService

REFERENCES = json.dumps([
    {"title": "All About Coffee", "url": "https://example.org/coffee", "snippet": "Classic history"},
    {"url": "https://example.org/untitled"},
])


class TestResearchService:
    @pytest.mark.asyncio
    async def test_references_synthesis_keywords(self, fake_llm):
        llm = fake_llm([REFERENCES, "Coffee spread from Ethiopia to Yemen.", '["coffee", " ethiopia ", ""]'])

        result = await ResearchService(llm).perform_research("history of coffee")

        assert result.summary == "Coffee spread from Ethiopia to Yemen."
        assert result.keywords == ["coffee", "ethiopia"]
        assert [s.title for s in result.sources] == ["All About Coffee"]
        assert "All About Coffee" in llm.prompts[1]

    @pytest.mark.asyncio
    async def test_synthesis_failure_uses_raw_material(self, fake_llm):
        llm = fake_llm([REFERENCES, ProviderError("synthesis down"), "[]"])

        result = await ResearchService(llm).perform_research("history of coffee")

        assert result.summary.startswith("[references]")
        assert "All About Coffee: Classic history" in result.summary

    @pytest.mark.asyncio
    async def test_keyword_failure_is_not_fatal(self, fake_llm):
        llm = fake_llm([REFERENCES, "Summary", ProviderError("down")])
        result = await ResearchService(llm).perform_research("coffee")
        assert result.keywords == []

    @pytest.mark.asyncio
    async def test_nothing_usable_raises(self, fake_llm):
        llm = fake_llm([ProviderError("lookup down"), ProviderError("synthesis down")])
        with pytest.raises(ProviderError, match="no usable summary"):
            await ResearchService(llm).perform_research("coffee")

    @pytest.mark.asyncio
    async def test_web_search_contributes_sources(self, fake_llm, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer pplx"
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "  Coffee was first cultivated in Yemen.  "}}],
                "citations": ["https://example.org/yemen"],
            })

        mock_http(handler)
        llm = fake_llm(["[]", "Summary with web facts", '["yemen"]'])

        result = await ResearchService(llm, web_search=PerplexitySearch("pplx")).perform_research("coffee")

        assert result.summary == "Summary with web facts"
        assert [s.url for s in result.sources] == ["https://example.org/yemen"]
        assert "Coffee was first cultivated in Yemen." in llm.prompts[1]

    @pytest.mark.asyncio
    async def test_failed_web_search_is_skipped(self, fake_llm, mock_http):
        mock_http(lambda request: httpx.Response(500, json={"error": "boom"}))
        llm = fake_llm([REFERENCES, "Summary", "[]"])

        result = await ResearchService(llm, web_search=PerplexitySearch("pplx")).perform_research("coffee")

        assert result.summary == "Summary"
        assert [s.title for s in result.sources] == ["All About Coffee"]
