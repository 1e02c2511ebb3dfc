from pathlib import Path
from typing import Any, Callable, List, Optional, Union

import httpx
import pytest

from reelforge.models import Project, ScriptScene, Script, TimelineScene, Timeline
from reelforge.services.providers import StaticCredentialStore
from reelforge.services.providers.llm import LLMConfig, LLMProvider, LLMResponse, ProviderType

_REAL_ASYNC_CLIENT = httpx.AsyncClient


class FakeLLM(LLMProvider):
    """Text backend that replays canned responses in call order."""

    provider_type = ProviderType.GEMINI

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.configs: List[Optional[LLMConfig]] = []

    async def generate(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        self.prompts.append(prompt)
        self.configs.append(config)
        if not self.responses:
            raise AssertionError("FakeLLM ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return LLMResponse(text=response, model="fake", provider=self.provider_type)

    def is_available(self) -> bool:
        return True

    def list_models(self) -> List[str]:
        return ["fake"]


@pytest.fixture
def fake_llm() -> Callable[..., FakeLLM]:
    return FakeLLM


@pytest.fixture
def credentials() -> StaticCredentialStore:
    return StaticCredentialStore({
        "gemini": "gemini-key",
        "pexels": "pexels-key",
        "segmind": "segmind-key",
        "replicate": "replicate-token",
    })


@pytest.fixture
def mock_http(monkeypatch):
    """Route every httpx.AsyncClient through a MockTransport handler."""

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> None:
        def factory(*args: Any, **kwargs: Any) -> httpx.AsyncClient:
            kwargs["transport"] = httpx.MockTransport(handler)
            return _REAL_ASYNC_CLIENT(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", factory)

    return install


@pytest.fixture
def coffee_script() -> Script:
    """Four scenes of 10, 8, 12 and 10 words."""
    scenes = [
        ScriptScene(id="s1", text="Coffee began its journey in the highlands of ancient Ethiopia.",
                    visual_description="Ethiopian highlands at dawn"),
        ScriptScene(id="s2", text="Legend credits a goat herder named Kaldi first.",
                    visual_description="Goat herder with goats"),
        ScriptScene(id="s3", text="By the fifteenth century Yemeni monks brewed it to stay awake overnight.",
                    visual_description="Yemeni monastery"),
        ScriptScene(id="s4", text="Today billions of cups are enjoyed around the world daily.",
                    visual_description="Busy modern cafe"),
    ]
    return Script(full_text=" ".join(s.text for s in scenes), scenes=scenes)


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[[str], str]:
    def _make(name: str) -> str:
        path = tmp_path / "assets" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x89PNG fake")
        return str(path)
    return _make


@pytest.fixture
def timeline_with_images(make_image) -> Timeline:
    scenes = [
        TimelineScene(id="a", order=0, start_time=0.0, end_time=4.0, duration=4.0,
                      scene_text="First scene narration", image_path=make_image("a.png")),
        TimelineScene(id="b", order=1, start_time=4.0, end_time=10.0, duration=6.0,
                      scene_text="Second scene narration", image_path=make_image("b.png")),
    ]
    return Timeline(scenes=scenes, total_duration=10.0)


@pytest.fixture
def project_factory() -> Callable[..., Project]:
    def _make(**fields: Any) -> Project:
        defaults = {"workspace_id": "ws1", "title": "History of coffee", "topic": "history of coffee"}
        defaults.update(fields)
        return Project(**defaults)
    return _make
