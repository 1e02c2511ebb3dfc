"""
Text-generation capabilities: scripts, image prompts and hashtags

Each generator wraps one LLMProvider; which backend that is gets decided by
the provider registry from the caller's credentials.
"""

import json
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ...config import ACTIVE_PIPELINE, ModelConfig, PipelineModels
from ...core import GenerationFormatError, get_logger
from ...models import Script, ScriptScene, TimelineScene
from . import prompts
from .llm import LLMConfig, LLMProvider
from .parsing import parse_json_array, parse_json_object

logger = get_logger(__name__, component="writing")

WORDS_PER_SECOND = 2.5
HASHTAG_EXCERPT_CHARS = 500
MAX_HASHTAGS = 20


@dataclass
class ImagePrompt:
    scene_id: str
    prompt: str


def _llm_config(provider: LLMProvider, step: ModelConfig, json_output: bool = False, system: Optional[str] = None) -> LLMConfig:
    return LLMConfig(
        model=step.get_model_for_provider(provider.provider_type),
        temperature=step.temperature,
        max_tokens=step.max_tokens,
        json_output=json_output,
        system_instruction=system,
    )


def fallback_image_prompt(scene: TimelineScene) -> str:
    """Deterministic prompt used when prompt generation fails."""
    subject = scene.scene_description.strip() or scene.scene_text.strip()
    return f"{subject}, cinematic, high quality, professional"


class ScriptGenerator:
    """Drafts the scene-by-scene narration script"""

    def __init__(self, llm: LLMProvider, models: PipelineModels = ACTIVE_PIPELINE):
        self.llm = llm
        self.models = models

    async def generate_script(
        self,
        topic: str,
        research_summary: str,
        target_duration: int,
        tone: str,
    ) -> Script:
        """Generate a script with stable scene ids.

        Raises:
            GenerationFormatError: If the backend output is not a usable script
            ProviderError: If the backend call fails
        """
        prompt = prompts.SCRIPT_PROMPT.format(
            topic=topic,
            research=research_summary or "(none)",
            target_duration=target_duration,
            target_words=round(target_duration * WORDS_PER_SECOND),
            tone=tone,
        )
        config = _llm_config(self.llm, self.models.script_generation, json_output=True, system=prompts.SCRIPT_SYSTEM)
        response = await self.llm.generate(prompt, config)
        script = self.parse_script(response.text)

        logger.info("Generated script", extra={
            "backend": self.llm.name,
            "scene_count": len(script.scenes),
        })
        return script

    @staticmethod
    def parse_script(text: str) -> Script:
        data = parse_json_object(text)
        raw_scenes = data.get("scenes")
        if not isinstance(raw_scenes, list) or not raw_scenes:
            raise GenerationFormatError("Script response contains no scenes")

        scenes: List[ScriptScene] = []
        seen_ids = set()
        for index, raw in enumerate(raw_scenes):
            if not isinstance(raw, dict):
                raise GenerationFormatError(f"Scene {index + 1} is not an object")
            narration = str(raw.get("text") or "").strip()
            if not narration:
                raise GenerationFormatError(f"Scene {index + 1} has no narration text")

            scene_id = str(raw.get("id") or f"scene_{index + 1}")
            if scene_id in seen_ids:
                scene_id = f"{scene_id}_{index + 1}"
            seen_ids.add(scene_id)

            description = raw.get("visualDescription") or raw.get("visual_description") or ""
            scenes.append(ScriptScene(id=scene_id, text=narration, visual_description=str(description).strip()))

        full_text = str(data.get("fullText") or "").strip() or " ".join(s.text for s in scenes)
        return Script(full_text=full_text, scenes=scenes)


class ImagePromptGenerator:
    """Turns scene visual descriptions into image-generation prompts"""

    def __init__(self, llm: LLMProvider, models: PipelineModels = ACTIVE_PIPELINE):
        self.llm = llm
        self.models = models

    async def generate_image_prompts(
        self,
        scenes: Sequence[TimelineScene],
        style_guide: Optional[str] = None,
    ) -> List[ImagePrompt]:
        """One prompt per scene id found in the backend output.

        Raises:
            GenerationFormatError: If the output cannot be parsed
            ProviderError: If the backend call fails
        """
        scene_payload = json.dumps([
            {"sceneId": s.id, "narration": s.scene_text, "visualDescription": s.scene_description}
            for s in scenes
        ], indent=2)
        prompt = prompts.IMAGE_PROMPTS_PROMPT.format(
            style_guide=style_guide or "photorealistic, vibrant, vertical composition",
            scenes=scene_payload,
        )
        response = await self.llm.generate(prompt, _llm_config(self.llm, self.models.image_prompts, json_output=True))

        known_ids = {s.id for s in scenes}
        results: List[ImagePrompt] = []
        for item in parse_json_array(response.text):
            if not isinstance(item, dict):
                continue
            scene_id = str(item.get("sceneId") or item.get("scene_id") or "")
            text = str(item.get("prompt") or "").strip()
            if scene_id in known_ids and text:
                results.append(ImagePrompt(scene_id=scene_id, prompt=text))

        if not results:
            raise GenerationFormatError("Image prompt response matched no scenes")
        return results


class HashtagGenerator:
    """Best-effort social hashtags for the finished reel"""

    def __init__(self, llm: LLMProvider, models: PipelineModels = ACTIVE_PIPELINE):
        self.llm = llm
        self.models = models

    async def generate_hashtags(self, topic: str, script_excerpt: str) -> List[str]:
        """Hashtags without the leading '#'; empty list on any failure."""
        prompt = prompts.HASHTAG_PROMPT.format(topic=topic, excerpt=script_excerpt[:HASHTAG_EXCERPT_CHARS])
        try:
            response = await self.llm.generate(prompt, _llm_config(self.llm, self.models.hashtags, json_output=True))
            raw_tags = parse_json_array(response.text)
        except Exception as e:
            logger.warning("Hashtag generation failed", extra={"error": str(e)})
            return []

        tags: List[str] = []
        for raw in raw_tags:
            tag = re.sub(r"\s+", "", str(raw)).lstrip("#")
            if tag and tag.lower() not in {t.lower() for t in tags}:
                tags.append(tag)
        return tags[:MAX_HASHTAGS]
