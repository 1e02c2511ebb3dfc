"""
Project aggregate and its value objects

The Project is persisted as a single JSON document with camelCase keys
(`researchData`, `whisperAnalysis`, ...). Everything nested under it is an
immutable value object: stages build new Timeline/TimelineScene instances
instead of editing them in place.
"""

import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import PENDING_IMAGE_PROMPT, DEFAULT_ASPECT_RATIO
from .status import ProjectStatus


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Value(_Document):
    model_config = ConfigDict(frozen=True)


class ImageSource(str, Enum):
    AI_GENERATED = "ai-generated"
    STOCK = "stock"
    UPLOADED = "uploaded"


class ScriptScene(_Value):
    """One narration span of the script and a hint for its visuals."""
    id: str
    text: str
    visual_description: str = ""


class Script(_Value):
    full_text: str
    scenes: List[ScriptScene] = Field(default_factory=list)
    generated_at: str = Field(default_factory=utc_now_iso)


class ResearchSource(_Value):
    title: str
    url: Optional[str] = None
    snippet: Optional[str] = None


class ResearchData(_Value):
    """Advisory research material; nothing downstream depends on its shape."""
    summary: str
    keywords: List[str] = Field(default_factory=list)
    sources: List[ResearchSource] = Field(default_factory=list)
    generated_at: str = Field(default_factory=utc_now_iso)


class Voiceover(_Value):
    file_path: str
    duration: float
    uploaded_at: str = Field(default_factory=utc_now_iso)


class TranscriptWord(_Value):
    text: str
    start: float
    end: float
    confidence: Optional[float] = None


class TranscriptSegment(_Value):
    text: str
    start: float
    end: float


class Transcript(_Value):
    full_text: str = ""
    words: List[TranscriptWord] = Field(default_factory=list)
    segments: List[TranscriptSegment] = Field(default_factory=list)


class CaptionSpan(_Value):
    start: float
    end: float
    text: str


class TimelineScene(_Value):
    id: str
    order: int = 0
    start_time: float = 0.0
    end_time: float = 0.0
    duration: float = 0.0
    scene_text: str = ""
    scene_description: str = ""
    image_prompt: str = PENDING_IMAGE_PROMPT
    image_path: Optional[str] = None
    image_source: Optional[ImageSource] = None
    video_path: Optional[str] = None
    subtitles: List[CaptionSpan] = Field(default_factory=list)

    def with_changes(self, **changes: Any) -> "TimelineScene":
        return self.model_copy(update=changes)

    @property
    def effective_duration(self) -> float:
        """Duration used for rendering; tolerates hand-edited, non-contiguous scenes."""
        if self.duration > 0:
            return self.duration
        return max(0.5, self.end_time - self.start_time)


class Timeline(_Value):
    scenes: List[TimelineScene] = Field(default_factory=list)
    total_duration: float = 0.0

    def renumbered(self) -> "Timeline":
        """Dense 0-based order and duration = end - start wherever the span is positive."""
        scenes = []
        for index, scene in enumerate(self.scenes):
            changes: Dict[str, Any] = {"order": index}
            if scene.end_time > scene.start_time:
                changes["duration"] = scene.end_time - scene.start_time
            scenes.append(scene.with_changes(**changes))
        return self.model_copy(update={"scenes": scenes})

    def with_scenes(self, scenes: List[TimelineScene]) -> "Timeline":
        return self.model_copy(update={"scenes": list(scenes)}).renumbered()

    def find_scene(self, scene_id: str) -> Optional[TimelineScene]:
        return next((s for s in self.scenes if s.id == scene_id), None)

    def scenes_missing_images(self) -> List[TimelineScene]:
        return [s for s in self.scenes if not s.image_path]

    def is_contiguous(self, tolerance: float = 1e-6) -> bool:
        if not self.scenes:
            return True
        if abs(self.scenes[0].start_time) > tolerance:
            return False
        for current, following in zip(self.scenes, self.scenes[1:]):
            if abs(current.end_time - following.start_time) > tolerance:
                return False
        return abs(self.scenes[-1].end_time - self.total_duration) <= tolerance


class ProjectOutput(_Value):
    video_path: str
    hashtags: List[str] = Field(default_factory=list)
    generated_at: str = Field(default_factory=utc_now_iso)


class ReviewInfo(_Value):
    """Workspace approval policy captured when the project was created."""
    required: bool = False
    state: Optional[str] = None  # "pending" | "approved" | "rejected"
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None

    @property
    def blocks_processing(self) -> bool:
        return self.required and self.state != "approved"


class Project(_Document):
    """The unit of work; stages mutate the fields they own and advance status."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    workspace_id: str
    channel_id: Optional[str] = None
    creator_id: Optional[str] = None
    title: str
    topic: str
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    status: ProjectStatus = ProjectStatus.DRAFT
    script: Optional[Script] = None
    research_data: Optional[ResearchData] = None
    voiceover: Optional[Voiceover] = None
    whisper_analysis: Optional[Transcript] = None
    timeline: Optional[Timeline] = None
    output: Optional[ProjectOutput] = None
    review: ReviewInfo = Field(default_factory=ReviewInfo)
    error: Optional[str] = None
    version: int = 0
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    def touch(self) -> None:
        self.updated_at = utc_now_iso()

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Project":
        return cls.model_validate(data)
