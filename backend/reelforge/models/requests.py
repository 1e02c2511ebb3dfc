"""
API schemas for project and pipeline endpoints

Request/Response models for the stage operations.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .project import TimelineScene


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateProjectRequest(_Schema):
    """Request to create a project from a topic idea"""
    workspace_id: str
    channel_id: Optional[str] = None
    title: str = Field(min_length=1, max_length=200)
    topic: str = Field(min_length=1)
    aspect_ratio: str = "9:16"
    requires_approval: bool = False  # Workspace policy, supplied by the tenant layer
    is_workspace_owner: bool = False


class ResearchRequest(_Schema):
    duration_hint: int = Field(default=60, gt=0, le=600)  # Target reel length in seconds
    tone: str = "engaging"
    text_backend: Optional[str] = None


class ImageGenerationRequest(_Schema):
    backend: str = "pexels"
    style_guide: Optional[str] = None
    text_backend: Optional[str] = None


class SceneVideoRequest(_Schema):
    resolution: str = "720p"  # "480p" or "720p"


class TimelineUpdateRequest(_Schema):
    scenes: List[TimelineScene]


class AddSceneRequest(_Schema):
    after_scene_id: Optional[str] = None
    scene: Optional[TimelineScene] = None


class SceneResult(_Schema):
    """Outcome of one scene in a partial-failure batch"""
    scene_id: str
    success: bool
    path: Optional[str] = None
    error: Optional[str] = None


class ImageGenerationResponse(_Schema):
    project: dict
    results: List[SceneResult]


class SceneVideoResponse(_Schema):
    project: dict
    results: List[SceneResult]


class ReviewRequest(_Schema):
    reviewer_id: Optional[str] = None
