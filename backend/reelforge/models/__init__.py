"""
Domain models and API schemas
"""

from .status import ProjectStatus, STATUS_TO_STAGE_MAP, get_stage_from_status
from .project import (
    utc_now_iso,
    ImageSource,
    ScriptScene,
    Script,
    ResearchSource,
    ResearchData,
    Voiceover,
    TranscriptWord,
    TranscriptSegment,
    Transcript,
    CaptionSpan,
    TimelineScene,
    Timeline,
    ProjectOutput,
    ReviewInfo,
    Project,
)
from .requests import (
    CreateProjectRequest,
    ResearchRequest,
    ImageGenerationRequest,
    SceneVideoRequest,
    TimelineUpdateRequest,
    AddSceneRequest,
    SceneResult,
    ImageGenerationResponse,
    SceneVideoResponse,
    ReviewRequest,
)

__all__ = [
    "ProjectStatus",
    "STATUS_TO_STAGE_MAP",
    "get_stage_from_status",
    "utc_now_iso",
    "ImageSource",
    "ScriptScene",
    "Script",
    "ResearchSource",
    "ResearchData",
    "Voiceover",
    "TranscriptWord",
    "TranscriptSegment",
    "Transcript",
    "CaptionSpan",
    "TimelineScene",
    "Timeline",
    "ProjectOutput",
    "ReviewInfo",
    "Project",
    "CreateProjectRequest",
    "ResearchRequest",
    "ImageGenerationRequest",
    "SceneVideoRequest",
    "TimelineUpdateRequest",
    "AddSceneRequest",
    "SceneResult",
    "ImageGenerationResponse",
    "SceneVideoResponse",
    "ReviewRequest",
]
