"""
Timeline routes - manual scene edits
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ..models import AddSceneRequest, TimelineUpdateRequest
from ..services.pipeline import ReelPipeline
from .dependencies import get_actor, get_pipeline

router = APIRouter(prefix="/projects/{project_id}/timeline", tags=["timeline"])


@router.get("")
async def get_timeline(project_id: str, pipeline: ReelPipeline = Depends(get_pipeline)):
    project = pipeline.get_project(project_id)
    if project.timeline is None:
        return {"scenes": [], "totalDuration": 0.0}
    return project.timeline.model_dump(mode="json", by_alias=True)


@router.put("")
async def update_timeline(
    project_id: str,
    request: TimelineUpdateRequest,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    return pipeline.update_timeline(project_id, actor, request.scenes).to_document()


@router.post("/scenes", status_code=201)
async def add_scene(
    project_id: str,
    request: AddSceneRequest,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    return pipeline.add_scene(project_id, actor, request.scene, request.after_scene_id).to_document()


@router.delete("/scenes/{scene_id}")
async def delete_scene(
    project_id: str,
    scene_id: str,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    return pipeline.remove_scene(project_id, actor, scene_id).to_document()
