"""
Project routes - create, read, delete and review

Errors raised by the pipeline are translated to HTTP responses by the
application-level ReelForgeError handler.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core import get_logger
from ..models import CreateProjectRequest, ReviewRequest
from ..services.pipeline import ReelPipeline
from .dependencies import get_actor, get_pipeline

logger = get_logger(__name__, component="project_routes")

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", status_code=201)
async def create_project(
    request: CreateProjectRequest,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    project = pipeline.create_project(
        actor,
        workspace_id=request.workspace_id,
        title=request.title,
        topic=request.topic,
        channel_id=request.channel_id,
        aspect_ratio=request.aspect_ratio,
        requires_approval=request.requires_approval,
        is_workspace_owner=request.is_workspace_owner,
    )
    logger.info("Project created via API", extra={"project": project.id, "status": project.status.value})
    return project.to_document()


@router.get("")
async def list_projects(
    workspace_id: Optional[str] = Query(default=None, alias="workspaceId"),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    return {"projects": [p.to_document() for p in pipeline.list_projects(workspace_id)]}


@router.get("/{project_id}")
async def get_project(project_id: str, pipeline: ReelPipeline = Depends(get_pipeline)):
    return pipeline.get_project(project_id).to_document()


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    await pipeline.delete_project(project_id, actor)
    return {"id": project_id, "deleted": True}


@router.post("/{project_id}/approve")
async def approve_project(
    project_id: str,
    request: Optional[ReviewRequest] = None,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    reviewer = (request.reviewer_id if request else None) or actor
    return pipeline.approve_project(project_id, reviewer).to_document()


@router.post("/{project_id}/reject")
async def reject_project(
    project_id: str,
    request: Optional[ReviewRequest] = None,
    actor: Optional[str] = Depends(get_actor),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    reviewer = (request.reviewer_id if request else None) or actor
    return pipeline.reject_project(project_id, reviewer).to_document()
