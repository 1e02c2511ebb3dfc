"""
Pipeline stage routes

One endpoint per stage operation. Each call runs the stage to completion and
returns the updated project; callers that want background behaviour poll
GET /projects/{id} instead.
"""

import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from ..config import ALLOWED_AUDIO_EXTENSIONS, MAX_VOICEOVER_SIZE
from ..core import get_file_extension, get_logger, project_upload_dir, sanitize_filename
from ..models import (
    ImageGenerationRequest,
    ImageGenerationResponse,
    ResearchRequest,
    SceneVideoRequest,
    SceneVideoResponse,
)
from ..services.pipeline import ReelPipeline
from ..services.providers import CredentialStore
from .dependencies import get_actor, get_credentials, get_pipeline

logger = get_logger(__name__, component="pipeline_routes")

router = APIRouter(prefix="/projects/{project_id}", tags=["pipeline"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


@router.post("/research")
async def start_research(
    project_id: str,
    request: ResearchRequest,
    actor: Optional[str] = Depends(get_actor),
    credentials: CredentialStore = Depends(get_credentials),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    project = await pipeline.start_research(
        project_id,
        actor,
        credentials,
        duration_hint=request.duration_hint,
        tone=request.tone,
        text_backend=request.text_backend,
    )
    return project.to_document()


async def _store_voiceover(file: UploadFile, target_dir: Path) -> Path:
    """Stream the upload to disk, enforcing the size limit."""
    try:
        filename = sanitize_filename(file.filename or "")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid filename")

    extension = get_file_extension(Path(filename))
    if extension not in ALLOWED_AUDIO_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported audio type. Allowed: {', '.join(ALLOWED_AUDIO_EXTENSIONS)}",
        )

    target = target_dir / f"{uuid.uuid4()}{extension}"
    size = 0
    with open(target, "wb") as out:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > MAX_VOICEOVER_SIZE:
                out.close()
                target.unlink(missing_ok=True)
                logger.warning("Voiceover too large", extra={"size": size, "max_size": MAX_VOICEOVER_SIZE})
                raise HTTPException(
                    status_code=413,
                    detail=f"File too large. Maximum size: {MAX_VOICEOVER_SIZE / (1024 * 1024):.0f}MB",
                )
            out.write(chunk)

    if size == 0:
        target.unlink(missing_ok=True)
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return target


@router.post("/voiceover")
async def upload_voiceover(
    project_id: str,
    file: UploadFile = File(...),
    duration: Optional[float] = Form(default=None),
    transcribe: bool = Form(default=False),
    actor: Optional[str] = Depends(get_actor),
    credentials: CredentialStore = Depends(get_credentials),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    project = pipeline.get_project(project_id)
    target_dir = project_upload_dir(project.workspace_id, project.id, "voiceover", pipeline.upload_dir)
    audio_path = await _store_voiceover(file, target_dir)

    logger.info("Voiceover stored", extra={"path": str(audio_path), "transcribe": transcribe})
    project = await pipeline.upload_voiceover(
        project_id,
        actor,
        credentials,
        str(audio_path),
        duration=duration,
        transcribe=transcribe,
    )
    return project.to_document()


@router.post("/images", response_model=ImageGenerationResponse)
async def generate_images(
    project_id: str,
    request: ImageGenerationRequest,
    actor: Optional[str] = Depends(get_actor),
    credentials: CredentialStore = Depends(get_credentials),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    project, results = await pipeline.generate_images(
        project_id,
        actor,
        credentials,
        backend=request.backend,
        style_guide=request.style_guide,
        text_backend=request.text_backend,
    )
    return ImageGenerationResponse(project=project.to_document(), results=results)


@router.post("/scene-videos", response_model=SceneVideoResponse)
async def generate_scene_videos(
    project_id: str,
    request: SceneVideoRequest,
    actor: Optional[str] = Depends(get_actor),
    credentials: CredentialStore = Depends(get_credentials),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    project, results = await pipeline.generate_scene_videos(
        project_id,
        actor,
        credentials,
        resolution=request.resolution,
    )
    return SceneVideoResponse(project=project.to_document(), results=results)


@router.post("/video")
async def generate_final_video(
    project_id: str,
    actor: Optional[str] = Depends(get_actor),
    credentials: CredentialStore = Depends(get_credentials),
    pipeline: ReelPipeline = Depends(get_pipeline),
):
    project = await pipeline.generate_final_video(project_id, actor, credentials)
    return project.to_document()
