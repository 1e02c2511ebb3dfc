"""
Reel pipeline - project status state machine

    draft -> researching -> script-ready -> voiceover-uploaded -> images-ready
          -> (videos-ready) -> processing -> completed

Every stage runs to completion inside the calling request:
    1. load the project and check preconditions (nothing is written if they fail)
    2. mark the stage as running where it is long and pipeline-critical
    3. call providers / the assembler
    4. write the stage's fields back and advance the status

Research and final assembly set `failed` and re-raise on any error once the
stage has started. Image and clip acquisition are best-effort per scene and
report per-scene results instead of raising.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ...config import ASPECT_RATIO_DIMENSIONS, OUTPUT_DIR, UPLOAD_DIR
from ...core import (
    AssemblyError,
    FINAL_VIDEO_NAME,
    LogTimer,
    NoProviderAvailableError,
    PermissionDeniedError,
    PreconditionError,
    ProjectConflictError,
    ProjectNotFoundError,
    ProviderError,
    ReelForgeError,
    get_logger,
    get_media_duration,
    project_context,
    project_output_dir,
    project_upload_dir,
    remove_project_files,
    validate_path_segment,
)
from ...models import (
    Project,
    ProjectOutput,
    ProjectStatus,
    ResearchData,
    ReviewInfo,
    SceneResult,
    Timeline,
    TimelineScene,
    Transcript,
    Voiceover,
    utc_now_iso,
)
from ..assembly import VideoAssembler, assembly_scene_from_timeline
from ..providers import (
    SUPPORTED_RESOLUTIONS,
    CredentialStore,
    ProviderRegistry,
    fallback_image_prompt,
    get_provider_registry,
    missing_image_credential,
    parse_image_backend,
)
from ..storage import ProjectRepository, get_project_repository
from ..timeline import align, caption_timeline, insert_scene, remove_scene, replace_scenes

logger = get_logger(__name__, component="pipeline")


class AccessPolicy:
    """Edit/review permission check supplied by the tenant layer."""

    def can_edit(self, actor: Optional[str], project: Project) -> bool:
        return True

    def can_review(self, actor: Optional[str], project: Project) -> bool:
        return self.can_edit(actor, project)


class AllowAllPolicy(AccessPolicy):
    pass


def _error_message(error: Exception) -> str:
    return error.message if isinstance(error, ReelForgeError) else str(error) or type(error).__name__


def _carry_visuals(previous: Optional[Timeline], timeline: Timeline) -> Timeline:
    """Keep acquired images and clips for scenes that survive re-alignment."""
    if previous is None:
        return timeline
    scenes = []
    for scene in timeline.scenes:
        old = previous.find_scene(scene.id)
        if old is None:
            scenes.append(scene)
            continue
        scenes.append(scene.with_changes(
            image_prompt=old.image_prompt,
            image_path=old.image_path,
            image_source=old.image_source,
            video_path=old.video_path,
        ))
    return timeline.model_copy(update={"scenes": scenes})


class ReelPipeline:
    """Stage operations over persisted projects."""

    def __init__(
        self,
        repository: Optional[ProjectRepository] = None,
        providers: Optional[ProviderRegistry] = None,
        assembler: Optional[VideoAssembler] = None,
        access_policy: Optional[AccessPolicy] = None,
        upload_dir: Optional[Path] = None,
        output_dir: Optional[Path] = None,
    ):
        self.repository = repository or get_project_repository()
        self.providers = providers or get_provider_registry()
        self.assembler = assembler or VideoAssembler()
        self.access_policy = access_policy or AllowAllPolicy()
        self.upload_dir = upload_dir or UPLOAD_DIR
        self.output_dir = output_dir or OUTPUT_DIR

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> Project:
        project = self.repository.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def list_projects(self, workspace_id: Optional[str] = None) -> List[Project]:
        return self.repository.list(workspace_id)

    def _load_editable(self, project_id: str, actor: Optional[str]) -> Project:
        project = self.get_project(project_id)
        if not self.access_policy.can_edit(actor, project):
            raise PermissionDeniedError("You do not have permission to edit this project")
        return project

    def _save(self, project: Project) -> Project:
        return self.repository.save(project)

    def _fail(self, project: Project, message: str) -> None:
        project.status = ProjectStatus.FAILED
        project.error = message
        try:
            self._save(project)
        except ProjectConflictError as e:
            logger.error("Could not persist failed status", extra={"error": e.message})

    # ------------------------------------------------------------------
    # Project lifecycle and review
    # ------------------------------------------------------------------

    def create_project(
        self,
        actor: Optional[str],
        workspace_id: str,
        title: str,
        topic: str,
        channel_id: Optional[str] = None,
        aspect_ratio: str = "9:16",
        requires_approval: bool = False,
        is_workspace_owner: bool = False,
    ) -> Project:
        """Create a project; it starts in review when workspace policy requires it."""
        if not validate_path_segment(workspace_id):
            raise PreconditionError("Invalid workspace ID")
        if aspect_ratio not in ASPECT_RATIO_DIMENSIONS:
            raise PreconditionError(f"Unsupported aspect ratio: {aspect_ratio}")

        needs_review = requires_approval and not is_workspace_owner
        project = Project(
            workspace_id=workspace_id,
            channel_id=channel_id,
            creator_id=actor,
            title=title.strip(),
            topic=topic.strip(),
            aspect_ratio=aspect_ratio,
            status=ProjectStatus.PENDING_APPROVAL if needs_review else ProjectStatus.DRAFT,
            review=ReviewInfo(required=True, state="pending") if needs_review else ReviewInfo(),
        )
        return self.repository.create(project)

    def _review(self, project_id: str, actor: Optional[str], approved: bool) -> Project:
        project = self.get_project(project_id)
        if not self.access_policy.can_review(actor, project):
            raise PermissionDeniedError("You do not have permission to review this project")
        if project.status != ProjectStatus.PENDING_APPROVAL:
            raise PreconditionError("Project is not pending approval")

        project.status = ProjectStatus.APPROVED if approved else ProjectStatus.REJECTED
        project.review = project.review.model_copy(update={
            "state": "approved" if approved else "rejected",
            "reviewed_by": actor,
            "reviewed_at": utc_now_iso(),
        })
        with project_context(project_id):
            logger.info("Project reviewed", extra={"approved": approved, "reviewer": actor})
        return self._save(project)

    def approve_project(self, project_id: str, actor: Optional[str]) -> Project:
        return self._review(project_id, actor, approved=True)

    def reject_project(self, project_id: str, actor: Optional[str]) -> Project:
        return self._review(project_id, actor, approved=False)

    async def delete_project(self, project_id: str, actor: Optional[str]) -> None:
        """Delete the record, then its files; file removal never fails the call."""
        project = self._load_editable(project_id, actor)
        self.repository.delete(project_id)
        removed = await asyncio.to_thread(
            remove_project_files,
            project.workspace_id,
            project.id,
            self.upload_dir,
            self.output_dir,
        )
        with project_context(project_id):
            logger.info("Project deleted", extra={"removed_dirs": len(removed)})

    # ------------------------------------------------------------------
    # Research and script
    # ------------------------------------------------------------------

    async def start_research(
        self,
        project_id: str,
        actor: Optional[str],
        credentials: CredentialStore,
        duration_hint: int = 60,
        tone: str = "engaging",
        text_backend: Optional[str] = None,
    ) -> Project:
        """Research the topic and draft the script; re-running overwrites both."""
        with project_context(project_id):
            project = self._load_editable(project_id, actor)
            try:
                research = self.providers.research(credentials, text_backend)
                writer = self.providers.script_generator(credentials, text_backend)
            except NoProviderAvailableError as e:
                raise PreconditionError(e.message) from e
            except ValueError as e:
                raise PreconditionError(str(e)) from e

            project.status = ProjectStatus.RESEARCHING
            project.error = None
            self._save(project)

            try:
                with LogTimer(logger, "research and script"):
                    result = await research.perform_research(project.topic)
                    script = await writer.generate_script(project.topic, result.summary, duration_hint, tone)
            except ProviderError as e:
                self._fail(project, e.message)
                raise
            except Exception as e:
                self._fail(project, f"Research failed: {_error_message(e)}")
                raise

            project.research_data = ResearchData(
                summary=result.summary,
                keywords=result.keywords,
                sources=result.sources,
            )
            project.script = script
            project.status = ProjectStatus.SCRIPT_READY
            return self._save(project)

    # ------------------------------------------------------------------
    # Voiceover and alignment
    # ------------------------------------------------------------------

    async def _transcribe(self, credentials: CredentialStore, audio_path: str) -> Optional[Transcript]:
        transcriber = self.providers.transcriber(credentials)
        if transcriber is None:
            logger.info("No transcription credential, using script timing")
            return None
        try:
            return await transcriber.transcribe(audio_path)
        except Exception as e:
            logger.warning("Transcription failed, using script timing", extra={"error": _error_message(e)})
            return None

    async def upload_voiceover(
        self,
        project_id: str,
        actor: Optional[str],
        credentials: CredentialStore,
        audio_path: str,
        duration: Optional[float] = None,
        transcribe: bool = False,
    ) -> Project:
        """Accept a voiceover file and align the script against it."""
        with project_context(project_id):
            project = self._load_editable(project_id, actor)
            if project.script is None or not project.script.scenes:
                raise PreconditionError("Script must be generated before uploading voiceover")
            if not Path(audio_path).is_file():
                raise PreconditionError("Voiceover file not found")

            if duration is None or duration <= 0:
                duration = await get_media_duration(audio_path)

            transcript = await self._transcribe(credentials, audio_path) if transcribe else None

            if (duration is None or duration <= 0) and transcript and transcript.words:
                duration = transcript.words[-1].end
            if duration is None or duration <= 0:
                raise PreconditionError("Could not determine voiceover duration")

            timeline = align(
                project.script.scenes,
                duration,
                words=transcript.words if transcript else None,
                segments=transcript.segments if transcript else None,
            )

            project.voiceover = Voiceover(file_path=str(audio_path), duration=duration)
            project.whisper_analysis = transcript
            project.timeline = _carry_visuals(project.timeline, timeline)
            project.status = ProjectStatus.VOICEOVER_UPLOADED
            project.error = None
            logger.info("Voiceover accepted", extra={
                "duration": duration,
                "transcribed": transcript is not None,
                "scene_count": len(timeline.scenes),
            })
            return self._save(project)

    # ------------------------------------------------------------------
    # Visuals
    # ------------------------------------------------------------------

    async def _image_prompts(
        self,
        credentials: CredentialStore,
        scenes: Sequence[TimelineScene],
        style_guide: Optional[str],
        text_backend: Optional[str],
    ) -> Dict[str, str]:
        if not self.providers.has_text(credentials):
            return {}
        try:
            generator = self.providers.image_prompts(credentials, text_backend)
            prompts = await generator.generate_image_prompts(scenes, style_guide)
        except Exception as e:
            logger.warning("Image prompt generation failed, using scene descriptions", extra={"error": _error_message(e)})
            return {}
        return {p.scene_id: p.prompt for p in prompts}

    async def generate_images(
        self,
        project_id: str,
        actor: Optional[str],
        credentials: CredentialStore,
        backend: str = "pexels",
        style_guide: Optional[str] = None,
        text_backend: Optional[str] = None,
    ) -> Tuple[Project, List[SceneResult]]:
        """Acquire one image per scene; individual failures are reported, not raised."""
        with project_context(project_id):
            project = self._load_editable(project_id, actor)
            if project.timeline is None or not project.timeline.scenes:
                raise PreconditionError("Timeline must exist before generating images")
            try:
                image_backend = parse_image_backend(backend)
            except ValueError as e:
                raise PreconditionError(str(e)) from e
            missing_credential = missing_image_credential(image_backend, credentials)
            if missing_credential:
                raise PreconditionError(missing_credential)

            provider = self.providers.image(image_backend, credentials)
            scenes = project.timeline.scenes
            prompts = await self._image_prompts(credentials, scenes, style_guide, text_backend)
            output_dir = project_upload_dir(project.workspace_id, project.id, "images", self.upload_dir)

            results: List[SceneResult] = []
            updated: List[TimelineScene] = []
            for scene in scenes:
                prompt = prompts.get(scene.id) or fallback_image_prompt(scene)
                try:
                    image = await provider.acquire(prompt, project.aspect_ratio, output_dir)
                except Exception as e:
                    message = _error_message(e)
                    logger.warning("Scene image failed", extra={"scene_id": scene.id, "error": message})
                    results.append(SceneResult(scene_id=scene.id, success=False, error=message))
                    updated.append(scene.with_changes(image_prompt=prompt))
                    continue
                results.append(SceneResult(scene_id=scene.id, success=True, path=image.path))
                updated.append(scene.with_changes(
                    image_prompt=prompt,
                    image_path=image.path,
                    image_source=image.source,
                ))

            project.timeline = project.timeline.with_scenes(updated)
            project.status = ProjectStatus.IMAGES_READY
            logger.info("Scene images acquired", extra={
                "backend": image_backend.value,
                "succeeded": sum(1 for r in results if r.success),
                "failed": sum(1 for r in results if not r.success),
            })
            return self._save(project), results

    async def generate_scene_videos(
        self,
        project_id: str,
        actor: Optional[str],
        credentials: CredentialStore,
        resolution: str = "720p",
    ) -> Tuple[Project, List[SceneResult]]:
        """Animate every scene image; advances only if at least one clip succeeded."""
        with project_context(project_id):
            project = self._load_editable(project_id, actor)
            if project.timeline is None or not project.timeline.scenes:
                raise PreconditionError("Timeline must exist before generating scene videos")
            missing = project.timeline.scenes_missing_images()
            if missing:
                raise PreconditionError(f"{len(missing)} scene(s) are missing images")
            if resolution not in SUPPORTED_RESOLUTIONS:
                raise PreconditionError(f"Unsupported resolution: {resolution}")
            try:
                provider = self.providers.scene_video(credentials)
            except NoProviderAvailableError as e:
                raise PreconditionError(e.message) from e

            output_dir = project_upload_dir(project.workspace_id, project.id, "videos", self.upload_dir)

            results: List[SceneResult] = []
            updated: List[TimelineScene] = []
            for scene in project.timeline.scenes:
                try:
                    clip_path = await provider.acquire_scene_video(
                        scene.id,
                        scene.image_path,
                        scene.scene_text,
                        output_dir,
                        resolution=resolution,
                    )
                except Exception as e:
                    message = _error_message(e)
                    logger.warning("Scene clip failed", extra={"scene_id": scene.id, "error": message})
                    results.append(SceneResult(scene_id=scene.id, success=False, error=message))
                    updated.append(scene)
                    continue
                results.append(SceneResult(scene_id=scene.id, success=True, path=clip_path))
                updated.append(scene.with_changes(video_path=clip_path))

            if not any(r.success for r in results):
                logger.warning("No scene clips were generated; status unchanged")
                return project, results

            project.timeline = project.timeline.with_scenes(updated)
            project.status = ProjectStatus.VIDEOS_READY
            return self._save(project), results

    # ------------------------------------------------------------------
    # Manual timeline edits
    # ------------------------------------------------------------------

    def update_timeline(self, project_id: str, actor: Optional[str], scenes: Sequence[TimelineScene]) -> Project:
        project = self._load_editable(project_id, actor)
        seen = set()
        for scene in scenes:
            if scene.id in seen:
                raise PreconditionError(f"Duplicate scene id: {scene.id}")
            seen.add(scene.id)
        project.timeline = replace_scenes(project.timeline, scenes)
        return self._save(project)

    def add_scene(
        self,
        project_id: str,
        actor: Optional[str],
        scene: Optional[TimelineScene] = None,
        after_scene_id: Optional[str] = None,
    ) -> Project:
        project = self._load_editable(project_id, actor)
        project.timeline = insert_scene(project.timeline, scene, after_scene_id)
        return self._save(project)

    def remove_scene(self, project_id: str, actor: Optional[str], scene_id: str) -> Project:
        project = self._load_editable(project_id, actor)
        project.timeline = remove_scene(project.timeline, scene_id)
        return self._save(project)

    # ------------------------------------------------------------------
    # Final render
    # ------------------------------------------------------------------

    def _check_renderable(self, project: Project) -> None:
        if project.review.blocks_processing:
            if project.review.state == "rejected":
                raise PreconditionError("Project was rejected and cannot be rendered")
            raise PreconditionError("Project must be approved before generating video")
        if project.voiceover is None or not project.voiceover.file_path:
            raise PreconditionError("Voiceover is required before generating video")
        if project.timeline is None or not project.timeline.scenes:
            raise PreconditionError("Timeline with scenes is required")
        missing = project.timeline.scenes_missing_images()
        if missing:
            raise PreconditionError(f"{len(missing)} scene(s) are missing images")

    async def _hashtags(self, credentials: CredentialStore, project: Project) -> List[str]:
        generator = self.providers.hashtags(credentials)
        if generator is None:
            return []
        excerpt = project.script.full_text if project.script else " ".join(
            s.scene_text for s in project.timeline.scenes
        )
        try:
            return await generator.generate_hashtags(project.topic, excerpt)
        except Exception as e:
            logger.warning("Hashtags skipped", extra={"error": _error_message(e)})
            return []

    async def generate_final_video(
        self,
        project_id: str,
        actor: Optional[str],
        credentials: CredentialStore,
    ) -> Project:
        """Render the reel; encoder and file errors mark the project failed and propagate."""
        with project_context(project_id):
            project = self._load_editable(project_id, actor)
            self._check_renderable(project)

            project.status = ProjectStatus.PROCESSING
            project.error = None
            project.timeline = caption_timeline(project.timeline)
            self._save(project)

            output_path = project_output_dir(project.workspace_id, project.id, self.output_dir) / FINAL_VIDEO_NAME
            scenes = [assembly_scene_from_timeline(s) for s in project.timeline.scenes]

            try:
                video_path, hashtags = await asyncio.gather(
                    self.assembler.assemble(scenes, project.voiceover.file_path, project.aspect_ratio, output_path),
                    self._hashtags(credentials, project),
                )
            except ReelForgeError as e:
                self._fail(project, e.message)
                raise
            except Exception as e:
                message = f"Video assembly failed: {_error_message(e)}"
                self._fail(project, message)
                raise AssemblyError(message) from e

            project.output = ProjectOutput(video_path=str(video_path), hashtags=hashtags)
            project.status = ProjectStatus.COMPLETED
            logger.info("Reel completed", extra={"output_path": str(video_path), "hashtag_count": len(hashtags)})
            return self._save(project)
