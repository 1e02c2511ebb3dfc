"""
Tests for the reel pipeline state machine

Providers and the assembler are replaced with in-process fakes; the project
repository is the real file-based one under tmp_path.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from reelforge.core import (
    AssemblyError,
    EncoderError,
    NoProviderAvailableError,
    PermissionDeniedError,
    PreconditionError,
    ProviderError,
    SceneNotFoundError,
)
from reelforge.models import (
    ImageSource,
    ProjectStatus,
    Script,
    ScriptScene,
    TimelineScene,
    Transcript,
    TranscriptWord,
    Voiceover,
)
from reelforge.services.pipeline import AccessPolicy, ReelPipeline
from reelforge.services.providers import AcquiredImage, ProviderRegistry, StaticCredentialStore
from reelforge.services.providers.llm import GeminiProvider, gemini_provider
from reelforge.services.storage import FileBasedProjectRepository


class FakeImageProvider:
    def __init__(self, failing_prompts=(), error=None):
        self.failing_prompts = set(failing_prompts)
        self.error = error
        self.prompts = []

    async def acquire(self, prompt, aspect_ratio, output_dir):
        self.prompts.append(prompt)
        if prompt in self.failing_prompts:
            raise self.error or ProviderError(f"No stock photos found for: {prompt}")
        path = Path(output_dir) / f"img-{len(self.prompts)}.jpg"
        path.write_bytes(b"jpg")
        return AcquiredImage(path=str(path), source=ImageSource.STOCK)


class FakeVideoProvider:
    def __init__(self, failing_ids=(), error=None):
        self.failing_ids = set(failing_ids)
        self.error = error
        self.calls = []

    async def acquire_scene_video(self, scene_id, image_path, narration_text, output_dir, resolution="720p"):
        self.calls.append((scene_id, resolution))
        if scene_id in self.failing_ids:
            raise self.error or ProviderError("Scene video generation failed: content rejected")
        path = Path(output_dir) / f"scene-video-{scene_id}.mp4"
        path.write_bytes(b"mp4")
        return str(path)


class FakeTranscriber:
    def __init__(self, transcript=None, error=None):
        self.transcript = transcript
        self.error = error

    async def transcribe(self, audio_path):
        if self.error:
            raise self.error
        return self.transcript


class FakeRegistry(ProviderRegistry):
    def __init__(self, llm=None, images=None, videos=None, transcriber=None):
        super().__init__()
        self.llm = llm
        self.images = images or FakeImageProvider()
        self.videos = videos
        self.fake_transcriber = transcriber

    def text(self, credentials, backend=None):
        if self.llm is None:
            raise NoProviderAvailableError("LLM API key required (Gemini API key or Ollama host)")
        return self.llm

    def has_text(self, credentials):
        return self.llm is not None

    def image(self, backend, credentials):
        return self.images

    def scene_video(self, credentials):
        if self.videos is None:
            raise NoProviderAvailableError("Replicate API token required for scene video generation")
        return self.videos

    def transcriber(self, credentials):
        return self.fake_transcriber


class FakeAssembler:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def assemble(self, scenes, voiceover_path, aspect_ratio, output_path):
        self.calls.append({"scenes": scenes, "voiceover": voiceover_path, "aspect_ratio": aspect_ratio})
        if self.error:
            raise self.error
        output_path.write_bytes(b"mp4")
        return output_path


class DenyAll(AccessPolicy):
    def can_edit(self, actor, project):
        return False


def script_json(script):
    return json.dumps({
        "fullText": script.full_text,
        "scenes": [
            {"id": s.id, "text": s.text, "visualDescription": s.visual_description}
            for s in script.scenes
        ],
    })


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def assembler():
    return FakeAssembler()


@pytest.fixture
def pipeline(tmp_path, registry, assembler):
    return ReelPipeline(
        repository=FileBasedProjectRepository(storage_dir=tmp_path / "projects"),
        providers=registry,
        assembler=assembler,
        upload_dir=tmp_path / "uploads",
        output_dir=tmp_path / "outputs",
    )


@pytest.fixture
def voice_file(tmp_path):
    path = tmp_path / "voice.mp3"
    path.write_bytes(b"ID3 audio")
    return str(path)


@pytest.fixture
def seed(pipeline):
    """Create a project and write extra fields straight through the repository."""
    def _seed(**fields):
        project = pipeline.create_project("user-1", "ws1", "History of coffee", "history of coffee")
        for key, value in fields.items():
            setattr(project, key, value)
        return pipeline.repository.save(project)
    return _seed


def _stored(pipeline, project_id):
    return pipeline.repository.get(project_id)


class TestCreateAndReview:
    def test_create_starts_as_draft(self, pipeline):
        project = pipeline.create_project("user-1", "ws1", "  Coffee  ", " history of coffee ")
        assert project.status is ProjectStatus.DRAFT
        assert project.title == "Coffee"
        assert project.creator_id == "user-1"
        assert project.version == 1

    def test_invalid_input(self, pipeline):
        with pytest.raises(PreconditionError, match="Invalid workspace ID"):
            pipeline.create_project("u", "../ws", "t", "x")
        with pytest.raises(PreconditionError, match="Unsupported aspect ratio: 4:3"):
            pipeline.create_project("u", "ws1", "t", "x", aspect_ratio="4:3")

    def test_approval_required_for_members(self, pipeline):
        project = pipeline.create_project("u", "ws1", "t", "x", requires_approval=True)
        assert project.status is ProjectStatus.PENDING_APPROVAL
        assert project.review.blocks_processing

        owner_project = pipeline.create_project("u", "ws1", "t", "x", requires_approval=True, is_workspace_owner=True)
        assert owner_project.status is ProjectStatus.DRAFT

    def test_approve_and_reject(self, pipeline):
        first = pipeline.create_project("u", "ws1", "t", "x", requires_approval=True)
        second = pipeline.create_project("u", "ws1", "t", "x", requires_approval=True)

        approved = pipeline.approve_project(first.id, "owner")
        rejected = pipeline.reject_project(second.id, "owner")

        assert approved.status is ProjectStatus.APPROVED
        assert approved.review.reviewed_by == "owner"
        assert not approved.review.blocks_processing
        assert rejected.status is ProjectStatus.REJECTED
        with pytest.raises(PreconditionError, match="not pending approval"):
            pipeline.approve_project(first.id, "owner")

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_files(self, pipeline, seed, tmp_path):
        project = seed()
        stray = tmp_path / "uploads" / "ws1" / project.id / "images" / "x.jpg"
        stray.parent.mkdir(parents=True)
        stray.write_bytes(b"x")

        await pipeline.delete_project(project.id, "user-1")

        assert _stored(pipeline, project.id) is None
        assert not stray.parent.exists()

    def test_permission_denied(self, tmp_path, registry, assembler, seed):
        project = seed()
        locked = ReelPipeline(
            repository=FileBasedProjectRepository(storage_dir=tmp_path / "projects"),
            providers=registry,
            assembler=assembler,
            access_policy=DenyAll(),
        )
        with pytest.raises(PermissionDeniedError):
            locked.add_scene(project.id, "intruder")


class TestResearch:
    @pytest.mark.asyncio
    async def test_research_then_script(self, pipeline, registry, seed, fake_llm, credentials, coffee_script):
        registry.llm = fake_llm(["[]", "Coffee notes", '["coffee"]', script_json(coffee_script)])
        project = seed()

        result = await pipeline.start_research(project.id, "user-1", credentials, duration_hint=40)

        assert result.status is ProjectStatus.SCRIPT_READY
        assert result.research_data.summary == "Coffee notes"
        assert result.research_data.keywords == ["coffee"]
        assert [s.id for s in result.script.scenes] == ["s1", "s2", "s3", "s4"]
        assert _stored(pipeline, project.id).status is ProjectStatus.SCRIPT_READY

    @pytest.mark.asyncio
    async def test_rerun_overwrites_script_and_keeps_timeline(
        self, pipeline, registry, seed, fake_llm, credentials, coffee_script, timeline_with_images
    ):
        project = seed(script=coffee_script, timeline=timeline_with_images, status=ProjectStatus.IMAGES_READY)
        registry.llm = fake_llm(["[]", "New notes", "[]", '{"scenes": [{"id": "x", "text": "Fresh take."}]}'])

        result = await pipeline.start_research(project.id, "user-1", credentials)

        assert [s.id for s in result.script.scenes] == ["x"]
        assert result.timeline == timeline_with_images
        assert result.status is ProjectStatus.SCRIPT_READY

    @pytest.mark.asyncio
    async def test_no_text_backend_is_precondition(self, pipeline, seed):
        project = seed()
        with pytest.raises(PreconditionError, match="LLM API key required"):
            await pipeline.start_research(project.id, "user-1", StaticCredentialStore())
        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.DRAFT
        assert stored.version == project.version

    @pytest.mark.asyncio
    async def test_provider_failure_marks_failed(self, pipeline, registry, seed, fake_llm, credentials):
        registry.llm = fake_llm(["[]", "Notes", "[]", "not json at all"])
        project = seed()

        with pytest.raises(ProviderError, match="valid JSON"):
            await pipeline.start_research(project.id, "user-1", credentials)

        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.FAILED
        assert stored.error == "Backend response did not contain valid JSON"

    @pytest.mark.asyncio
    async def test_transport_error_marks_failed(self, pipeline, registry, seed, fake_llm, credentials):
        registry.llm = fake_llm(["[]", "Notes", "[]", httpx.ConnectError("connection refused")])
        project = seed()

        with pytest.raises(httpx.ConnectError):
            await pipeline.start_research(project.id, "user-1", credentials)

        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.FAILED
        assert stored.error == "Research failed: connection refused"

    @pytest.mark.asyncio
    async def test_unreachable_gemini_marks_failed(self, pipeline, registry, seed, credentials):
        with patch.object(gemini_provider.genai, "Client") as client_cls:
            client_cls.return_value.models.generate_content.side_effect = httpx.ConnectError("connection refused")
            registry.llm = GeminiProvider("key")
            project = seed()

            with pytest.raises(ProviderError, match="no usable summary"):
                await pipeline.start_research(project.id, "user-1", credentials)

        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.FAILED
        assert stored.error == "Research produced no usable summary"


class TestVoiceover:
    @pytest.mark.asyncio
    async def test_requires_script(self, pipeline, seed, credentials, voice_file):
        project = seed()
        with pytest.raises(PreconditionError, match="Script must be generated before uploading voiceover"):
            await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=40.0)
        stored = _stored(pipeline, project.id)
        assert stored.version == project.version
        assert stored.voiceover is None

    @pytest.mark.asyncio
    async def test_aligns_script(self, pipeline, seed, credentials, coffee_script, voice_file):
        project = seed(script=coffee_script, status=ProjectStatus.SCRIPT_READY)

        result = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=40.0)

        assert result.status is ProjectStatus.VOICEOVER_UPLOADED
        assert result.voiceover.duration == 40.0
        assert [s.duration for s in result.timeline.scenes] == pytest.approx([10.0, 8.0, 12.0, 10.0])
        assert result.timeline.is_contiguous()
        assert result.whisper_analysis is None

    @pytest.mark.asyncio
    async def test_transcript_supplies_duration(self, pipeline, registry, seed, credentials, voice_file):
        script = Script(full_text="Hello world", scenes=[ScriptScene(id="a", text="Hello world")])
        registry.fake_transcriber = FakeTranscriber(Transcript(
            full_text="Hello world",
            words=[TranscriptWord(text="Hello", start=0.0, end=0.6), TranscriptWord(text="world", start=0.6, end=1.4)],
        ))
        project = seed(script=script)

        with patch("reelforge.services.pipeline.orchestrator.get_media_duration", AsyncMock(return_value=None)):
            result = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, transcribe=True)

        assert result.voiceover.duration == 1.4
        assert [c.text for c in result.timeline.scenes[0].subtitles] == ["Hello", "world"]
        assert result.whisper_analysis.full_text == "Hello world"

    @pytest.mark.asyncio
    async def test_transcription_failure_falls_back_to_script(
        self, pipeline, registry, seed, credentials, coffee_script, voice_file
    ):
        registry.fake_transcriber = FakeTranscriber(error=ProviderError("Transcription failed: bad audio"))
        project = seed(script=coffee_script)

        result = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=40.0, transcribe=True)

        assert result.whisper_analysis is None
        assert result.timeline.scenes[0].duration == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_unexpected_transcription_error_falls_back(
        self, pipeline, registry, seed, credentials, coffee_script, voice_file
    ):
        registry.fake_transcriber = FakeTranscriber(error=RuntimeError("socket closed"))
        project = seed(script=coffee_script)

        result = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=40.0, transcribe=True)

        assert result.status is ProjectStatus.VOICEOVER_UPLOADED
        assert result.whisper_analysis is None
        assert result.timeline.scenes[0].duration == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_unknown_duration(self, pipeline, seed, credentials, coffee_script, voice_file):
        project = seed(script=coffee_script)
        with patch("reelforge.services.pipeline.orchestrator.get_media_duration", AsyncMock(return_value=None)):
            with pytest.raises(PreconditionError, match="Could not determine voiceover duration"):
                await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file)

    @pytest.mark.asyncio
    async def test_reupload_keeps_images(self, pipeline, seed, credentials, coffee_script, voice_file):
        project = seed(script=coffee_script)
        first = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=40.0)
        scenes = [s.with_changes(image_path=f"/img/{s.id}.jpg") for s in first.timeline.scenes]
        pipeline.update_timeline(project.id, "user-1", scenes)

        second = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=80.0)

        assert [s.image_path for s in second.timeline.scenes] == ["/img/s1.jpg", "/img/s2.jpg", "/img/s3.jpg", "/img/s4.jpg"]
        assert second.timeline.scenes[0].duration == pytest.approx(20.0)


class TestImages:
    @pytest.mark.asyncio
    async def test_partial_failure_is_reported(self, pipeline, registry, seed, credentials, timeline_with_images):
        bare = timeline_with_images.with_scenes([s.with_changes(image_path=None) for s in timeline_with_images.scenes])
        project = seed(timeline=bare, status=ProjectStatus.VOICEOVER_UPLOADED)
        failing = "Second scene narration, cinematic, high quality, professional"
        registry.images = FakeImageProvider(failing_prompts=[failing])

        result, results = await pipeline.generate_images(project.id, "user-1", credentials, backend="pexels")

        assert [(r.scene_id, r.success) for r in results] == [("a", True), ("b", False)]
        assert "No stock photos found" in results[1].error
        assert result.status is ProjectStatus.IMAGES_READY
        assert result.timeline.scenes[0].image_source is ImageSource.STOCK
        assert result.timeline.scenes[1].image_path is None
        assert result.timeline.scenes[1].image_prompt == failing

    @pytest.mark.asyncio
    async def test_uses_generated_prompts(self, pipeline, registry, seed, credentials, timeline_with_images, fake_llm):
        registry.llm = fake_llm(['[{"sceneId": "a", "prompt": "Sunrise over coffee farm"}]'])
        project = seed(timeline=timeline_with_images)

        result, _ = await pipeline.generate_images(project.id, "user-1", credentials, backend="segmind")

        assert registry.images.prompts[0] == "Sunrise over coffee farm"
        assert registry.images.prompts[1].endswith("cinematic, high quality, professional")
        assert result.timeline.scenes[0].image_prompt == "Sunrise over coffee farm"

    @pytest.mark.asyncio
    async def test_undecodable_response_fails_only_that_scene(
        self, pipeline, registry, seed, credentials, timeline_with_images
    ):
        bare = timeline_with_images.with_scenes([s.with_changes(image_path=None) for s in timeline_with_images.scenes])
        project = seed(timeline=bare, status=ProjectStatus.VOICEOVER_UPLOADED)
        registry.images = FakeImageProvider(
            failing_prompts=["Second scene narration, cinematic, high quality, professional"],
            error=json.JSONDecodeError("Expecting value", "<html>", 0),
        )

        result, results = await pipeline.generate_images(project.id, "user-1", credentials, backend="pexels")

        assert [(r.scene_id, r.success) for r in results] == [("a", True), ("b", False)]
        assert results[1].error.startswith("Expecting value")
        assert result.status is ProjectStatus.IMAGES_READY
        assert _stored(pipeline, project.id).timeline.scenes[0].image_path is not None

    @pytest.mark.asyncio
    async def test_prompt_generation_outage_uses_fallback_prompts(
        self, pipeline, registry, seed, credentials, timeline_with_images, fake_llm
    ):
        registry.llm = fake_llm([httpx.ConnectError("connection refused")])
        project = seed(timeline=timeline_with_images)

        result, results = await pipeline.generate_images(project.id, "user-1", credentials, backend="segmind")

        assert all(r.success for r in results)
        assert all(p.endswith("cinematic, high quality, professional") for p in registry.images.prompts)
        assert result.status is ProjectStatus.IMAGES_READY

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backend,store,message", [
        ("dalle", {"pexels": "k"}, "Unknown image backend: dalle"),
        ("segmind", {"pexels": "k"}, "Segmind API key required for AI image generation"),
        ("pexels", {}, "Pexels API key required for stock photos"),
    ])
    async def test_preconditions(self, pipeline, seed, timeline_with_images, backend, store, message):
        project = seed(timeline=timeline_with_images)
        with pytest.raises(PreconditionError, match=message):
            await pipeline.generate_images(project.id, "user-1", StaticCredentialStore(store), backend=backend)
        assert _stored(pipeline, project.id).version == project.version

    @pytest.mark.asyncio
    async def test_requires_timeline(self, pipeline, seed, credentials):
        project = seed()
        with pytest.raises(PreconditionError, match="Timeline must exist before generating images"):
            await pipeline.generate_images(project.id, "user-1", credentials)


class TestSceneVideos:
    @pytest.mark.asyncio
    async def test_partial_failure_advances(self, pipeline, registry, seed, credentials, timeline_with_images):
        registry.videos = FakeVideoProvider(failing_ids=["b"])
        project = seed(timeline=timeline_with_images, status=ProjectStatus.IMAGES_READY)

        result, results = await pipeline.generate_scene_videos(project.id, "user-1", credentials, resolution="480p")

        assert [(r.scene_id, r.success) for r in results] == [("a", True), ("b", False)]
        assert result.status is ProjectStatus.VIDEOS_READY
        assert result.timeline.scenes[0].video_path.endswith("scene-video-a.mp4")
        assert result.timeline.scenes[1].video_path is None
        assert registry.videos.calls == [("a", "480p"), ("b", "480p")]

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_only_that_scene(
        self, pipeline, registry, seed, credentials, timeline_with_images
    ):
        registry.videos = FakeVideoProvider(failing_ids=["a"], error=RuntimeError("connection reset"))
        project = seed(timeline=timeline_with_images, status=ProjectStatus.IMAGES_READY)

        result, results = await pipeline.generate_scene_videos(project.id, "user-1", credentials)

        assert [(r.scene_id, r.success) for r in results] == [("a", False), ("b", True)]
        assert results[0].error == "connection reset"
        assert result.status is ProjectStatus.VIDEOS_READY
        assert _stored(pipeline, project.id).status is ProjectStatus.VIDEOS_READY

    @pytest.mark.asyncio
    async def test_zero_success_leaves_status(self, pipeline, registry, seed, credentials, timeline_with_images):
        registry.videos = FakeVideoProvider(failing_ids=["a", "b"])
        project = seed(timeline=timeline_with_images, status=ProjectStatus.IMAGES_READY)

        result, results = await pipeline.generate_scene_videos(project.id, "user-1", credentials)

        assert not any(r.success for r in results)
        assert result.status is ProjectStatus.IMAGES_READY
        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.IMAGES_READY
        assert stored.version == project.version

    @pytest.mark.asyncio
    async def test_preconditions(self, pipeline, registry, seed, credentials, timeline_with_images):
        missing = timeline_with_images.with_scenes(
            [timeline_with_images.scenes[0], timeline_with_images.scenes[1].with_changes(image_path=None)]
        )
        project = seed(timeline=missing)
        registry.videos = FakeVideoProvider()
        with pytest.raises(PreconditionError, match=r"1 scene\(s\) are missing images"):
            await pipeline.generate_scene_videos(project.id, "user-1", credentials)

        ready = seed(timeline=timeline_with_images)
        with pytest.raises(PreconditionError, match="Unsupported resolution: 1080p"):
            await pipeline.generate_scene_videos(ready.id, "user-1", credentials, resolution="1080p")

        registry.videos = None
        with pytest.raises(PreconditionError, match="Replicate API token required"):
            await pipeline.generate_scene_videos(ready.id, "user-1", credentials)


class TestTimelineEdits:
    def test_duplicate_ids_rejected(self, pipeline, seed, timeline_with_images):
        project = seed(timeline=timeline_with_images)
        scene = timeline_with_images.scenes[0]
        with pytest.raises(PreconditionError, match="Duplicate scene id: a"):
            pipeline.update_timeline(project.id, "user-1", [scene, scene])

    def test_add_and_remove(self, pipeline, seed, timeline_with_images):
        project = seed(timeline=timeline_with_images)

        added = pipeline.add_scene(project.id, "user-1", TimelineScene(id="c", duration=2.0), after_scene_id="a")
        assert [s.id for s in added.timeline.scenes] == ["a", "c", "b"]

        removed = pipeline.remove_scene(project.id, "user-1", "a")
        assert [(s.id, s.order) for s in removed.timeline.scenes] == [("c", 0), ("b", 1)]

        with pytest.raises(SceneNotFoundError):
            pipeline.remove_scene(project.id, "user-1", "zzz")


class TestFinalVideo:
    @pytest.mark.asyncio
    async def test_missing_images_blocks_render(self, pipeline, seed, credentials, timeline_with_images, voice_file):
        missing = timeline_with_images.with_scenes(
            [timeline_with_images.scenes[0], timeline_with_images.scenes[1].with_changes(image_path=None)]
        )
        project = seed(timeline=missing, voiceover=Voiceover(file_path=voice_file, duration=10.0),
                       status=ProjectStatus.IMAGES_READY)

        with pytest.raises(PreconditionError, match=r"1 scene\(s\) are missing images"):
            await pipeline.generate_final_video(project.id, "user-1", credentials)
        assert _stored(pipeline, project.id).status is ProjectStatus.IMAGES_READY

    @pytest.mark.asyncio
    async def test_requires_voiceover(self, pipeline, seed, credentials, timeline_with_images):
        project = seed(timeline=timeline_with_images)
        with pytest.raises(PreconditionError, match="Voiceover is required"):
            await pipeline.generate_final_video(project.id, "user-1", credentials)

    @pytest.mark.asyncio
    async def test_approval_gate(self, pipeline, credentials, timeline_with_images, voice_file):
        project = pipeline.create_project("u", "ws1", "t", "x", requires_approval=True)
        project.timeline = timeline_with_images
        project.voiceover = Voiceover(file_path=voice_file, duration=10.0)
        pipeline.repository.save(project)

        with pytest.raises(PreconditionError, match="must be approved"):
            await pipeline.generate_final_video(project.id, "u", credentials)

        pipeline.approve_project(project.id, "owner")
        result = await pipeline.generate_final_video(project.id, "u", credentials)
        assert result.status is ProjectStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rejected_project_cannot_render(self, pipeline, credentials):
        project = pipeline.create_project("u", "ws1", "t", "x", requires_approval=True)
        pipeline.reject_project(project.id, "owner")
        with pytest.raises(PreconditionError, match="rejected"):
            await pipeline.generate_final_video(project.id, "u", credentials)

    @pytest.mark.asyncio
    async def test_assembler_failure_marks_failed(
        self, pipeline, seed, credentials, timeline_with_images, voice_file
    ):
        pipeline.assembler = FakeAssembler(error=EncoderError("FFmpeg failed: Invalid data found"))
        project = seed(timeline=timeline_with_images, voiceover=Voiceover(file_path=voice_file, duration=10.0))

        with pytest.raises(EncoderError):
            await pipeline.generate_final_video(project.id, "user-1", credentials)

        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.FAILED
        assert stored.error == "FFmpeg failed: Invalid data found"
        assert stored.output is None

    @pytest.mark.asyncio
    async def test_hashtag_failure_does_not_fail_render(
        self, pipeline, registry, seed, credentials, timeline_with_images, voice_file, fake_llm
    ):
        registry.llm = fake_llm([ProviderError("quota")])
        project = seed(timeline=timeline_with_images, voiceover=Voiceover(file_path=voice_file, duration=10.0))

        result = await pipeline.generate_final_video(project.id, "user-1", credentials)

        assert result.status is ProjectStatus.COMPLETED
        assert result.output.hashtags == []

    @pytest.mark.asyncio
    async def test_hashtag_transport_error_does_not_fail_render(
        self, pipeline, registry, seed, credentials, timeline_with_images, voice_file, fake_llm
    ):
        registry.llm = fake_llm([httpx.ConnectError("connection refused")])
        project = seed(timeline=timeline_with_images, voiceover=Voiceover(file_path=voice_file, duration=10.0))

        result = await pipeline.generate_final_video(project.id, "user-1", credentials)

        assert result.status is ProjectStatus.COMPLETED
        assert result.output.hashtags == []
        assert _stored(pipeline, project.id).status is ProjectStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unexpected_assembler_error_marks_failed(
        self, pipeline, seed, credentials, timeline_with_images, voice_file
    ):
        pipeline.assembler = FakeAssembler(error=RuntimeError("disk vanished"))
        project = seed(timeline=timeline_with_images, voiceover=Voiceover(file_path=voice_file, duration=10.0))

        with pytest.raises(AssemblyError, match="Video assembly failed: disk vanished"):
            await pipeline.generate_final_video(project.id, "user-1", credentials)

        stored = _stored(pipeline, project.id)
        assert stored.status is ProjectStatus.FAILED
        assert stored.error == "Video assembly failed: disk vanished"
        assert stored.output is None


class TestCoffeeReel:
    @pytest.mark.asyncio
    async def test_end_to_end(self, pipeline, registry, assembler, credentials, coffee_script, fake_llm, voice_file, tmp_path):
        registry.llm = fake_llm([
            "[]",
            "Coffee originated in Ethiopia and spread through Yemen.",
            '["coffee", "history"]',
            script_json(coffee_script),
            "[]",
            '["coffee", "#history", "Coffee"]',
        ])

        project = pipeline.create_project("user-1", "ws1", "History of coffee", "history of coffee")
        project = await pipeline.start_research(project.id, "user-1", credentials, duration_hint=40)
        assert project.status is ProjectStatus.SCRIPT_READY

        project = await pipeline.upload_voiceover(project.id, "user-1", credentials, voice_file, duration=40.0)
        assert [(s.start_time, s.end_time) for s in project.timeline.scenes] == [
            (0.0, 10.0), (10.0, 18.0), (18.0, 30.0), (30.0, 40.0),
        ]

        project, results = await pipeline.generate_images(project.id, "user-1", credentials, backend="pexels")
        assert all(r.success for r in results)
        assert registry.images.prompts[0] == "Ethiopian highlands at dawn, cinematic, high quality, professional"

        project = await pipeline.generate_final_video(project.id, "user-1", credentials)

        assert project.status is ProjectStatus.COMPLETED
        assert project.output.video_path == str(tmp_path / "outputs" / "ws1" / project.id / "output.mp4")
        assert project.output.hashtags == ["coffee", "history"]

        rendered = assembler.calls[0]
        assert rendered["voiceover"] == voice_file
        assert rendered["aspect_ratio"] == "9:16"
        assert [s.duration for s in rendered["scenes"]] == pytest.approx([10.0, 8.0, 12.0, 10.0])
        assert all(s.captions for s in rendered["scenes"])
