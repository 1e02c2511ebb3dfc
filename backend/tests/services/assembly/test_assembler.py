import re
from pathlib import Path

import pytest

from reelforge.core import AssemblyError, EncoderError, MissingAssetError
from reelforge.models import CaptionSpan, TimelineScene
from reelforge.services.assembly import (
    AssemblyScene,
    VideoAssembler,
    assembly_scene_from_timeline,
    rendered_caption_scenes,
)


class RecordingRunner:
    """Stands in for ffmpeg: records the command and the caption file it saw."""

    def __init__(self, error=None):
        self.error = error
        self.args = None
        self.srt = None

    async def __call__(self, args, timeout):
        self.args = args
        if "-filter_complex" in args:
            graph = args[args.index("-filter_complex") + 1]
            if "subtitles=" in graph:
                escaped = graph.split("subtitles=", 1)[1].split(":force_style=", 1)[0]
                srt_path = re.sub(r"\\(.)", r"\1", re.sub(r"\\(.)", r"\1", escaped))
                self.srt = Path(srt_path).read_text(encoding="utf-8")
        if self.error:
            raise self.error
        Path(args[-1]).write_bytes(b"mp4")


@pytest.fixture
def voiceover(tmp_path):
    path = tmp_path / "voice.mp3"
    path.write_bytes(b"audio")
    return str(path)


@pytest.fixture
def scenes(make_image):
    return [
        AssemblyScene(duration=2.0, image_path=make_image("a.png"), text="Hello there"),
        AssemblyScene(duration=3.0, image_path=make_image("b.png"), text="General Kenobi", start_time=2.0),
    ]


class TestVerifyInputs:
    def test_missing_voiceover(self, scenes):
        with pytest.raises(MissingAssetError, match="Voiceover file not found"):
            VideoAssembler.verify_inputs(scenes, "/nope/voice.mp3")

    def test_names_first_missing_image(self, scenes, voiceover):
        scenes[1].image_path = "/nope/b.png"
        with pytest.raises(MissingAssetError) as exc_info:
            VideoAssembler.verify_inputs(scenes, voiceover)
        assert exc_info.value.message == "Scene 2 image not found: /nope/b.png"

    def test_missing_clip(self, scenes, voiceover):
        scenes[0].video_path = "/nope/a.mp4"
        with pytest.raises(MissingAssetError, match="Scene 1 video clip"):
            VideoAssembler.verify_inputs(scenes, voiceover)

    def test_scene_without_visual(self, voiceover):
        with pytest.raises(MissingAssetError, match=r"Scene 1 image not found: \(none\)"):
            VideoAssembler.verify_inputs([AssemblyScene(duration=1.0)], voiceover)


class TestAssemble:
    @pytest.mark.asyncio
    async def test_success_writes_output_and_cleans_captions(self, scenes, voiceover, tmp_path):
        runner = RecordingRunner()
        output = tmp_path / "out" / "output.mp4"

        result = await VideoAssembler(runner=runner).assemble(scenes, voiceover, "9:16", output)

        assert result == output
        assert output.read_bytes() == b"mp4"
        assert runner.srt.startswith("1\n00:00:00,000 --> 00:00:02,000\nHello there\n")
        assert "00:00:02,000 --> 00:00:05,000\nGeneral Kenobi" in runner.srt
        assert list(output.parent.glob("*.srt")) == []

    @pytest.mark.asyncio
    async def test_failure_still_cleans_captions(self, scenes, voiceover, tmp_path):
        runner = RecordingRunner(error=EncoderError("FFmpeg failed: boom"))
        output = tmp_path / "out" / "output.mp4"

        with pytest.raises(EncoderError, match="boom"):
            await VideoAssembler(runner=runner).assemble(scenes, voiceover, "9:16", output)

        assert runner.srt is not None
        assert list(output.parent.glob("*.srt")) == []

    @pytest.mark.asyncio
    async def test_missing_file_never_runs_encoder(self, scenes, voiceover, tmp_path):
        runner = RecordingRunner()
        scenes[0].image_path = str(tmp_path / "gone.png")

        with pytest.raises(MissingAssetError):
            await VideoAssembler(runner=runner).assemble(scenes, voiceover, "9:16", tmp_path / "output.mp4")
        assert runner.args is None

    @pytest.mark.asyncio
    async def test_no_scenes(self, voiceover, tmp_path):
        with pytest.raises(AssemblyError, match="No scenes available"):
            await VideoAssembler(runner=RecordingRunner()).assemble([], voiceover, "9:16", tmp_path / "o.mp4")

    @pytest.mark.asyncio
    async def test_no_caption_text_skips_subtitles(self, make_image, voiceover, tmp_path):
        runner = RecordingRunner()
        scenes = [AssemblyScene(duration=1.0, image_path=make_image("a.png"))]

        await VideoAssembler(runner=runner).assemble(scenes, voiceover, "1:1", tmp_path / "o.mp4")

        assert runner.srt is None
        assert runner.args[runner.args.index("-map") + 1] == "[vcat]"


class TestRenderedCaptions:
    def test_captions_follow_rendered_offsets(self):
        # Second scene was hand-edited to start at 10s but renders right after the first
        scenes = [
            AssemblyScene(duration=2.0, text="a", captions=[CaptionSpan(start=0.0, end=2.0, text="a")]),
            AssemblyScene(duration=3.0, text="b", start_time=10.0,
                          captions=[CaptionSpan(start=10.0, end=11.0, text="b1"), CaptionSpan(start=11.0, end=14.0, text="b2")]),
        ]
        caption_scenes = rendered_caption_scenes(scenes)

        assert [(c.start_time, c.end_time) for c in caption_scenes] == [(0.0, 2.0), (2.0, 5.0)]
        assert [(c.start, c.end) for c in caption_scenes[1].captions] == [(2.0, 3.0), (3.0, 5.0)]

    def test_from_timeline_scene(self):
        scene = TimelineScene(id="s", start_time=1.0, end_time=1.0, scene_text="t", image_path="i.png")
        assembly_scene = assembly_scene_from_timeline(scene)
        assert assembly_scene.duration == 0.5
        assert (assembly_scene.scene_id, assembly_scene.image_path, assembly_scene.text) == ("s", "i.png", "t")
