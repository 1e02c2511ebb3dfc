"""
Video assembler

assemble(scenes, voiceover, aspect ratio) -> output file. Verifies inputs,
writes the caption file, runs the encoder once and removes temp files
whether or not the encoder succeeded.
"""

import uuid
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ...config import FFMPEG_PATH
from ...core import AssemblyError, LogTimer, MissingAssetError, get_logger
from ...models import CaptionSpan, TimelineScene
from ..captions import CaptionScene, format_srt
from .ffmpeg import AssemblyScene, build_assembly_command, run_encoder

logger = get_logger(__name__, component="video_assembler")

EncoderRunner = Callable[[List[str], Optional[float]], Awaitable[None]]


def assembly_scene_from_timeline(scene: TimelineScene) -> AssemblyScene:
    return AssemblyScene(
        duration=scene.effective_duration,
        image_path=scene.image_path,
        video_path=scene.video_path,
        captions=list(scene.subtitles),
        text=scene.scene_text,
        start_time=scene.start_time,
        scene_id=scene.id,
    )


def _shift_captions(captions: Sequence[CaptionSpan], shift: float, lower: float, upper: float) -> List[CaptionSpan]:
    shifted = []
    for caption in captions:
        start = min(max(caption.start + shift, lower), upper)
        end = min(max(caption.end + shift, start), upper)
        shifted.append(CaptionSpan(start=start, end=end, text=caption.text))
    return shifted


def rendered_caption_scenes(scenes: Sequence[AssemblyScene]) -> List[CaptionScene]:
    """Caption scenes on the rendered clock.

    Scenes are rendered back to back for their own durations, so captions
    from hand-edited timelines are moved to where their scene actually plays.
    """
    caption_scenes = []
    offset = 0.0
    for scene in scenes:
        end = offset + scene.duration
        caption_scenes.append(CaptionScene(
            start_time=offset,
            end_time=end,
            text=scene.text,
            captions=_shift_captions(scene.captions, offset - scene.start_time, offset, end),
        ))
        offset = end
    return caption_scenes


class VideoAssembler:
    """Drives the external encoder to produce the final reel"""

    def __init__(
        self,
        ffmpeg_path: str = FFMPEG_PATH,
        timeout: Optional[float] = None,
        runner: EncoderRunner = run_encoder,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self.runner = runner

    @staticmethod
    def verify_inputs(scenes: Sequence[AssemblyScene], voiceover_path: str) -> None:
        """Fail fast, naming the first missing file.

        Raises:
            MissingAssetError: If a referenced file does not exist
        """
        if not voiceover_path or not Path(voiceover_path).is_file():
            raise MissingAssetError("Voiceover file", voiceover_path or "(none)")

        for number, scene in enumerate(scenes, start=1):
            if scene.video_path and not Path(scene.video_path).is_file():
                raise MissingAssetError(f"Scene {number} video clip", scene.video_path)
            if scene.image_path and not Path(scene.image_path).is_file():
                raise MissingAssetError(f"Scene {number} image", scene.image_path)
            if not scene.video_path and not scene.image_path:
                raise MissingAssetError(f"Scene {number} image", "(none)")

    async def assemble(
        self,
        scenes: Sequence[AssemblyScene],
        voiceover_path: str,
        aspect_ratio: str,
        output_path: Path,
    ) -> Path:
        """Render the reel to output_path.

        Raises:
            AssemblyError: If there are no scenes
            MissingAssetError: If an input file is missing
            EncoderError: If ffmpeg fails or is not installed
        """
        if not scenes:
            raise AssemblyError("No scenes available for video assembly")

        self.verify_inputs(scenes, voiceover_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        srt_text = format_srt(rendered_caption_scenes(scenes))
        subtitle_path = output_path.parent / f"captions-{uuid.uuid4()}.srt"

        try:
            if srt_text:
                subtitle_path.write_text(srt_text, encoding="utf-8")
            args = build_assembly_command(
                scenes,
                voiceover_path=voiceover_path,
                output_path=str(output_path),
                aspect_ratio=aspect_ratio,
                subtitle_path=str(subtitle_path) if srt_text else None,
                ffmpeg_path=self.ffmpeg_path,
            )
            with LogTimer(logger, f"ffmpeg assembly of {len(scenes)} scenes"):
                await self.runner(args, self.timeout)
        finally:
            subtitle_path.unlink(missing_ok=True)

        return output_path
