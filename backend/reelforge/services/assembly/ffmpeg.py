"""
ffmpeg command construction and execution for reel assembly

Every scene becomes one filter chain that ends in a labelled stream
([v0], [v1], ...) of identical resolution, frame rate and pixel format:
    - static image: upscaled, cropped, slow zoom-in via zoompan
    - clip: looped input, scaled, cropped and trimmed to the scene duration
The chains are concatenated, subtitles are burned in and the voiceover is
mapped as the only audio track. -shortest bounds the output by the audio.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ...config import (
    ASPECT_RATIO_DIMENSIONS,
    AUDIO_BITRATE,
    AUDIO_CODEC,
    DEFAULT_ASPECT_RATIO,
    ENCODER_STDERR_TAIL_LINES,
    FFMPEG_PATH,
    KEN_BURNS_MAX_ZOOM,
    OUTPUT_FPS,
    PIXEL_FORMAT,
    SUBTITLE_STYLE,
    VIDEO_CODEC,
    VIDEO_CRF,
    VIDEO_PRESET,
)
from ...core import EncoderError, EncoderNotInstalledError, get_logger
from ...models import CaptionSpan

logger = get_logger(__name__, component="ffmpeg")


@dataclass
class AssemblyScene:
    """One scene as the assembler sees it"""
    duration: float
    image_path: Optional[str] = None
    video_path: Optional[str] = None
    captions: List[CaptionSpan] = field(default_factory=list)
    text: str = ""
    start_time: float = 0.0
    scene_id: str = ""


def output_dimensions(aspect_ratio: str) -> Tuple[int, int]:
    """9:16 -> 1080x1920, 16:9 -> 1920x1080, 1:1 -> 1080x1080"""
    return ASPECT_RATIO_DIMENSIONS.get(aspect_ratio, ASPECT_RATIO_DIMENSIONS[DEFAULT_ASPECT_RATIO])


def escape_filter_path(path: str) -> str:
    """Escape a file path for use as a filter option value inside a filtergraph.

    The option parser and the graph parser each strip one level of backslash
    escapes, so the path is escaped for the option level first and the graph
    level second.
    """
    option_value = re.sub(r"([\\':])", r"\\\1", path.replace("\\", "/"))
    return re.sub(r"([\\'\[\],;])", r"\\\1", option_value)


def subtitle_force_style() -> str:
    return ",".join(f"{key}={value}" for key, value in SUBTITLE_STYLE.items())


def _normalize_chain(duration: float) -> str:
    return f"trim=duration={duration:.3f},setpts=PTS-STARTPTS,setsar=1,format={PIXEL_FORMAT}"


def build_scene_input_args(scene: AssemblyScene) -> List[str]:
    if scene.video_path:
        return ["-stream_loop", "-1", "-i", scene.video_path]
    return ["-i", scene.image_path]


def build_scene_filter(index: int, scene: AssemblyScene, width: int, height: int, fps: int = OUTPUT_FPS) -> str:
    """Filter chain for one scene, reading [index:v] and writing [v{index}]."""
    duration = scene.duration
    if scene.video_path:
        return (
            f"[{index}:v]scale={width}:{height}:force_original_aspect_ratio=increase,"
            f"crop={width}:{height},fps={fps},"
            f"{_normalize_chain(duration)}[v{index}]"
        )

    # Ken Burns: zoompan emits `frames` frames from the single input frame.
    # Working at 2x resolution keeps the zoom from jittering.
    frames = max(1, round(duration * fps))
    step = (KEN_BURNS_MAX_ZOOM - 1.0) / frames
    return (
        f"[{index}:v]scale={width * 2}:{height * 2}:force_original_aspect_ratio=increase,"
        f"crop={width * 2}:{height * 2},"
        f"zoompan=z='min(zoom+{step:.6f},{KEN_BURNS_MAX_ZOOM})'"
        f":x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
        f":d={frames}:s={width}x{height}:fps={fps},"
        f"{_normalize_chain(duration)}[v{index}]"
    )


def build_filter_graph(
    scenes: Sequence[AssemblyScene],
    width: int,
    height: int,
    subtitle_path: Optional[str] = None,
    fps: int = OUTPUT_FPS,
) -> Tuple[str, str]:
    """Full filter graph and the label of its final video stream."""
    chains = [build_scene_filter(i, scene, width, height, fps) for i, scene in enumerate(scenes)]
    labels = "".join(f"[v{i}]" for i in range(len(scenes)))
    chains.append(f"{labels}concat=n={len(scenes)}:v=1:a=0[vcat]")

    if not subtitle_path:
        return ";".join(chains), "[vcat]"

    chains.append(
        f"[vcat]subtitles={escape_filter_path(subtitle_path)}"
        f":force_style='{subtitle_force_style()}'[vout]"
    )
    return ";".join(chains), "[vout]"


def build_assembly_command(
    scenes: Sequence[AssemblyScene],
    voiceover_path: str,
    output_path: str,
    aspect_ratio: str,
    subtitle_path: Optional[str] = None,
    ffmpeg_path: str = FFMPEG_PATH,
) -> List[str]:
    """Argument list for a single ffmpeg invocation producing the reel."""
    width, height = output_dimensions(aspect_ratio)
    graph, video_label = build_filter_graph(scenes, width, height, subtitle_path)

    cmd = [ffmpeg_path, "-y", "-hide_banner"]
    for scene in scenes:
        cmd.extend(build_scene_input_args(scene))
    cmd.extend(["-i", voiceover_path])
    audio_index = len(scenes)

    cmd.extend([
        "-filter_complex", graph,
        "-map", video_label,
        "-map", f"{audio_index}:a:0",
        "-c:v", VIDEO_CODEC,
        "-preset", VIDEO_PRESET,
        "-crf", str(VIDEO_CRF),
        "-r", str(OUTPUT_FPS),
        "-pix_fmt", PIXEL_FORMAT,
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-shortest",
        "-movflags", "+faststart",
        output_path,
    ])
    return cmd


def stderr_tail(stderr: bytes, lines: int = ENCODER_STDERR_TAIL_LINES) -> List[str]:
    text = stderr.decode("utf-8", errors="replace")
    return [line for line in text.splitlines() if line.strip()][-lines:]


async def run_encoder(args: List[str], timeout: Optional[float] = None) -> None:
    """Run ffmpeg once and wait for it.

    Args:
        args: Complete argument list, binary first
        timeout: Optional supervisory timeout; the process is killed on expiry

    Raises:
        EncoderNotInstalledError: If the binary cannot be executed
        EncoderError: On non-zero exit (message carries the stderr tail) or timeout
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, PermissionError) as e:
        logger.error("Encoder binary unavailable", extra={"binary": args[0], "error": str(e)})
        raise EncoderNotInstalledError(args[0]) from e

    try:
        if timeout:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        else:
            _, stderr = await process.communicate()
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise EncoderError(f"FFmpeg timed out after {timeout:.0f}s")

    if process.returncode != 0:
        tail = stderr_tail(stderr or b"")
        if tail:
            message = "FFmpeg failed: " + "\n".join(tail)
        else:
            message = f"FFmpeg failed with exit code {process.returncode}"
        logger.error("Encoder failed", extra={"returncode": process.returncode, "stderr_tail": tail})
        raise EncoderError(message, returncode=process.returncode, stderr_tail=tail)
