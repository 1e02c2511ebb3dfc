"""
Video assembly - ffmpeg rendering of the final reel
"""

from .assembler import VideoAssembler, assembly_scene_from_timeline, rendered_caption_scenes
from .ffmpeg import (
    AssemblyScene,
    build_assembly_command,
    build_filter_graph,
    build_scene_filter,
    build_scene_input_args,
    escape_filter_path,
    output_dimensions,
    run_encoder,
    stderr_tail,
    subtitle_force_style,
)

__all__ = [
    "AssemblyScene",
    "VideoAssembler",
    "assembly_scene_from_timeline",
    "build_assembly_command",
    "build_filter_graph",
    "build_scene_filter",
    "build_scene_input_args",
    "escape_filter_path",
    "output_dimensions",
    "rendered_caption_scenes",
    "run_encoder",
    "stderr_tail",
    "subtitle_force_style",
]
