"""
SRT caption formatter

Renders timed scenes into SubRip text for the encoder's subtitles filter.

Overlap policy: hand-edited timelines can contain overlapping or
out-of-order scenes. Blocks are emitted in scene order and each block is
clamped to start no earlier than the previous block ended, so timestamps
never go backwards. Blocks squeezed to zero length are dropped.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple

from ...config import CAPTION_WORDS_PER_BLOCK
from ...models import CaptionSpan


@dataclass
class CaptionScene:
    start_time: float
    end_time: float
    text: str
    captions: List[CaptionSpan] = field(default_factory=list)


@dataclass
class CaptionBlock:
    index: int
    start: float
    end: float
    text: str


def format_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm"""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _text_blocks(scene: CaptionScene, words_per_block: int) -> List[Tuple[float, float, str]]:
    words = scene.text.split()
    if not words:
        return []
    groups = [" ".join(words[i:i + words_per_block]) for i in range(0, len(words), words_per_block)]
    slot = (scene.end_time - scene.start_time) / len(groups)
    blocks = []
    for index, text in enumerate(groups):
        end = scene.end_time if index == len(groups) - 1 else scene.start_time + (index + 1) * slot
        blocks.append((scene.start_time + index * slot, end, text))
    return blocks


def _raw_blocks(scene: CaptionScene, words_per_block: int) -> List[Tuple[float, float, str]]:
    if not scene.captions:
        return _text_blocks(scene, words_per_block)

    blocks = []
    chunk: List[Tuple[float, float, str]] = []
    word_count = 0
    for caption in scene.captions:
        text = " ".join(caption.text.split())
        if not text:
            continue
        words = len(text.split())
        if chunk and word_count + words > words_per_block:
            blocks.append(_merge(chunk))
            chunk, word_count = [], 0
        chunk.append((caption.start, caption.end, text))
        word_count += words
    if chunk:
        blocks.append(_merge(chunk))
    return blocks


def _merge(chunk: List[Tuple[float, float, str]]) -> Tuple[float, float, str]:
    return chunk[0][0], max(end for _, end, _ in chunk), " ".join(text for _, _, text in chunk)


def build_caption_blocks(
    scenes: Sequence[CaptionScene],
    words_per_block: int = CAPTION_WORDS_PER_BLOCK,
) -> List[CaptionBlock]:
    """Group caption spans into numbered, non-decreasing blocks of at most `words_per_block` words.

    A single span longer than the cap is kept whole since its timing cannot be split.
    """
    blocks: List[CaptionBlock] = []
    floor = 0.0
    for scene in scenes:
        for start, end, text in _raw_blocks(scene, words_per_block):
            start = max(start, floor)
            end = max(end, start)
            if end - start < 0.001:
                continue
            blocks.append(CaptionBlock(index=len(blocks) + 1, start=start, end=end, text=text))
            floor = end
    return blocks


def format_srt(scenes: Sequence[CaptionScene], words_per_block: int = CAPTION_WORDS_PER_BLOCK) -> str:
    """Render scenes as SRT text."""
    entries = []
    for block in build_caption_blocks(scenes, words_per_block):
        entries.append(
            f"{block.index}\n"
            f"{format_timestamp(block.start)} --> {format_timestamp(block.end)}\n"
            f"{block.text}\n"
        )
    return "\n".join(entries)


def write_srt(scenes: Sequence[CaptionScene], path: Path) -> Path:
    path.write_text(format_srt(scenes), encoding="utf-8")
    return path
