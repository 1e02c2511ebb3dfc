"""
Timestamp aligner

Turns the script's scenes plus a known voiceover duration into a Timeline:
one time span per scene and a list of caption spans inside each scene.

Two modes:
    - Script-driven: each scene gets time proportional to its word count.
      Scenes without words get MIN_SCENE_DURATION and the rest of the time
      is split among the others. Captions are fixed-size word groups spread
      evenly across the scene.
    - Transcript-driven: scene words are matched greedily against the next
      unconsumed run of transcript words. Scenes are anchored on the first
      matched word; the first scene that fails to match, and every scene
      after it, share the remaining time proportionally. Captions are the
      transcript words themselves.

Alignment never raises for poor matches. The produced timeline always starts
at 0, is contiguous and ends at the total duration.
"""

import math
import re
from typing import List, Optional, Sequence, Tuple

from ...config import CAPTION_WORDS_PER_GROUP, MIN_MATCH_RATIO, MIN_SCENE_DURATION
from ...core import get_logger
from ...models import (
    CaptionSpan,
    ScriptScene,
    Timeline,
    TimelineScene,
    TranscriptSegment,
    TranscriptWord,
)

logger = get_logger(__name__, component="aligner")

# Transcript words skipped per scene word before giving up on that word
MATCH_LOOKAHEAD = 3
# Tokens shorter than this only match exactly
MIN_CONTAINMENT_LENGTH = 3

_NON_WORD = re.compile(r"[^\w]+")


def normalize_token(word: str) -> str:
    """Lower-case a word and strip everything except letters and digits."""
    return _NON_WORD.sub("", word.lower()).replace("_", "")


def tokenize(text: str) -> List[str]:
    return [token for token in (normalize_token(w) for w in text.split()) if token]


def count_words(text: str) -> int:
    return len(tokenize(text))


def _display_words(text: str) -> List[str]:
    # Keep punctuation for display but skip pure-punctuation "words" like dashes
    return [w for w in text.split() if normalize_token(w)]


def proportional_durations(word_counts: Sequence[int], total: float, floor: float = MIN_SCENE_DURATION) -> List[float]:
    """Split total across scenes by word count.

    Zero-word scenes receive `floor`; the remainder goes to the other scenes
    in proportion to their counts. If there are no words at all, or the floors
    alone would not fit, the time is split equally.
    """
    count = len(word_counts)
    if count == 0:
        return []
    if total <= 0:
        return [0.0] * count

    total_words = sum(word_counts)
    if total_words == 0:
        return [total / count] * count

    reserved = floor * sum(1 for c in word_counts if c == 0)
    if reserved >= total:
        return [total / count] * count

    remaining = total - reserved
    return [floor if c == 0 else remaining * c / total_words for c in word_counts]


def _boundaries(start: float, durations: Sequence[float], end: float) -> List[Tuple[float, float]]:
    """Lay durations end to end from start, pinning the last span to end."""
    spans: List[Tuple[float, float]] = []
    cursor = start
    for index, duration in enumerate(durations):
        span_start = cursor
        span_end = end if index == len(durations) - 1 else min(round(cursor + duration, 3), end)
        spans.append((span_start, span_end))
        cursor = span_end
    return spans


def script_captions(text: str, start: float, end: float, words_per_group: int = CAPTION_WORDS_PER_GROUP) -> List[CaptionSpan]:
    """Split narration into word groups spread evenly over [start, end]."""
    words = _display_words(text)
    if not words or end <= start:
        return []

    groups = [" ".join(words[i:i + words_per_group]) for i in range(0, len(words), words_per_group)]
    slot = (end - start) / len(groups)
    captions = []
    for index, group in enumerate(groups):
        caption_start = round(start + index * slot, 3)
        caption_end = end if index == len(groups) - 1 else round(start + (index + 1) * slot, 3)
        captions.append(CaptionSpan(start=caption_start, end=caption_end, text=group))
    return captions


def _clip(start: float, end: float, lower: float, upper: float) -> Tuple[float, float]:
    clipped_start = min(max(start, lower), upper)
    clipped_end = min(max(end, clipped_start), upper)
    return clipped_start, clipped_end


def _word_captions(words: Sequence[TranscriptWord], start: float, end: float, is_last: bool) -> List[CaptionSpan]:
    """Transcript words whose midpoint falls inside the scene, clipped to it."""
    captions = []
    for word in words:
        midpoint = (word.start + word.end) / 2
        inside = start <= midpoint < end or (is_last and midpoint >= end and start < end)
        if not inside or not word.text.strip():
            continue
        caption_start, caption_end = _clip(word.start, word.end, start, end)
        captions.append(CaptionSpan(start=caption_start, end=caption_end, text=word.text.strip()))
    return captions


def _segment_captions(segments: Sequence[TranscriptSegment], start: float, end: float) -> List[CaptionSpan]:
    """One caption per segment overlapping the scene, trimmed to the scene."""
    captions = []
    for segment in segments:
        if segment.end <= start or segment.start >= end or not segment.text.strip():
            continue
        caption_start, caption_end = _clip(segment.start, segment.end, start, end)
        if caption_end > caption_start:
            captions.append(CaptionSpan(start=caption_start, end=caption_end, text=segment.text.strip()))
    return captions


def _tokens_match(scene_token: str, transcript_token: str) -> bool:
    if not scene_token or not transcript_token:
        return False
    if scene_token == transcript_token:
        return True
    if min(len(scene_token), len(transcript_token)) < MIN_CONTAINMENT_LENGTH:
        return False
    return scene_token in transcript_token or transcript_token in scene_token


def _match_scene(tokens: Sequence[str], transcript: Sequence[str], cursor: int) -> Optional[Tuple[int, int]]:
    """Greedy match of scene tokens against transcript tokens starting at cursor.

    Returns:
        (first, last) transcript indices of the matched run, or None if fewer
        than MIN_MATCH_RATIO of the scene's tokens were found.
    """
    if not tokens or cursor >= len(transcript):
        return None

    position = cursor
    matched = 0
    first: Optional[int] = None
    last: Optional[int] = None

    for token in tokens:
        window_end = min(len(transcript), position + MATCH_LOOKAHEAD + 1)
        for index in range(position, window_end):
            if _tokens_match(token, transcript[index]):
                matched += 1
                if first is None:
                    first = index
                last = index
                position = index + 1
                break
        if position >= len(transcript):
            break

    required = max(1, math.ceil(len(tokens) * MIN_MATCH_RATIO))
    if first is None or last is None or matched < required:
        return None
    return first, last


def _build_scene(
    order: int,
    scene: ScriptScene,
    start: float,
    end: float,
    captions: List[CaptionSpan],
) -> TimelineScene:
    return TimelineScene(
        id=scene.id,
        order=order,
        start_time=start,
        end_time=end,
        duration=round(end - start, 3),
        scene_text=scene.text,
        scene_description=scene.visual_description,
        subtitles=captions,
    )


def _captions_for(
    scene: ScriptScene,
    start: float,
    end: float,
    is_last: bool,
    words: Sequence[TranscriptWord],
    segments: Sequence[TranscriptSegment],
) -> List[CaptionSpan]:
    if words:
        captions = _word_captions(words, start, end, is_last)
    elif segments:
        captions = _segment_captions(segments, start, end)
    else:
        captions = []
    return captions or script_captions(scene.text, start, end)


def _anchor_spans(
    scenes: Sequence[ScriptScene],
    total: float,
    words: Sequence[TranscriptWord],
) -> List[Tuple[float, float]]:
    """Scene spans from transcript matches, proportional for the unmatched tail."""
    transcript = [normalize_token(w.text) for w in words]
    matches: List[Tuple[int, int]] = []
    cursor = 0
    for scene in scenes:
        hit = _match_scene(tokenize(scene.text), transcript, cursor)
        if hit is None:
            break
        matches.append(hit)
        cursor = hit[1] + 1

    if not matches:
        logger.info("Transcript matching failed, using proportional timing", extra={
            "scene_count": len(scenes),
        })
        return _boundaries(0.0, proportional_durations([count_words(s.text) for s in scenes], total), total)

    # Each matched scene starts at its first word; the first scene starts at 0
    boundaries = [0.0]
    previous = 0.0
    for first, _ in matches[1:]:
        previous = min(max(round(words[first].start, 3), previous), total)
        boundaries.append(previous)

    if len(matches) == len(scenes):
        tail_start = total
    else:
        tail_start = min(max(round(words[matches[-1][1]].end, 3), previous), total)

    spans = [(boundaries[i], boundaries[i + 1]) for i in range(len(boundaries) - 1)]
    spans.append((boundaries[-1], tail_start))

    unmatched = scenes[len(matches):]
    if unmatched:
        logger.info("Unmatched trailing scenes use proportional timing", extra={
            "matched": len(matches),
            "unmatched": len(unmatched),
        })
        durations = proportional_durations([count_words(s.text) for s in unmatched], total - tail_start)
        spans.extend(_boundaries(tail_start, durations, total))

    return spans


def align(
    scenes: Sequence[ScriptScene],
    total_duration: float,
    words: Optional[Sequence[TranscriptWord]] = None,
    segments: Optional[Sequence[TranscriptSegment]] = None,
) -> Timeline:
    """Compute a Timeline for the script scenes.

    Args:
        scenes: Script scenes in playback order
        total_duration: Voiceover duration in seconds
        words: Optional word-level transcript timings
        segments: Optional segment-level transcript timings, used for
            captions when word timings are absent

    Returns:
        Contiguous Timeline covering [0, total_duration]
    """
    if not scenes:
        return Timeline(scenes=[], total_duration=0.0)

    words = list(words or [])
    segments = list(segments or [])

    if total_duration <= 0:
        timeline_scenes = [_build_scene(i, s, 0.0, 0.0, []) for i, s in enumerate(scenes)]
        return Timeline(scenes=timeline_scenes, total_duration=0.0)

    total = float(total_duration)
    if words:
        spans = _anchor_spans(scenes, total, words)
    else:
        spans = _boundaries(0.0, proportional_durations([count_words(s.text) for s in scenes], total), total)

    timeline_scenes = []
    last_index = len(scenes) - 1
    for index, (scene, (start, end)) in enumerate(zip(scenes, spans)):
        captions = _captions_for(scene, start, end, index == last_index, words, segments)
        timeline_scenes.append(_build_scene(index, scene, start, end, captions))

    mode = "transcript" if words else "script"
    logger.info("Aligned timeline", extra={
        "mode": mode,
        "scene_count": len(timeline_scenes),
        "total_duration": total,
    })
    return Timeline(scenes=timeline_scenes, total_duration=total)


def caption_timeline(timeline: Timeline) -> Timeline:
    """Give scenes without captions script-driven captions over their own span."""
    scenes = []
    for scene in timeline.scenes:
        if scene.subtitles:
            scenes.append(scene)
            continue
        start = scene.start_time
        end = scene.end_time if scene.end_time > start else start + scene.effective_duration
        scenes.append(scene.with_changes(subtitles=script_captions(scene.scene_text, start, end)))
    return timeline.model_copy(update={"scenes": scenes})
