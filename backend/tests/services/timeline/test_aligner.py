"""
Tests for the timestamp aligner

Covers script-driven proportional timing, transcript matching with its
fallbacks, and caption span generation.
"""

import pytest

from reelforge.models import ScriptScene, TranscriptSegment, TranscriptWord
from reelforge.services.timeline import (
    align,
    caption_timeline,
    count_words,
    proportional_durations,
    script_captions,
)


def _scene(scene_id: str, text: str) -> ScriptScene:
    return ScriptScene(id=scene_id, text=text)


def _words(*items):
    return [TranscriptWord(text=text, start=start, end=end) for text, start, end in items]


def _assert_contiguous(timeline, total):
    scenes = timeline.scenes
    assert scenes[0].start_time == 0.0
    for current, following in zip(scenes, scenes[1:]):
        assert current.end_time == following.start_time
    assert scenes[-1].end_time == pytest.approx(total)
    assert timeline.is_contiguous()


class TestProportionalDurations:
    def test_zero_word_scene_gets_floor(self):
        durations = proportional_durations([10, 0, 30], 40.0, floor=0.5)
        assert durations == pytest.approx([9.875, 0.5, 29.625])

    def test_no_words_splits_equally(self):
        assert proportional_durations([0, 0, 0, 0], 10.0) == pytest.approx([2.5, 2.5, 2.5, 2.5])

    def test_floors_that_do_not_fit_split_equally(self):
        assert proportional_durations([5, 0, 0], 0.9, floor=0.5) == pytest.approx([0.3, 0.3, 0.3])

    def test_empty(self):
        assert proportional_durations([], 10.0) == []


class TestScriptDrivenAlignment:
    def test_spec_example_ten_zero_thirty(self):
        scenes = [
            _scene("a", " ".join(["word"] * 10)),
            _scene("b", "..."),
            _scene("c", " ".join(["word"] * 30)),
        ]
        timeline = align(scenes, 40.0)

        assert [s.start_time for s in timeline.scenes] == pytest.approx([0.0, 9.875, 10.375])
        assert [s.end_time for s in timeline.scenes] == pytest.approx([9.875, 10.375, 40.0])
        assert timeline.scenes[1].duration == pytest.approx(0.5)
        _assert_contiguous(timeline, 40.0)

    def test_coffee_scenario_durations(self, coffee_script):
        assert [count_words(s.text) for s in coffee_script.scenes] == [10, 8, 12, 10]

        timeline = align(coffee_script.scenes, 40.0)

        assert [s.duration for s in timeline.scenes] == pytest.approx([10.0, 8.0, 12.0, 10.0])
        assert sum(s.duration for s in timeline.scenes) == pytest.approx(40.0)
        assert [s.id for s in timeline.scenes] == ["s1", "s2", "s3", "s4"]
        assert [s.order for s in timeline.scenes] == [0, 1, 2, 3]
        _assert_contiguous(timeline, 40.0)

    @pytest.mark.parametrize("counts,total", [
        ([1], 3.3),
        ([3, 7, 2], 17.123),
        ([0, 0, 4], 9.0),
        ([13, 1, 1, 1, 22, 5], 61.7),
    ])
    def test_always_contiguous(self, counts, total):
        scenes = [_scene(f"s{i}", " ".join(["w"] * c) or "--") for i, c in enumerate(counts)]
        _assert_contiguous(align(scenes, total), total)

    def test_empty_scene_list(self):
        timeline = align([], 30.0)
        assert timeline.scenes == []
        assert timeline.total_duration == 0.0

    def test_non_positive_duration_gives_zero_length_scenes(self):
        timeline = align([_scene("a", "one two"), _scene("b", "three")], 0.0)
        assert [(s.start_time, s.end_time) for s in timeline.scenes] == [(0.0, 0.0), (0.0, 0.0)]
        assert all(s.subtitles == [] for s in timeline.scenes)

    def test_scene_fields_copied_from_script(self):
        scene = ScriptScene(id="x", text="Hello there", visual_description="A wave")
        result = align([scene], 5.0).scenes[0]
        assert result.scene_text == "Hello there"
        assert result.scene_description == "A wave"
        assert result.image_prompt == "pending"
        assert result.image_path is None

    def test_script_captions_fill_each_scene(self):
        timeline = align([_scene("a", "one two three four five six seven")], 7.0)
        captions = timeline.scenes[0].subtitles
        assert [c.text for c in captions] == ["one two three four five", "six seven"]
        assert captions[0].start == 0.0
        assert captions[-1].end == 7.0


class TestTranscriptDrivenAlignment:
    def test_scenes_anchor_on_matched_words(self):
        scenes = [_scene("a", "Hello big world."), _scene("b", "Goodbye small moon!")]
        words = _words(
            ("Hello", 0.0, 0.5), ("big", 0.5, 1.0), ("world.", 1.0, 1.5),
            ("Goodbye", 2.0, 2.5), ("small", 2.5, 3.0), ("moon!", 3.0, 3.5),
        )

        timeline = align(scenes, 4.0, words=words)

        assert [(s.start_time, s.end_time) for s in timeline.scenes] == [(0.0, 2.0), (2.0, 4.0)]
        assert [c.text for c in timeline.scenes[0].subtitles] == ["Hello", "big", "world."]
        assert [c.text for c in timeline.scenes[1].subtitles] == ["Goodbye", "small", "moon!"]
        _assert_contiguous(timeline, 4.0)

    def test_unmatched_scene_shares_remaining_time(self):
        scenes = [_scene("a", "Hello big world"), _scene("b", "Completely different words here")]
        words = _words(
            ("Hello", 0.0, 0.5), ("big", 0.5, 1.0), ("world", 1.0, 1.5),
            ("Goodbye", 2.0, 2.5), ("small", 2.5, 3.0), ("moon", 3.0, 3.5),
        )

        timeline = align(scenes, 4.0, words=words)

        assert [(s.start_time, s.end_time) for s in timeline.scenes] == [(0.0, 1.5), (1.5, 4.0)]
        _assert_contiguous(timeline, 4.0)

    def test_no_match_falls_back_to_proportional(self):
        scenes = [_scene("a", "alpha beta"), _scene("b", "gamma delta epsilon zeta")]
        words = _words(("unrelated", 0.0, 1.0), ("speech", 1.0, 2.0))

        timeline = align(scenes, 6.0, words=words)

        assert [s.duration for s in timeline.scenes] == pytest.approx([2.0, 4.0])
        _assert_contiguous(timeline, 6.0)

    def test_segments_used_for_captions_without_words(self):
        scenes = [_scene("a", "First part."), _scene("b", "Second part.")]
        segments = [
            TranscriptSegment(text="First part.", start=0.0, end=2.0),
            TranscriptSegment(text="Second part.", start=2.0, end=4.0),
        ]

        timeline = align(scenes, 4.0, segments=segments)

        assert [c.text for c in timeline.scenes[0].subtitles] == ["First part."]
        assert [c.text for c in timeline.scenes[1].subtitles] == ["Second part."]


class TestCaptions:
    def test_script_captions_groups_of_five(self):
        text = " ".join(f"w{i}" for i in range(12))
        captions = script_captions(text, 0.0, 6.0)
        assert [(c.start, c.end) for c in captions] == [(0.0, 2.0), (2.0, 4.0), (4.0, 6.0)]
        assert captions[2].text == "w10 w11"

    def test_script_captions_empty_span(self):
        assert script_captions("some words", 3.0, 3.0) == []

    def test_caption_timeline_fills_missing_subtitles(self):
        timeline = align([_scene("a", "one two three")], 3.0)
        bare = timeline.with_scenes([timeline.scenes[0].with_changes(subtitles=[])])

        captioned = caption_timeline(bare)

        assert [c.text for c in captioned.scenes[0].subtitles] == ["one two three"]
        assert bare.scenes[0].subtitles == []
