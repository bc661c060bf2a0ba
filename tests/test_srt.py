"""Unit tests for SRT synthesis."""

import pytest

from stream_recorder.captions.srt import (
    CaptionEntry,
    CaptionObservation,
    deduplicate,
    format_time_for_srt,
    generate_srt,
    render_srt,
    synthesize,
)


def _obs(*pairs):
    return [CaptionObservation(text=text, timestamp=ts) for text, ts in pairs]


class TestFormatTimeForSrt:
    """Tests for format_time_for_srt."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "00:00:00,000"),
            (3725.4, "01:02:05,400"),
            (2.3, "00:00:02,300"),
            (59.9999, "00:01:00,000"),
            (360000.5, "100:00:00,500"),
        ],
    )
    def test_format(self, seconds, expected):
        """Test HH:MM:SS,mmm output."""
        assert format_time_for_srt(seconds) == expected

    def test_negative_clamps_to_zero(self):
        """Test that negative times are shown as zero."""
        assert format_time_for_srt(-1.5) == "00:00:00,000"


class TestDeduplicate:
    """Tests for deduplicate."""

    def test_same_text_within_window_dropped(self):
        """Test that repeats closer than 1s collapse to the first."""
        kept = deduplicate(_obs(("Hi", 1.0), ("Hi", 1.9)))
        assert [(o.text, o.timestamp) for o in kept] == [("Hi", 1.0)]

    def test_same_text_after_window_kept(self):
        """Test that a repeat 1s or more later is a new caption."""
        kept = deduplicate(_obs(("Hi", 1.0), ("Hi", 2.0)))
        assert len(kept) == 2

    def test_window_crosses_whole_seconds(self):
        """Test that closeness, not the whole-second bucket, decides."""
        kept = deduplicate(_obs(("Hi", 1.9), ("Hi", 2.1)))
        assert len(kept) == 1

    def test_different_text_kept(self):
        """Test that different captions at the same time are both kept."""
        kept = deduplicate(_obs(("A", 1.0), ("B", 1.0)))
        assert [o.text for o in kept] == ["A", "B"]


class TestSynthesize:
    """Tests for synthesize."""

    def test_hello_world(self):
        """Test the reference two-caption example."""
        entries = synthesize(_obs(("Hello", 0.0), ("Hello", 0.5), ("World", 2.0)))

        assert entries == [
            CaptionEntry(index=1, start=0.0, end=2.0, text="Hello"),
            CaptionEntry(index=2, start=2.0, end=5.0, text="World"),
        ]

    def test_sorted_regardless_of_input_order(self):
        """Test that entries come out in time order."""
        entries = synthesize(_obs(("C", 9.0), ("A", 1.0), ("B", 4.0)))

        assert [e.text for e in entries] == ["A", "B", "C"]
        assert [e.index for e in entries] == [1, 2, 3]
        starts = [e.start for e in entries]
        assert starts == sorted(starts)

    def test_end_is_next_start(self):
        """Test end times chain to the following entry."""
        entries = synthesize(_obs(("A", 1.0), ("B", 1.5), ("C", 7.0)))

        assert [e.end for e in entries] == [1.5, 7.0, 10.0]

    def test_custom_trailing_duration(self):
        """Test the last entry length setting."""
        entries = synthesize(_obs(("A", 1.0)), trailing_duration=5.0)
        assert entries[0].end == 6.0

    def test_empty(self):
        """Test that no observations give no entries."""
        assert synthesize([]) == []


class TestRenderSrt:
    """Tests for render_srt and generate_srt."""

    def test_render(self):
        """Test record layout."""
        text = render_srt([CaptionEntry(index=1, start=1.0, end=2.5, text="Hi")])
        assert text == "1\n00:00:01,000 --> 00:00:02,500\nHi\n\n"

    def test_generate_hello_world(self):
        """Test the full caption file for the reference example."""
        srt = generate_srt(_obs(("Hello", 0.0), ("Hello", 0.5), ("World", 2.0)))

        assert srt == (
            "1\n00:00:00,000 --> 00:00:02,000\nHello\n\n"
            "2\n00:00:02,000 --> 00:00:05,000\nWorld\n\n"
        )

    def test_generate_empty(self):
        """Test that no observations give an empty file."""
        assert generate_srt([]) == ""
