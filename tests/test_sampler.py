"""Unit tests for the caption sampler."""

from conftest import caption_snapshot

from stream_recorder.captions.dom import DomNode
from stream_recorder.captions.sampler import CaptionSampler, SamplerState
from stream_recorder.media import PageSnapshot


def _started():
    sampler = CaptionSampler()
    sampler.start()
    return sampler


class TestCaptionSamplerLifecycle:
    """Tests for sampler state transitions."""

    def test_starts_idle(self):
        """Test the initial state."""
        sampler = CaptionSampler()
        assert sampler.state is SamplerState.IDLE
        assert sampler.is_sampling is False

    def test_idle_sampler_ignores_snapshots(self):
        """Test that nothing is recorded before start."""
        sampler = CaptionSampler()
        assert sampler.sample(caption_snapshot("Hello", 1.0)) is None
        assert sampler.observations == []

    def test_start_resets_log(self):
        """Test that a new start clears earlier observations."""
        sampler = _started()
        sampler.sample(caption_snapshot("Hello", 1.0))
        sampler.stop()
        sampler.start()

        assert sampler.observations == []
        assert sampler.last_text == ""

    def test_ended_snapshot_stops_sampling(self):
        """Test that end of content returns the sampler to IDLE."""
        sampler = _started()
        accepted = sampler.sample(caption_snapshot("Last words", 59.0, ended=True))

        assert accepted == "Last words"
        assert sampler.state is SamplerState.IDLE


class TestCaptionSamplerSampling:
    """Tests for caption acceptance."""

    def test_records_new_text_with_media_time(self):
        """Test that a caption is stored at the snapshot's media time."""
        sampler = _started()
        assert sampler.sample(caption_snapshot("Hello", 1.25)) == "Hello"

        assert len(sampler.observations) == 1
        assert sampler.observations[0].text == "Hello"
        assert sampler.observations[0].timestamp == 1.25

    def test_repeated_text_is_skipped(self):
        """Test that an unchanged caption is recorded once."""
        sampler = _started()
        sampler.sample(caption_snapshot("Hello", 0.0))
        assert sampler.sample(caption_snapshot("Hello", 0.2)) is None
        sampler.sample(caption_snapshot("World", 2.0))
        sampler.sample(caption_snapshot("Hello", 4.0))

        assert [o.text for o in sampler.observations] == ["Hello", "World", "Hello"]

    def test_filtered_text_is_rejected(self):
        """Test that UI chrome never becomes a caption."""
        sampler = _started()
        assert sampler.sample(caption_snapshot("Loading", 0.5)) is None
        assert sampler.observations == []

    def test_no_region_records_nothing(self):
        """Test a snapshot without a caption region."""
        sampler = _started()
        assert sampler.sample(PageSnapshot(regions=[None, None], current_time=3.0)) is None

    def test_labels_are_cleaned(self):
        """Test that translation labels are stripped before recording."""
        sampler = _started()
        region = DomNode.element("AI原声翻译（Beta） 大家好")
        sampler.sample(PageSnapshot(regions=[region], current_time=2.0))

        assert sampler.observations[0].text == "大家好"

    def test_fallback_selector_region(self):
        """Test that a later selector's region is used when earlier ones miss."""
        sampler = _started()
        region = DomNode.element(DomNode.element("From fallback"))
        sampler.sample(PageSnapshot(regions=[None, None, region], current_time=1.0))

        assert sampler.observations[0].text == "From fallback"

    def test_backward_timestamps_are_kept(self):
        """Test that a seek backwards still records the caption."""
        sampler = _started()
        sampler.sample(caption_snapshot("Later", 10.0))
        sampler.sample(caption_snapshot("Earlier", 4.0))

        assert [o.timestamp for o in sampler.observations] == [10.0, 4.0]
