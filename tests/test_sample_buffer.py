"""Tests for SampleBuffer."""

from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.services.sample_buffer import SampleBuffer
from fakes import FIXED_NOW, JLP_ID


def _sample(price: float) -> PriceSampleEntity:
    return PriceSampleEntity(symbol="JLP", price=price, source_key=JLP_ID, observed_at=FIXED_NOW)


class TestSampleBuffer:
    """Unit tests for the sample buffer."""

    def test_take_returns_in_append_order(self):
        buf = SampleBuffer()
        buf.append(_sample(1.0))
        buf.extend([_sample(2.0), _sample(3.0)])
        assert [s.price for s in buf.take_and_clear()] == [1.0, 2.0, 3.0]

    def test_second_take_is_empty(self):
        """Two takes in a row with no append in between: the second is empty."""
        buf = SampleBuffer()
        buf.append(_sample(1.0))
        assert len(buf.take_and_clear()) == 1
        assert buf.take_and_clear() == []

    def test_take_on_empty_buffer(self):
        assert SampleBuffer().take_and_clear() == []

    def test_appends_after_take_go_to_next_take(self):
        """No sample appears in two takes, none is lost."""
        buf = SampleBuffer()
        buf.append(_sample(1.0))
        first = buf.take_and_clear()
        buf.append(_sample(2.0))
        second = buf.take_and_clear()
        assert [s.price for s in first] == [1.0]
        assert [s.price for s in second] == [2.0]

    def test_taken_list_is_detached(self):
        """Mutating a taken batch does not leak back into the buffer."""
        buf = SampleBuffer()
        buf.append(_sample(1.0))
        taken = buf.take_and_clear()
        taken.append(_sample(9.0))
        assert len(buf) == 0

    def test_len(self):
        buf = SampleBuffer()
        assert len(buf) == 0
        buf.append(_sample(1.0))
        assert len(buf) == 1
