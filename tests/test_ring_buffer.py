"""Tests for RingBuffer and SensorRingBuffer.

Run with: pytest tests/test_ring_buffer.py -v
"""

import numpy as np
import pytest

from activity_dna.buffers import RingBuffer, SensorRingBuffer
from activity_dna.exceptions import EmptyBufferError
from activity_dna.sensor_sources import SensorReading


# =============================================================================
# RingBuffer
# =============================================================================

class TestRingBuffer:
    """Tests for the generic circular buffer."""

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_rejects_non_positive_capacity(self, capacity):
        with pytest.raises(ValueError):
            RingBuffer(capacity)

    def test_push_and_get_before_wrap(self):
        buffer = RingBuffer(4)
        for value in (1, 2, 3):
            buffer.push(value)

        assert buffer.size == 3
        assert not buffer.is_full
        assert [buffer[i] for i in range(3)] == [1, 2, 3]

    def test_overwrites_oldest_when_full(self):
        """Pushing past capacity keeps only the newest elements, oldest first."""
        buffer = RingBuffer(3)
        for value in range(1, 8):
            buffer.push(value)

        assert buffer.size == 3
        assert buffer.is_full
        assert buffer.to_list() == [5, 6, 7]
        assert buffer.peek() == 7
        assert buffer.peek_oldest() == 5

    def test_get_out_of_range_raises(self):
        buffer = RingBuffer(3)
        buffer.push('a')

        with pytest.raises(IndexError):
            buffer.get(1)
        with pytest.raises(IndexError):
            buffer.get(-1)

    def test_peek_on_empty_raises(self):
        buffer = RingBuffer(2)

        with pytest.raises(EmptyBufferError):
            buffer.peek()
        with pytest.raises(EmptyBufferError):
            buffer.peek_oldest()

    def test_clear_keeps_capacity(self):
        buffer = RingBuffer(3)
        for value in range(5):
            buffer.push(value)
        buffer.clear()

        assert buffer.is_empty
        assert buffer.capacity == 3
        buffer.push(42)
        assert buffer.to_list() == [42]

    def test_iteration_and_float_array(self):
        buffer = RingBuffer(3)
        for value in (1, 2, 3, 4):
            buffer.push(value)

        assert list(buffer) == [2, 3, 4]
        np.testing.assert_array_equal(buffer.to_float_array(), np.array([2.0, 3.0, 4.0]))

    def test_copy_to_array(self):
        buffer = RingBuffer(4)
        for value in range(6):
            buffer.push(value)

        destination = np.zeros(5)
        buffer.copy_to_array(destination, dest_offset=1, start_index=1, count=3)

        np.testing.assert_array_equal(destination, [0.0, 3.0, 4.0, 5.0, 0.0])

    def test_copy_to_array_rejects_bad_ranges(self):
        buffer = RingBuffer(4)
        for value in range(3):
            buffer.push(value)

        with pytest.raises(ValueError):
            buffer.copy_to_array(np.zeros(10), start_index=1, count=3)
        with pytest.raises(ValueError):
            buffer.copy_to_array(np.zeros(2), count=3)


# =============================================================================
# SensorRingBuffer
# =============================================================================

class TestSensorRingBuffer:
    """Tests for the 3-axis window."""

    def test_interleaved_and_channel_exports_agree(self):
        buffer = SensorRingBuffer(2)
        buffer.push(1, 2, 3)
        buffer.push(4, 5, 6)
        buffer.push(7, 8, 9)

        np.testing.assert_array_equal(buffer.to_interleaved_array(), [4, 5, 6, 7, 8, 9])

        xs, ys, zs = buffer.to_channel_arrays()
        np.testing.assert_array_equal(xs, [4, 7])
        np.testing.assert_array_equal(ys, [5, 8])
        np.testing.assert_array_equal(zs, [6, 9])

    def test_push_reading(self):
        buffer = SensorRingBuffer(3)
        buffer.push_reading(SensorReading(0.5, -0.5, 9.8, timestamp=0.0))

        assert buffer.size == 1
        np.testing.assert_array_equal(buffer.to_samples(), [[0.5, -0.5, 9.8]])

    def test_empty_window_exports(self):
        buffer = SensorRingBuffer(3)

        assert buffer.is_empty
        assert buffer.to_samples().shape == (0, 3)
        assert buffer.to_interleaved_array().shape == (0,)

    def test_fill_and_clear(self):
        buffer = SensorRingBuffer(2)
        buffer.push(0, 0, 0)
        buffer.push(1, 1, 1)

        assert buffer.is_full
        buffer.clear()
        assert buffer.is_empty
