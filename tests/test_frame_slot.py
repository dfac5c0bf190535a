"""
Frame Slot Tests
================

Tests for RawFrame buffer interpretation and the single-slot handoff.
"""

import threading

import numpy as np
import pytest

from aoe4_overlay.stream import FrameFormatError, FrameSlot, RawFrame


def _frame(tag: int, width: int = 4, height: int = 2) -> RawFrame:
    return RawFrame.from_buffer(width, height, width * 4, bytes([tag]) * (width * height * 4))


class TestRawFrame:
    """Tests for RawFrame."""

    def test_from_buffer_copies(self):
        """Verify the frame keeps its own copy of the pixels."""
        pixels = bytearray(b"\x01" * 32)
        frame = RawFrame.from_buffer(4, 2, 16, pixels)
        pixels[0] = 99
        assert frame.data[0] == 1

    def test_to_array_shape(self):
        """Verify the buffer is viewed as (H, W, 4)."""
        frame = _frame(7, width=5, height=3)
        image = frame.to_array()
        assert image.shape == (3, 5, 4)
        assert image.dtype == np.uint8
        assert int(image[2, 4, 0]) == 7

    def test_to_array_drops_row_padding(self):
        """Verify stride padding is not interpreted as pixels."""
        row = bytes([1, 2, 3, 4] * 2) + b"\xff" * 8
        frame = RawFrame(width=2, height=2, stride=16, data=row * 2)
        image = frame.to_array()
        assert image.shape == (2, 2, 4)
        assert image[:, :, 3].max() == 4

    def test_from_array(self):
        """Verify building a frame from an array keeps the dimensions."""
        image = np.zeros((6, 9, 4), dtype=np.uint8)
        frame = RawFrame.from_array(image)
        assert (frame.width, frame.height, frame.stride) == (9, 6, 36)
        assert len(frame.data) == 6 * 9 * 4

    def test_from_array_rejects_wrong_channels(self):
        """Verify non-BGRA arrays are rejected."""
        with pytest.raises(FrameFormatError):
            RawFrame.from_array(np.zeros((6, 9, 3), dtype=np.uint8))

    def test_short_buffer_rejected(self):
        """Verify a buffer smaller than height * stride is malformed."""
        frame = RawFrame(width=10, height=10, stride=40, data=b"\x00" * 100)
        with pytest.raises(FrameFormatError):
            frame.to_array()

    def test_small_stride_rejected(self):
        """Verify a stride smaller than the row size is malformed."""
        frame = RawFrame(width=10, height=1, stride=20, data=b"\x00" * 40)
        with pytest.raises(FrameFormatError):
            frame.to_array()

    def test_zero_size_rejected(self):
        """Verify zero dimensions are malformed."""
        frame = RawFrame(width=0, height=0, stride=0, data=b"")
        assert frame.is_empty
        with pytest.raises(FrameFormatError):
            frame.to_array()

    def test_repr_hides_pixels(self):
        """Verify repr does not dump the pixel buffer."""
        assert "bytes=32" in repr(_frame(1))


class TestFrameSlot:
    """Tests for FrameSlot."""

    def test_drain_empty(self):
        """Verify draining an empty slot returns None."""
        slot = FrameSlot()
        assert slot.drain() is None

    def test_latest_frame_wins(self):
        """Verify three writes then one drain yield the third frame and two drops."""
        slot = FrameSlot()
        for tag in (1, 2, 3):
            slot.write(_frame(tag))

        frame, dropped = slot.drain()
        assert frame.data == _frame(3).data
        assert dropped == 2

    def test_drain_resets_counter(self):
        """Verify a second drain without writes returns None."""
        slot = FrameSlot()
        slot.write(_frame(1))
        assert slot.drain() is not None
        assert slot.drain() is None
        assert slot.pending == 0

    def test_single_write_no_drop(self):
        """Verify one write per drain reports zero dropped frames."""
        slot = FrameSlot()
        slot.write(_frame(1))
        slot.drain()
        slot.write(_frame(2))
        frame, dropped = slot.drain()
        assert dropped == 0
        assert frame.data == _frame(2).data

    def test_write_bytes(self):
        """Verify the raw-field producer entry point."""
        slot = FrameSlot()
        slot.write_bytes(2, 1, 8, b"\x05" * 8)
        frame, _ = slot.drain()
        assert (frame.width, frame.height, frame.stride) == (2, 1, 8)

    def test_metrics(self):
        """Verify totals across several drains."""
        slot = FrameSlot()
        for tag in range(4):
            slot.write(_frame(tag))
        slot.drain()
        slot.write(_frame(9))

        metrics = slot.metrics()
        assert metrics["total_written"] == 5
        assert metrics["total_dropped"] == 3
        assert metrics["pending"] == 1

    def test_concurrent_accounting(self):
        """Verify every write is either consumed or counted as dropped."""
        slot = FrameSlot()
        writes = 2000
        consumed = 0
        dropped = 0

        def produce():
            for i in range(writes):
                slot.write(_frame(i % 256))

        producer = threading.Thread(target=produce)
        producer.start()
        while producer.is_alive():
            drained = slot.drain()
            if drained is not None:
                consumed += 1
                dropped += drained[1]
        producer.join()

        drained = slot.drain()
        if drained is not None:
            consumed += 1
            dropped += drained[1]

        assert consumed + dropped == writes
