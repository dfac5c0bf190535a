"""
Raw Frame Model
===============

Internal representation of a captured screen frame.

This module defines the RawFrame class used as the interface between
the capture producer and the frame processor.

Design Rules:
    - Pixel data is 4 bytes per pixel (BGRA), rows top to bottom
    - The byte buffer is immutable, so a frame can change hands without copying
    - Interpretation as an image happens only in `to_array()`
"""

from dataclasses import dataclass

import numpy as np


BYTES_PER_PIXEL = 4


class FrameFormatError(ValueError):
    """Raised when a pixel buffer cannot be interpreted at its claimed dimensions."""
    pass


@dataclass(frozen=True, slots=True)
class RawFrame:
    """
    Captured frame as delivered by the capture collaborator.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        stride: Bytes per row (>= width * 4)
        data: Raw BGRA bytes, last row at the visual bottom
    """

    width: int
    height: int
    stride: int
    data: bytes

    @classmethod
    def from_buffer(cls, width: int, height: int, stride: int, pixel_bytes) -> "RawFrame":
        """Build a frame that owns a private copy of `pixel_bytes`."""
        return cls(width=width, height=height, stride=stride, data=bytes(pixel_bytes))

    @classmethod
    def from_array(cls, image: np.ndarray) -> "RawFrame":
        """Build a frame from an (H, W, 4) uint8 array."""
        if image.ndim != 3 or image.shape[2] != BYTES_PER_PIXEL or image.dtype != np.uint8:
            raise FrameFormatError(f"Expected (H, W, 4) uint8 array, got {image.shape} {image.dtype}")
        height, width = image.shape[:2]
        return cls(
            width=width,
            height=height,
            stride=width * BYTES_PER_PIXEL,
            data=np.ascontiguousarray(image).tobytes(),
        )

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0 or not self.data

    def to_array(self) -> np.ndarray:
        """
        View the buffer as an (H, W, 4) BGRA array.

        Row padding beyond `width * 4` bytes is dropped.

        Raises:
            FrameFormatError: If dimensions, stride and buffer length disagree
        """
        row_bytes = self.width * BYTES_PER_PIXEL
        if self.width <= 0 or self.height <= 0:
            raise FrameFormatError(f"Invalid frame size {self.width}x{self.height}")
        if self.stride < row_bytes:
            raise FrameFormatError(
                f"Stride {self.stride} smaller than row size {row_bytes}"
            )
        if len(self.data) < self.stride * self.height:
            raise FrameFormatError(
                f"Buffer of {len(self.data)} bytes too small for "
                f"{self.height} rows of stride {self.stride}"
            )

        flat = np.frombuffer(self.data, dtype=np.uint8, count=self.stride * self.height)
        rows = flat.reshape(self.height, self.stride)[:, :row_bytes]
        return rows.reshape(self.height, self.width, BYTES_PER_PIXEL)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel data."""
        return (
            f"RawFrame(width={self.width}, height={self.height}, "
            f"stride={self.stride}, bytes={len(self.data)})"
        )
