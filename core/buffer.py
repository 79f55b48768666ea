"""
Displace — Pixel Buffers
Immutable RGBA pixel buffers exchanged between the host and the engine.
"""

from dataclasses import dataclass

import numpy as np

CHANNELS = 4  # R, G, B, A


@dataclass(frozen=True)
class PixelBuffer:
    """RGBA image, 4 bytes per pixel, row-major.

    Attributes:
        width: Pixels per row.
        height: Number of rows.
        data: width * height * 4 bytes.
    """
    width: int
    height: int
    data: bytes

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative buffer size: {self.width}x{self.height}")
        expected = self.width * self.height * CHANNELS
        if len(self.data) != expected:
            raise ValueError(
                f"Buffer data is {len(self.data)} bytes, "
                f"expected {expected} for {self.width}x{self.height} RGBA"
            )

    @classmethod
    def from_array(cls, frame: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an (H, W), (H, W, 3) or (H, W, 4) uint8 array.

        Grayscale is replicated to RGB, missing alpha is filled opaque.
        """
        frame = np.asarray(frame)
        if frame.ndim == 2:
            frame = np.stack([frame, frame, frame], axis=-1)
        if frame.ndim != 3 or frame.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported frame shape: {frame.shape}")
        if frame.shape[2] == 3:
            alpha = np.full(frame.shape[:2] + (1,), 255, dtype=np.uint8)
            frame = np.concatenate([frame.astype(np.uint8), alpha], axis=2)
        h, w = frame.shape[:2]
        return cls(width=w, height=h, data=np.ascontiguousarray(frame, dtype=np.uint8).tobytes())

    @classmethod
    def solid(cls, width: int, height: int, rgba=(0, 0, 0, 255)) -> "PixelBuffer":
        """Single-color buffer."""
        frame = np.empty((height, width, CHANNELS), dtype=np.uint8)
        frame[:, :] = rgba
        return cls(width=width, height=height, data=frame.tobytes())

    def to_array(self) -> np.ndarray:
        """(H, W, 4) uint8 read-only view of the pixel data."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            self.height, self.width, CHANNELS
        )

    def pixel(self, x: int, y: int) -> tuple:
        """RGBA tuple at (x, y)."""
        i = (y * self.width + x) * CHANNELS
        return tuple(self.data[i:i + CHANNELS])

    @property
    def size(self) -> tuple:
        return self.width, self.height
