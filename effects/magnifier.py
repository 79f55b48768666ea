"""
Displace — Magnifier
Nearest-neighbor zoom of a square window around a focal point.
"""

import numpy as np

from core.buffer import PixelBuffer
from core.models import MagnifierRequest
from core.safety import require_dimensions, require_zoom


def window_origin(focal: float, extent: int, output_size: int, zoom: float) -> float:
    """Top/left edge of the window along one axis, kept inside [0, extent]."""
    side = output_size / zoom
    upper = extent - side
    return max(0.0, min(focal - output_size / (2 * zoom), upper))


def magnify(frame: np.ndarray, zoom: float = 2.0, focal: tuple = (0.0, 0.0),
            output_size: int = 150) -> np.ndarray:
    """Zoom into a frame around a focal point.

    Args:
        frame: (H, W, C) uint8 array.
        zoom: Magnification (>= 1).
        focal: (x, y) point the window is centered on, in frame pixels.
        output_size: Side of the square result.

    Returns:
        (output_size, output_size, C) array.
    """
    require_zoom(zoom)
    h, w = frame.shape[:2]
    require_dimensions(w, h, "magnifier source")
    require_dimensions(output_size, output_size, "magnifier output")

    fx, fy = focal
    wx = window_origin(float(fx), w, output_size, zoom)
    wy = window_origin(float(fy), h, output_size, zoom)

    # Sample at output pixel centers
    steps = (np.arange(output_size, dtype=np.float64) + 0.5) / zoom
    cols = np.clip(np.floor(wx + steps), 0, w - 1).astype(np.intp)
    rows = np.clip(np.floor(wy + steps), 0, h - 1).astype(np.intp)
    return frame[rows[:, None], cols[None, :]]


def extract(output: PixelBuffer, zoom: float, focal: tuple,
            output_size: int) -> PixelBuffer:
    """Magnified output_size x output_size preview of a buffer.

    Raises:
        InvalidZoom: If zoom < 1.
        InvalidDimensions: If the buffer or output_size is zero.
    """
    require_zoom(zoom)
    require_dimensions(output.width, output.height, "magnifier source")
    return PixelBuffer.from_array(
        magnify(output.to_array(), zoom=zoom, focal=focal, output_size=output_size)
    )


def extract_request(output: PixelBuffer, request: MagnifierRequest) -> PixelBuffer:
    return extract(output, request.zoom, request.focal, request.output_size)
