"""
Displace — Pattern Displacement
Pushes every pixel along an axis (or outward from the center) by an amount
read from a tiled pattern image. Nearest-neighbor, no blending.
"""

import numpy as np

from core.buffer import PixelBuffer
from core.models import DisplacementMode, DisplacementParams
from core.safety import require_dimensions

# Normalized displacement (0..scale) to pixels
DISPLACEMENT_PIXELS = 20


def pattern_displace(frame: np.ndarray, pattern: np.ndarray,
                     x_shift: int = 15, y_shift: int = 0, scale: float = 1.0,
                     mode: str = "horizontal") -> np.ndarray:
    """Displace a frame by a tiled pattern.

    Args:
        frame: (H, W, C) uint8 array. All C channels are copied.
        pattern: (PH, PW, C) or (PH, PW) uint8 array. Tiled across the frame;
            only channel 0 (red) drives the displacement.
        x_shift: Pattern offset along x. Negative values wrap.
        y_shift: Pattern offset along y. Negative values wrap.
        scale: Displacement strength. 0 returns an unchanged copy.
        mode: 'horizontal', 'vertical', or 'radial'.

    Returns:
        New array, same shape as frame.

    Raises:
        InvalidDimensions: If frame or pattern has a zero side.
    """
    h, w = frame.shape[:2]
    ph, pw = pattern.shape[:2]
    require_dimensions(w, h, "source")
    require_dimensions(pw, ph, "pattern")
    mode = DisplacementMode(mode)

    ys = np.arange(h, dtype=np.float64).reshape(-1, 1)
    xs = np.arange(w, dtype=np.float64).reshape(1, -1)

    # Tiled lookup. Shifts are reduced with Python ints first so any
    # integer works and x_shift + k * pw gives the same lookup.
    x_shift = int(x_shift) % pw
    y_shift = int(y_shift) % ph
    px = (np.arange(w, dtype=np.intp) + x_shift) % pw
    py = ((np.arange(h, dtype=np.intp) + y_shift) % ph).reshape(-1, 1)
    red = pattern[..., 0] if pattern.ndim == 3 else pattern
    offset = red[py, px].astype(np.float64) / 255.0 * float(scale) * DISPLACEMENT_PIXELS

    if mode is DisplacementMode.HORIZONTAL:
        src_x = xs + offset
        src_y = np.broadcast_to(ys, (h, w))
    elif mode is DisplacementMode.VERTICAL:
        src_x = np.broadcast_to(xs, (h, w))
        src_y = ys + offset
    else:
        cx, cy = w / 2.0, h / 2.0
        dx = xs - cx
        dy = ys - cy
        dist = np.sqrt(dx * dx + dy * dy)
        new_dist = dist + offset
        # Same point as cx + new_dist * cos(atan2(dy, dx)), but the ratio form
        # gives back dx exactly when offset is 0; the trig form can land a hair
        # below an integer and floor to the wrong pixel. Keep the ratio form.
        # At the center atan2(0, 0) == 0, so push along +x.
        at_center = dist == 0
        ratio = new_dist / np.where(at_center, 1.0, dist)
        src_x = np.where(at_center, cx + new_dist, cx + dx * ratio)
        src_y = np.where(at_center, cy, cy + dy * ratio)

    src_x = np.floor(np.clip(src_x, 0, w - 1)).astype(np.intp)
    src_y = np.floor(np.clip(src_y, 0, h - 1)).astype(np.intp)
    return frame[src_y, src_x]


def apply(source: PixelBuffer, pattern: PixelBuffer,
          params: DisplacementParams) -> PixelBuffer:
    """Displace a source buffer by a tiled pattern buffer.

    The output has the source's dimensions; the pattern is tiled, never
    stretched. Raises InvalidDimensions before any work if either buffer
    has a zero side.
    """
    require_dimensions(source.width, source.height, "source")
    require_dimensions(pattern.width, pattern.height, "pattern")
    out = pattern_displace(
        source.to_array(), pattern.to_array(),
        x_shift=params.x_shift, y_shift=params.y_shift,
        scale=params.scale, mode=params.mode,
    )
    return PixelBuffer.from_array(out)
