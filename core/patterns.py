"""
Displace — Pattern Gallery
Ten built-in tileable displacement patterns plus user-uploaded custom ones,
addressed by tagged references instead of a flat index.

Every built-in is generated at PATTERN_SIZE with periods that divide the
size, so the pattern wraps seamlessly when tiled.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

import numpy as np

from core.buffer import PixelBuffer
from core.safety import PatternNotFound, require_dimensions

PATTERN_SIZE = 64


# ---------------------------------------------------------------------------
# Generators — each returns (size, size) float32 in [0, 1]
# ---------------------------------------------------------------------------

def _grid(size):
    return np.mgrid[0:size, 0:size].astype(np.float32)


def _ripple(size):
    y, x = _grid(size)
    return 0.5 + 0.5 * np.sin(2 * np.pi * (x / 16.0 + y / 32.0))


def _stripes(size, period=8):
    _, x = _grid(size)
    return ((x // (period // 2)) % 2).astype(np.float32)


def _checker(size, tile=8):
    y, x = _grid(size)
    return (((x // tile) + (y // tile)) % 2).astype(np.float32)


def _dots(size, cell=16):
    y, x = _grid(size)
    cy = (y % cell) - cell / 2.0 + 0.5
    cx = (x % cell) - cell / 2.0 + 0.5
    dist = np.sqrt(cx * cx + cy * cy)
    return np.clip(1.0 - dist / (cell * 0.4), 0, 1)


def _diagonal(size, period=16):
    y, x = _grid(size)
    return ((x + y) % period) / (period - 1)


def _rings(size, cell=32, ring=4):
    y, x = _grid(size)
    cy = (y % cell) - cell / 2.0
    cx = (x % cell) - cell / 2.0
    dist = np.sqrt(cx * cx + cy * cy)
    return 0.5 + 0.5 * np.cos(2 * np.pi * dist / ring)


def _noise(size, cells=8, seed=42):
    """Smooth value noise, wrapping at the edges."""
    rng = np.random.RandomState(seed)
    lattice = rng.random_sample((cells, cells)).astype(np.float32)
    step = size / cells
    y, x = _grid(size)
    gx, gy = x / step, y / step
    x0, y0 = np.floor(gx).astype(int), np.floor(gy).astype(int)
    tx, ty = gx - x0, gy - y0
    # Smoothstep
    tx = tx * tx * (3 - 2 * tx)
    ty = ty * ty * (3 - 2 * ty)
    x1, y1 = (x0 + 1) % cells, (y0 + 1) % cells
    x0, y0 = x0 % cells, y0 % cells
    top = lattice[y0, x0] * (1 - tx) + lattice[y0, x1] * tx
    bottom = lattice[y1, x0] * (1 - tx) + lattice[y1, x1] * tx
    return top * (1 - ty) + bottom * ty


def _waves(size):
    y, x = _grid(size)
    return 0.5 + 0.5 * np.sin(2 * np.pi * x / 32.0) * np.cos(2 * np.pi * y / 32.0)


def _bricks(size, brick_w=16, brick_h=8):
    y, x = _grid(size)
    row = y // brick_h
    shifted = (x + (row % 2) * (brick_w // 2)) % brick_w
    mortar = (y % brick_h == 0) | (shifted == 0)
    return np.where(mortar, 0.0, 1.0).astype(np.float32)


def _grid_lines(size, spacing=16):
    y, x = _grid(size)
    lines = (x % spacing == 0) | (y % spacing == 0)
    return lines.astype(np.float32)


# Gallery order is the display order
BUILTIN_PATTERNS = {
    "ripple": {"fn": _ripple, "description": "Diagonal sine ripple"},
    "stripes": {"fn": _stripes, "description": "Hard vertical stripes, 8px period"},
    "checker": {"fn": _checker, "description": "8px checkerboard"},
    "dots": {"fn": _dots, "description": "Soft round dots on a 16px grid"},
    "diagonal": {"fn": _diagonal, "description": "Diagonal sawtooth ramp"},
    "rings": {"fn": _rings, "description": "Concentric rings per 32px cell"},
    "noise": {"fn": _noise, "description": "Smooth value noise"},
    "waves": {"fn": _waves, "description": "Egg-crate sine waves"},
    "bricks": {"fn": _bricks, "description": "Offset brick courses"},
    "grid": {"fn": _grid_lines, "description": "1px grid lines every 16px"},
}


def render_pattern(name: str, size: int = PATTERN_SIZE) -> np.ndarray:
    """Render a built-in pattern as an opaque grayscale (size, size, 4) uint8 array."""
    if name not in BUILTIN_PATTERNS:
        raise PatternNotFound(
            f"Unknown pattern: {name}. Available: {', '.join(BUILTIN_PATTERNS)}"
        )
    values = BUILTIN_PATTERNS[name]["fn"](size)
    gray = np.clip(np.rint(values * 255), 0, 255).astype(np.uint8)
    alpha = np.full_like(gray, 255)
    return np.dstack([gray, gray, gray, alpha])


@lru_cache(maxsize=None)
def builtin_pattern(name: str) -> PixelBuffer:
    """Built-in pattern buffer (cached; buffers are immutable)."""
    return PixelBuffer.from_array(render_pattern(name))


# ---------------------------------------------------------------------------
# References & gallery
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatternRef:
    """Tagged pattern reference: a built-in name or a custom upload id."""
    kind: Literal["builtin", "custom"]
    id: str

    def __str__(self):
        return f"{self.kind}:{self.id}"

    @classmethod
    def parse(cls, text: str) -> "PatternRef":
        """Parse 'builtin:ripple' / 'custom:3'. A bare name means a built-in."""
        kind, sep, ident = text.partition(":")
        if not sep:
            return cls("builtin", text)
        if kind not in ("builtin", "custom") or not ident:
            raise PatternNotFound(f"Malformed pattern reference: '{text}'")
        return cls(kind, ident)


def builtin(name: str) -> PatternRef:
    return PatternRef("builtin", name)


def custom(pattern_id) -> PatternRef:
    return PatternRef("custom", str(pattern_id))


class PatternGallery:
    """Built-in patterns followed by custom uploads in upload order."""

    def __init__(self):
        self._custom = {}  # id -> {"name", "buffer"}
        self._next_id = 1

    def __len__(self):
        return len(BUILTIN_PATTERNS) + len(self._custom)

    @property
    def custom_count(self):
        return len(self._custom)

    def __contains__(self, ref):
        if ref.kind == "builtin":
            return ref.id in BUILTIN_PATTERNS
        return ref.id in self._custom

    def add_custom(self, buffer: PixelBuffer, name: str | None = None) -> PatternRef:
        """Register an uploaded pattern. Zero-sized patterns are rejected."""
        require_dimensions(buffer.width, buffer.height, "pattern")
        pattern_id = str(self._next_id)
        self._next_id += 1
        self._custom[pattern_id] = {
            "name": name or f"Custom {pattern_id}",
            "buffer": buffer,
        }
        return custom(pattern_id)

    def remove_custom(self, pattern_id) -> None:
        pattern_id = str(pattern_id)
        if pattern_id not in self._custom:
            raise PatternNotFound(f"No custom pattern with id {pattern_id}")
        del self._custom[pattern_id]

    def clear_custom(self) -> None:
        self._custom.clear()

    def get(self, ref: PatternRef) -> PixelBuffer:
        if ref.kind == "builtin":
            return builtin_pattern(ref.id)
        if ref.kind == "custom" and ref.id in self._custom:
            return self._custom[ref.id]["buffer"]
        raise PatternNotFound(f"Pattern not found: {ref}")

    def refs(self) -> list[PatternRef]:
        """All references, built-ins first, customs in upload order."""
        return [builtin(n) for n in BUILTIN_PATTERNS] + [custom(i) for i in self._custom]

    def describe(self) -> list[dict]:
        """Listing for the CLI and HTTP API."""
        items = []
        for name, entry in BUILTIN_PATTERNS.items():
            items.append({"ref": str(builtin(name)), "kind": "builtin",
                          "name": name, "description": entry["description"]})
        for pattern_id, entry in self._custom.items():
            buf = entry["buffer"]
            items.append({"ref": str(custom(pattern_id)), "kind": "custom",
                          "name": entry["name"],
                          "description": f"Uploaded {buf.width}x{buf.height}"})
        return items
