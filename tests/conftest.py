"""
Conftest: shared fixtures for all Displace test modules.

1. Synthetic frames/buffers — deterministic, coordinate-coded so tests can
   tell exactly which source pixel landed where.
2. Server state reset (per-test) — prevents session leaks between HTTP tests.
"""

import os
import sys
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.buffer import PixelBuffer


def _make_coord_frame(width=64, height=48):
    """RGBA frame where R = x, G = y, B = 7, A = 255 (for width, height <= 256)."""
    frame = np.zeros((height, width, 4), dtype=np.uint8)
    frame[:, :, 0] = np.arange(width, dtype=np.uint8)[None, :]
    frame[:, :, 1] = np.arange(height, dtype=np.uint8)[:, None]
    frame[:, :, 2] = 7
    frame[:, :, 3] = 255
    return frame


def _make_pattern(red_values, width, height):
    """Pattern with the given red channel (row-major list or 2D array)."""
    red = np.asarray(red_values, dtype=np.uint8).reshape(height, width)
    pattern = np.zeros((height, width, 4), dtype=np.uint8)
    pattern[:, :, 0] = red
    pattern[:, :, 3] = 255
    return pattern


def _png_bytes(frame):
    out = BytesIO()
    Image.fromarray(frame).save(out, format="PNG")
    return out.getvalue()


def source_xy(buffer: PixelBuffer, x: int, y: int) -> tuple:
    """(source_x, source_y) a coordinate-coded output pixel was copied from."""
    r, g, _, _ = buffer.pixel(x, y)
    return r, g


@pytest.fixture
def coord_frame():
    return _make_coord_frame()


@pytest.fixture
def coord_buffer():
    return PixelBuffer.from_array(_make_coord_frame())


@pytest.fixture
def random_buffer():
    """A 40x30 deterministic random RGBA buffer."""
    rng = np.random.RandomState(123)
    return PixelBuffer.from_array(rng.randint(0, 256, (30, 40, 4), dtype=np.uint8))


@pytest.fixture
def noise_pattern():
    """A 10x7 deterministic random pattern (odd sizes exercise tiling)."""
    rng = np.random.RandomState(7)
    return PixelBuffer.from_array(rng.randint(0, 256, (7, 10, 4), dtype=np.uint8))


@pytest.fixture
def white_pattern():
    return PixelBuffer.solid(8, 8, (255, 255, 255, 255))


@pytest.fixture
def png_bytes():
    return _png_bytes


@pytest.fixture(autouse=True)
def _reset_server_state():
    """Clear server session state before and after each test, if loaded."""
    server = sys.modules.get("server")
    if server is not None:
        _clear(server)
    yield
    server = sys.modules.get("server")
    if server is not None:
        _clear(server)


def _clear(server):
    for key in server._state:
        server._state[key] = None
    server._gallery.clear_custom()
