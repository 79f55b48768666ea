"""
Displace — Buffer & Image I/O Tests
PixelBuffer invariants, decoding, PNG export, preflight checks.

Run with: pytest tests/test_image_io.py -v
"""

import base64
import os
import sys
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import core.safety
from core.buffer import PixelBuffer
from core.image_io import (
    decode_image, encode_png, fit_to_pixels, load_image, save_image, to_data_url,
)
from core.safety import SafetyError, preflight


class TestPixelBuffer:

    def test_length_must_match(self):
        with pytest.raises(ValueError):
            PixelBuffer(2, 2, b"\x00" * 15)

    def test_zero_size_allowed(self):
        buf = PixelBuffer(0, 7, b"")
        assert buf.size == (0, 7)

    def test_from_rgb_adds_opaque_alpha(self):
        rgb = np.full((3, 5, 3), 9, dtype=np.uint8)
        buf = PixelBuffer.from_array(rgb)
        assert (buf.width, buf.height) == (5, 3)
        assert buf.pixel(4, 2) == (9, 9, 9, 255)

    def test_from_grayscale(self):
        gray = np.arange(6, dtype=np.uint8).reshape(2, 3)
        buf = PixelBuffer.from_array(gray)
        assert buf.pixel(2, 1) == (5, 5, 5, 255)

    def test_unsupported_shape(self):
        with pytest.raises(ValueError):
            PixelBuffer.from_array(np.zeros((2, 2, 2), dtype=np.uint8))

    def test_row_major_layout(self, coord_buffer):
        i = (10 * coord_buffer.width + 3) * 4
        assert tuple(coord_buffer.data[i:i + 4]) == (3, 10, 7, 255)
        assert coord_buffer.pixel(3, 10) == (3, 10, 7, 255)

    def test_array_view_is_read_only(self, coord_buffer):
        arr = coord_buffer.to_array()
        assert arr.shape == (48, 64, 4)
        with pytest.raises(ValueError):
            arr[0, 0, 0] = 1

    def test_frozen(self, coord_buffer):
        with pytest.raises(AttributeError):
            coord_buffer.width = 3


class TestPngRoundTrip:

    def test_save_and_load(self, tmp_path, random_buffer):
        path = save_image(random_buffer, tmp_path / "out" / "displaced_image.png")
        assert path.exists()
        assert load_image(str(path)).data == random_buffer.data

    def test_encode_png_magic(self, random_buffer):
        assert encode_png(random_buffer)[:4] == b"\x89PNG"

    def test_data_url(self, random_buffer):
        url = to_data_url(random_buffer)
        assert url.startswith("data:image/png;base64,")
        png = base64.b64decode(url.split(",", 1)[1])
        decoded = np.array(Image.open(BytesIO(png)))
        np.testing.assert_array_equal(decoded, random_buffer.to_array())

    def test_jpeg_loads_as_rgba(self, tmp_path):
        path = tmp_path / "photo.jpg"
        Image.new("RGB", (8, 6), (10, 200, 30)).save(path)
        buf = load_image(str(path))
        assert (buf.width, buf.height) == (8, 6)
        assert buf.pixel(0, 0)[3] == 255


class TestDecode:

    def test_decode_png_bytes(self, png_bytes, coord_frame):
        buf = decode_image(png_bytes(coord_frame))
        np.testing.assert_array_equal(buf.to_array(), coord_frame)

    def test_garbage_bytes(self):
        with pytest.raises(SafetyError):
            decode_image(b"definitely not an image")

    def test_resolution_limit(self, monkeypatch, png_bytes, coord_frame):
        monkeypatch.setattr(core.safety, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(SafetyError):
            decode_image(png_bytes(coord_frame))


class TestPreflight:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            preflight(str(tmp_path / "nope.png"))

    def test_bad_extension(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(SafetyError):
            preflight(str(path))

    def test_corrupt_png(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"\x89PNG garbage")
        with pytest.raises(SafetyError):
            load_image(str(path))

    def test_file_size_limit(self, tmp_path, monkeypatch, random_buffer):
        monkeypatch.setattr(core.safety, "MAX_FILE_MB", 0)
        path = save_image(random_buffer, tmp_path / "a.png")
        with pytest.raises(SafetyError):
            preflight(str(path))

    def test_metadata(self, tmp_path, random_buffer):
        path = save_image(random_buffer, tmp_path / "a.PNG")
        info = preflight(str(path))
        assert info["extension"] == ".png"
        assert info["size_mb"] > 0


class TestFitToPixels:

    def test_downscale(self):
        buf = PixelBuffer.solid(100, 50, (1, 2, 3, 255))
        small = fit_to_pixels(buf, 1250)
        assert (small.width, small.height) == (50, 25)

    def test_small_passes_through(self, coord_buffer):
        assert fit_to_pixels(coord_buffer, 10_000) is coord_buffer
