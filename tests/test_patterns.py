"""
Displace — Pattern Gallery Tests
Built-in generators, tagged references, custom uploads.

Run with: pytest tests/test_patterns.py -v
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.buffer import PixelBuffer
from core.patterns import (
    BUILTIN_PATTERNS, PATTERN_SIZE, PatternGallery, PatternRef,
    builtin, builtin_pattern, custom, render_pattern,
)
from core.safety import InvalidDimensions, PatternNotFound


class TestBuiltins:

    def test_ten_builtins(self):
        assert len(BUILTIN_PATTERNS) == 10

    @pytest.mark.parametrize("name", list(BUILTIN_PATTERNS))
    def test_shape_and_opacity(self, name):
        arr = render_pattern(name)
        assert arr.shape == (PATTERN_SIZE, PATTERN_SIZE, 4)
        assert arr.dtype == np.uint8
        assert (arr[:, :, 3] == 255).all()

    @pytest.mark.parametrize("name", list(BUILTIN_PATTERNS))
    def test_grayscale(self, name):
        arr = render_pattern(name)
        np.testing.assert_array_equal(arr[:, :, 0], arr[:, :, 1])
        np.testing.assert_array_equal(arr[:, :, 0], arr[:, :, 2])

    @pytest.mark.parametrize("name", list(BUILTIN_PATTERNS))
    def test_not_flat(self, name):
        red = render_pattern(name)[:, :, 0]
        assert red.max() > red.min()

    @pytest.mark.parametrize("name", list(BUILTIN_PATTERNS))
    def test_tiles_seamlessly(self, name):
        """Wrapping edge is no harsher than the steepest interior step."""
        red = render_pattern(name)[:, :, 0].astype(int)
        interior_x = np.abs(np.diff(red, axis=1)).max()
        interior_y = np.abs(np.diff(red, axis=0)).max()
        seam_x = np.abs(red[:, -1] - red[:, 0]).max()
        seam_y = np.abs(red[-1, :] - red[0, :]).max()
        assert seam_x <= interior_x + 1
        assert seam_y <= interior_y + 1

    def test_all_distinct(self):
        rendered = [render_pattern(n).tobytes() for n in BUILTIN_PATTERNS]
        assert len(set(rendered)) == len(rendered)

    def test_noise_is_reproducible(self):
        np.testing.assert_array_equal(render_pattern("noise"), render_pattern("noise"))

    def test_builtin_buffer_cached(self):
        assert builtin_pattern("ripple") is builtin_pattern("ripple")

    def test_unknown_builtin(self):
        with pytest.raises(PatternNotFound):
            render_pattern("marble")


class TestPatternRef:

    def test_bare_name_is_builtin(self):
        assert PatternRef.parse("dots") == builtin("dots")

    def test_tagged(self):
        assert PatternRef.parse("custom:3") == custom(3)
        assert PatternRef.parse("builtin:grid") == PatternRef("builtin", "grid")

    def test_str_round_trip(self):
        ref = custom(12)
        assert PatternRef.parse(str(ref)) == ref

    @pytest.mark.parametrize("text", ["gallery:1", "custom:", "builtin:"])
    def test_malformed(self, text):
        with pytest.raises(PatternNotFound):
            PatternRef.parse(text)

    def test_builtin_and_custom_never_collide(self):
        assert builtin("1") != custom("1")


class TestGallery:

    @pytest.fixture
    def gallery(self):
        return PatternGallery()

    @pytest.fixture
    def tile(self):
        return PixelBuffer.solid(3, 5, (200, 0, 0, 255))

    def test_builtins_listed_first(self, gallery, tile):
        ref = gallery.add_custom(tile)
        refs = gallery.refs()
        assert refs[:10] == [builtin(n) for n in BUILTIN_PATTERNS]
        assert refs[10] == ref
        assert len(gallery) == 11

    def test_customs_in_upload_order(self, gallery, tile):
        first = gallery.add_custom(tile, name="a.png")
        second = gallery.add_custom(tile, name="b.png")
        assert gallery.refs()[-2:] == [first, second]
        assert gallery.custom_count == 2

    def test_get_custom(self, gallery, tile):
        ref = gallery.add_custom(tile)
        assert gallery.get(ref) is tile

    def test_get_builtin(self, gallery):
        buf = gallery.get(builtin("checker"))
        assert (buf.width, buf.height) == (PATTERN_SIZE, PATTERN_SIZE)

    def test_remove_custom(self, gallery, tile):
        ref = gallery.add_custom(tile)
        gallery.remove_custom(ref.id)
        assert ref not in gallery
        with pytest.raises(PatternNotFound):
            gallery.get(ref)

    def test_ids_not_reused_after_remove(self, gallery, tile):
        first = gallery.add_custom(tile)
        gallery.remove_custom(first.id)
        second = gallery.add_custom(tile)
        assert first != second

    def test_remove_unknown(self, gallery):
        with pytest.raises(PatternNotFound):
            gallery.remove_custom("99")

    def test_unknown_refs(self, gallery):
        with pytest.raises(PatternNotFound):
            gallery.get(custom(1))
        with pytest.raises(KeyError):
            gallery.get(builtin("nope"))

    def test_zero_sized_custom_rejected(self, gallery):
        with pytest.raises(InvalidDimensions):
            gallery.add_custom(PixelBuffer(0, 4, b""))

    def test_describe(self, gallery, tile):
        gallery.add_custom(tile, name="tile.png")
        items = gallery.describe()
        assert len(items) == 11
        assert items[0] == {"ref": "builtin:ripple", "kind": "builtin", "name": "ripple",
                            "description": BUILTIN_PATTERNS["ripple"]["description"]}
        assert items[-1]["name"] == "tile.png"
        assert items[-1]["description"] == "Uploaded 3x5"

    def test_contains(self, gallery):
        assert builtin("waves") in gallery
        assert builtin("marble") not in gallery
