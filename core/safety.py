"""
Displace — Safety & Resource Guards
Centralized preflight checks run before any file processing, plus the
error types raised by the displacement engine and magnifier.
"""

import math
import os
from pathlib import Path

# --- Configurable Limits ---
MAX_FILE_MB = 50                  # Maximum input image size on disk
MAX_IMAGE_PIXELS = 4096 * 4096    # Maximum decoded resolution
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff"}


class SafetyError(Exception):
    """Raised when a preflight check fails."""
    pass


class InvalidDimensions(SafetyError):
    """A source, pattern or output buffer has zero width or height."""
    pass


class InvalidZoom(SafetyError):
    """Magnifier zoom below 1."""
    pass


class PatternNotFound(SafetyError, KeyError):
    """Pattern reference does not resolve to a gallery entry."""

    def __str__(self):
        # KeyError repr-quotes its message
        return Exception.__str__(self)


def preflight(input_path: str) -> dict:
    """Run all safety checks before decoding an image file.

    Args:
        input_path: Path to the input file.

    Returns:
        dict with file metadata (path, size_mb, extension).

    Raises:
        SafetyError: If any check fails.
        FileNotFoundError: If input doesn't exist.
    """
    input_path = str(input_path)
    real_path = os.path.realpath(input_path)

    if not os.path.isfile(real_path):
        raise FileNotFoundError(f"Input file not found: {input_path}")

    size_bytes = os.path.getsize(real_path)
    size_mb = size_bytes / (1024 * 1024)
    if size_mb > MAX_FILE_MB:
        raise SafetyError(
            f"Input file is {size_mb:.0f}MB, exceeds {MAX_FILE_MB}MB limit."
        )

    ext = Path(real_path).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise SafetyError(
            f"File type '{ext}' not allowed. "
            f"Supported: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    return {
        "path": real_path,
        "size_mb": size_mb,
        "extension": ext,
    }


def validate_resolution(width: int, height: int) -> None:
    """Reject decoded images too large to process interactively.

    Raises:
        SafetyError: If width * height exceeds MAX_IMAGE_PIXELS.
    """
    if width * height > MAX_IMAGE_PIXELS:
        raise SafetyError(
            f"Image is {width}x{height}, exceeds {MAX_IMAGE_PIXELS} pixel limit. "
            f"Downscale it first."
        )


def require_dimensions(width: int, height: int, label: str = "buffer") -> None:
    """Raise InvalidDimensions if either side is zero."""
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"{label} has zero size ({width}x{height})")


def require_zoom(zoom: float) -> None:
    """Raise InvalidZoom unless zoom is a number >= 1."""
    if math.isnan(zoom) or zoom < 1:
        raise InvalidZoom(f"Zoom must be >= 1, got {zoom}")
