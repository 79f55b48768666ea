"""
Displace — Image I/O
Decodes files and uploads into RGBA pixel buffers and encodes results back
to PNG. Everything the engine sees comes through here as a PixelBuffer.
"""

import base64
import logging
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image

from core.buffer import PixelBuffer
from core.safety import SafetyError, preflight, validate_resolution

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "displaced_image.png"


def _from_pil(img: Image.Image) -> PixelBuffer:
    validate_resolution(img.width, img.height)
    return PixelBuffer.from_array(np.array(img.convert("RGBA")))


def load_image(image_path: str) -> PixelBuffer:
    """Load any Pillow-readable image file as an RGBA buffer."""
    info = preflight(image_path)
    try:
        with Image.open(info["path"]) as img:
            buffer = _from_pil(img)
    except OSError:  # includes UnidentifiedImageError
        raise SafetyError(f"Not a readable image: {image_path}")
    logger.debug("Loaded %s (%dx%d)", image_path, buffer.width, buffer.height)
    return buffer


def decode_image(data: bytes) -> PixelBuffer:
    """Decode in-memory image bytes (an upload) as an RGBA buffer."""
    try:
        with Image.open(BytesIO(data)) as img:
            return _from_pil(img)
    except OSError:  # includes UnidentifiedImageError
        raise SafetyError("Uploaded file is not a readable image")


def to_pil(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(buffer.to_array())


def encode_png(buffer: PixelBuffer) -> bytes:
    """Encode a buffer as PNG bytes (lossless, alpha kept)."""
    out = BytesIO()
    to_pil(buffer).save(out, format="PNG")
    return out.getvalue()


def save_image(buffer: PixelBuffer, output_path: str) -> Path:
    """Save a buffer as PNG, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(encode_png(buffer))
    logger.info("Saved %dx%d image to %s", buffer.width, buffer.height, output_path)
    return output_path


def to_data_url(buffer: PixelBuffer) -> str:
    """PNG data URL for <img> tags. Nearest-neighbor pixels are kept as-is."""
    b64 = base64.b64encode(encode_png(buffer)).decode()
    return f"data:image/png;base64,{b64}"


def fit_to_pixels(buffer: PixelBuffer, max_pixels: int) -> PixelBuffer:
    """Downscale so width * height <= max_pixels. Smaller buffers pass through."""
    w, h = buffer.width, buffer.height
    if w * h <= max_pixels:
        return buffer
    ratio = (max_pixels / (w * h)) ** 0.5
    new_w, new_h = max(1, int(w * ratio)), max(1, int(h * ratio))
    img = to_pil(buffer).resize((new_w, new_h), Image.LANCZOS)
    return PixelBuffer.from_array(np.array(img))
