#!/usr/bin/env python3
"""
Displace — FastAPI Backend
Serves the preview/magnifier/export API for pattern displacement.
"""

import asyncio
import sys
import os
import logging

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fastapi import FastAPI, UploadFile, File, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from effects import apply, extract, list_effects, CATEGORIES
from core.buffer import PixelBuffer
from core.image_io import decode_image, encode_png, to_data_url, fit_to_pixels, DEFAULT_EXPORT_NAME
from core.models import DisplacementMode, DisplacementParams, UI_RANGES
from core.patterns import PatternGallery, PatternRef, builtin
from core.randomize import randomize_params, randomize_pattern
from core.safety import SafetyError, InvalidDimensions, InvalidZoom, PatternNotFound

logger = logging.getLogger(__name__)

app = FastAPI(title="Displace")

MAX_UPLOAD_SIZE = 50 * 1024 * 1024       # 50MB per upload
PREVIEW_MAX_PIXELS = 1280 * 720          # Preview renders are capped; export is full-res
MAGNIFIER_SIZE = 150                     # Default magnifier side in pixels
MAX_CUSTOM_PATTERNS = 32
DEFAULT_PATTERN = "builtin:ripple"

# In-memory state for current session
_state = {
    "source": None,        # full-resolution PixelBuffer
    "preview_source": None,  # source capped to PREVIEW_MAX_PIXELS
    "last_output": None,   # last preview render, magnified by /api/magnify
}
_state_lock = asyncio.Lock()
_gallery = PatternGallery()

# Structured error recovery hints for user-facing errors
ERROR_RECOVERY = {
    "no_image": {"code": "NO_IMAGE", "hint": "Upload an image first.", "action": "load_file"},
    "no_preview": {"code": "NO_PREVIEW", "hint": "Render a preview before magnifying.", "action": "preview"},
    "file_too_large": {"code": "FILE_TOO_LARGE", "hint": "Try a smaller image.", "action": None},
    "invalid_image": {"code": "INVALID_IMAGE", "hint": "Check the file format and try again.", "action": "retry"},
    "invalid_dimensions": {"code": "INVALID_DIMENSIONS", "hint": "Images and patterns need at least one pixel.", "action": None},
    "invalid_zoom": {"code": "INVALID_ZOOM", "hint": "Zoom must be 1 or more.", "action": None},
    "pattern_not_found": {"code": "PATTERN_NOT_FOUND", "hint": "Refresh the pattern list.", "action": "refresh"},
    "too_many_patterns": {"code": "TOO_MANY_PATTERNS", "hint": "Remove a custom pattern first.", "action": None},
    "processing_failed": {"code": "PROCESSING_FAILED", "hint": "Try resetting parameters.", "action": "reset"},
}


def _error_detail(key: str, message: str) -> dict:
    """Build structured error detail dict for the frontend."""
    recovery = ERROR_RECOVERY.get(key, {})
    return {
        "detail": message,
        "code": recovery.get("code", "UNKNOWN"),
        "hint": recovery.get("hint", ""),
        "action": recovery.get("action"),
    }


def _http_error(e: SafetyError) -> HTTPException:
    """Map a domain error to an HTTP error. Order matters: most specific first."""
    if isinstance(e, PatternNotFound):
        return HTTPException(status_code=404, detail=_error_detail("pattern_not_found", str(e)))
    if isinstance(e, InvalidZoom):
        return HTTPException(status_code=400, detail=_error_detail("invalid_zoom", str(e)))
    if isinstance(e, InvalidDimensions):
        return HTTPException(status_code=400, detail=_error_detail("invalid_dimensions", str(e)))
    return HTTPException(status_code=400, detail=_error_detail("invalid_image", str(e)))


class RenderRequest(BaseModel):
    x_shift: int = 15
    y_shift: int = 0
    scale: float = Field(default=1.0, ge=0.0)
    mode: DisplacementMode = DisplacementMode.HORIZONTAL
    pattern: str = DEFAULT_PATTERN

    def params(self) -> DisplacementParams:
        return DisplacementParams(
            x_shift=self.x_shift, y_shift=self.y_shift,
            scale=self.scale, mode=self.mode,
        )


class MagnifyRequest(BaseModel):
    x: float
    y: float
    zoom: float = 2.0
    output_size: int = Field(default=MAGNIFIER_SIZE, ge=0, le=1024)


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload in chunks, enforcing MAX_UPLOAD_SIZE."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")
    chunks = []
    total_size = 0
    while chunk := await file.read(1024 * 1024):  # 1MB chunks
        total_size += len(chunk)
        if total_size > MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=413,
                detail=_error_detail(
                    "file_too_large",
                    f"File too large. Maximum size: {MAX_UPLOAD_SIZE // (1024*1024)}MB",
                ),
            )
        chunks.append(chunk)
    return b"".join(chunks)


def _render(source: PixelBuffer, req: RenderRequest) -> PixelBuffer:
    pattern = _gallery.get(PatternRef.parse(req.pattern))
    return apply(source, pattern, req.params())


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "image_loaded": _state["source"] is not None}


@app.get("/api/effects")
async def effects_list():
    """List displacement modes and the magnifier with their default params."""
    effects = []
    for entry in list_effects():
        effects.append({
            **entry,
            "params": {k: list(v) if isinstance(v, tuple) else v
                       for k, v in entry["params"].items()},
        })
    return {"effects": effects, "categories": CATEGORIES, "ranges": UI_RANGES}


@app.get("/api/patterns")
async def list_patterns(thumbnails: bool = False):
    """Built-in patterns then custom uploads, in gallery order."""
    patterns = _gallery.describe()
    if thumbnails:
        for item in patterns:
            item["thumbnail"] = to_data_url(_gallery.get(PatternRef.parse(item["ref"])))
    return {"patterns": patterns}


@app.post("/api/upload")
async def upload_image(file: UploadFile = File(...)):
    """Upload the source image."""
    data = await _read_upload(file)
    try:
        source = decode_image(data)
    except SafetyError as e:
        raise _http_error(e)

    async with _state_lock:
        _state["source"] = source
        _state["preview_source"] = fit_to_pixels(source, PREVIEW_MAX_PIXELS)
        _state["last_output"] = None
    logger.info("Loaded source %s (%dx%d)", file.filename, source.width, source.height)

    return {
        "status": "ok",
        "info": {"width": source.width, "height": source.height},
        "preview": to_data_url(_state["preview_source"]),
    }


@app.post("/api/patterns/upload")
async def upload_pattern(file: UploadFile = File(...)):
    """Add a custom tileable pattern to the gallery."""
    if _gallery.custom_count >= MAX_CUSTOM_PATTERNS:
        raise HTTPException(status_code=400, detail=_error_detail(
            "too_many_patterns", f"Maximum {MAX_CUSTOM_PATTERNS} custom patterns"))
    data = await _read_upload(file)
    try:
        pattern = decode_image(data)
        ref = _gallery.add_custom(pattern, name=file.filename)
    except SafetyError as e:
        raise _http_error(e)
    return {"status": "ok", "ref": str(ref), "width": pattern.width, "height": pattern.height}


@app.delete("/api/patterns/custom/{pattern_id}")
async def delete_pattern(pattern_id: str):
    try:
        _gallery.remove_custom(pattern_id)
    except PatternNotFound as e:
        raise _http_error(e)
    return {"status": "ok"}


@app.post("/api/preview")
async def preview(req: RenderRequest):
    """Displace the (capped) source and return a PNG data URL."""
    source = _state["preview_source"]
    if source is None:
        raise HTTPException(status_code=400, detail=_error_detail("no_image", "No image loaded"))
    try:
        output = _render(source, req)
    except SafetyError as e:
        raise _http_error(e)
    except Exception as e:
        logging.exception("Preview failed")
        raise HTTPException(status_code=500, detail=_error_detail(
            "processing_failed", f"Displacement failed: {str(e)[:100]}"))

    async with _state_lock:
        _state["last_output"] = output
    return {"preview": to_data_url(output), "width": output.width, "height": output.height}


@app.post("/api/magnify")
async def magnify(req: MagnifyRequest):
    """Zoomed square around (x, y) of the last preview."""
    output = _state["last_output"]
    if output is None:
        raise HTTPException(status_code=400, detail=_error_detail("no_preview", "No preview rendered"))
    try:
        zoomed = extract(output, req.zoom, (req.x, req.y), req.output_size)
    except SafetyError as e:
        raise _http_error(e)
    return {"magnified": to_data_url(zoomed), "size": zoomed.width}


@app.get("/api/randomize")
async def randomize(mode: DisplacementMode = DisplacementMode.HORIZONTAL,
                    pattern: bool = Query(default=False)):
    """Random shifts and scale; optionally a random gallery pattern too."""
    params = randomize_params(mode=mode)
    result = params.model_dump(mode="json")
    if pattern:
        result["pattern"] = str(randomize_pattern(_gallery))
    return result


@app.post("/api/export")
async def export(req: RenderRequest):
    """Full-resolution render as a PNG download."""
    source = _state["source"]
    if source is None:
        raise HTTPException(status_code=400, detail=_error_detail("no_image", "No image loaded"))
    try:
        output = _render(source, req)
    except SafetyError as e:
        raise _http_error(e)
    except Exception as e:
        logging.exception("Export failed")
        raise HTTPException(status_code=500, detail=_error_detail(
            "processing_failed", f"Export failed: {str(e)[:100]}"))
    logger.info("Exported %dx%d %s render", output.width, output.height, req.mode.value)
    return Response(
        content=encode_png(output),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{DEFAULT_EXPORT_NAME}"'},
    )


@app.post("/api/reset")
async def reset():
    """Drop the loaded image and the last render."""
    async with _state_lock:
        _state["source"] = None
        _state["preview_source"] = None
        _state["last_output"] = None
    return {"status": "ok", "default_pattern": str(builtin("ripple"))}


def main(host: str = "127.0.0.1", port: int = 7861):
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
