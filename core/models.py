"""
Displace -- Parameter Models

Pydantic models for displacement and magnifier requests. The engine imposes
no range limits on these values; UI_RANGES is what the host controls offer.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DisplacementMode(str, Enum):
    """Which coordinate the pattern perturbs."""
    HORIZONTAL = "horizontal"  # sourceX pushed right
    VERTICAL = "vertical"      # sourceY pushed down
    RADIAL = "radial"          # pushed outward from the image center


# Slider ranges offered by the host UIs (min, max, step)
UI_RANGES = {
    "x_shift": (-100, 100, 1),
    "y_shift": (-100, 100, 1),
    "scale": (0.0, 5.0, 0.1),
    "zoom": (1.0, 8.0, 0.5),
}


class DisplacementParams(BaseModel):
    """Pattern offset, strength and mode for one engine call."""
    model_config = ConfigDict(frozen=True)

    x_shift: int = Field(
        default=15,
        description="Horizontal pattern offset in pixels. Any integer; wraps with the pattern width.",
    )
    y_shift: int = Field(
        default=0,
        description="Vertical pattern offset in pixels. Any integer; wraps with the pattern height.",
    )
    scale: float = Field(
        default=1.0,
        ge=0.0,
        description="Displacement strength. 0 = identity, 1 = up to 20px.",
    )
    mode: DisplacementMode = Field(
        default=DisplacementMode.HORIZONTAL,
        description="Displacement direction.",
    )


class MagnifierRequest(BaseModel):
    """Zoomed window around a focal point of an already rendered buffer."""
    model_config = ConfigDict(frozen=True)

    zoom: float = Field(
        default=2.0,
        description="Magnification factor. Must be >= 1 (checked by the sampler).",
    )
    focal: tuple[float, float] = Field(
        default=(0.0, 0.0),
        description="(x, y) point in buffer pixels the window is centered on.",
    )
    output_size: int = Field(
        default=150,
        ge=0,
        description="Side of the square preview in pixels.",
    )
