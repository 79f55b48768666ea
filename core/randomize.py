"""
Displace — Randomize
Random parameter sets for the "Random" button.
"""

import math
import random

from core.models import DisplacementMode, DisplacementParams

SHIFT_RANGE = (-100, 100)   # inclusive integers
SCALE_RANGE = (1.0, 5.0)    # [low, high)


def random_shift(rng: random.Random) -> int:
    """Uniform integer in SHIFT_RANGE (inclusive)."""
    low, high = SHIFT_RANGE
    return math.floor(rng.random() * (high - low + 1)) + low


def random_scale(rng: random.Random) -> float:
    """Uniform float in [SCALE_RANGE[0], SCALE_RANGE[1])."""
    low, high = SCALE_RANGE
    return rng.random() * (high - low) + low


def randomize_params(rng: random.Random | None = None,
                     mode: DisplacementMode = DisplacementMode.HORIZONTAL) -> DisplacementParams:
    """Random shifts and scale. The mode is left as the caller had it.

    Consumes exactly three draws: x_shift, y_shift, scale.
    """
    rng = rng or random.Random()
    return DisplacementParams(
        x_shift=random_shift(rng),
        y_shift=random_shift(rng),
        scale=random_scale(rng),
        mode=mode,
    )


def randomize_pattern(gallery, rng: random.Random | None = None):
    """Uniform choice over every pattern in the gallery (built-ins and customs)."""
    rng = rng or random.Random()
    return rng.choice(gallery.refs())
