"""
Displace — Effects Registry
Uniform interface over the displacement modes and the magnifier.
Every effect is a function: (frame: np.ndarray, **params) -> np.ndarray
"""

import numpy as np

from effects.displace import pattern_displace, apply, DISPLACEMENT_PIXELS
from effects.magnifier import magnify, extract

# Master registry: name -> (function, default_params, description)
EFFECTS = {
    # === DISPLACE ===
    "horizontal": {
        "fn": pattern_displace,
        "category": "displace",
        "params": {"x_shift": 15, "y_shift": 0, "scale": 1.0, "mode": "horizontal"},
        "description": "Push pixels sideways by the pattern's red channel",
    },
    "vertical": {
        "fn": pattern_displace,
        "category": "displace",
        "params": {"x_shift": 15, "y_shift": 0, "scale": 1.0, "mode": "vertical"},
        "description": "Push pixels downward by the pattern's red channel",
    },
    "radial": {
        "fn": pattern_displace,
        "category": "displace",
        "params": {"x_shift": 15, "y_shift": 0, "scale": 1.0, "mode": "radial"},
        "description": "Push pixels outward from the image center",
    },

    # === INSPECT ===
    "magnifier": {
        "fn": magnify,
        "category": "inspect",
        "params": {"zoom": 2.0, "focal": (0.0, 0.0), "output_size": 150},
        "description": "Nearest-neighbor zoom around a focal point",
    },
}

CATEGORIES = {
    "displace": "Displace — pattern glass, noise and glitch",
    "inspect": "Inspect — preview helpers",
}

CATEGORY_ORDER = ["displace", "inspect"]

# Effects that need a pattern frame as their second argument
PATTERN_EFFECTS = {name for name, e in EFFECTS.items() if e["category"] == "displace"}


def get_effect(name: str):
    """Return (fn, default_params) for a registered effect."""
    if name not in EFFECTS:
        raise KeyError(f"Unknown effect: {name}. Available: {list(EFFECTS.keys())}")
    entry = EFFECTS[name]
    return entry["fn"], entry["params"].copy()


def list_effects():
    """Return list of effect info dicts."""
    return [
        {
            "name": name,
            "category": entry["category"],
            "description": entry["description"],
            "params": entry["params"],
        }
        for name, entry in EFFECTS.items()
    ]


def list_categories():
    """Return effects grouped by category, in display order."""
    grouped = {cat: [] for cat in CATEGORY_ORDER}
    for name, entry in EFFECTS.items():
        grouped.setdefault(entry["category"], []).append(name)
    return grouped


def apply_effect(frame: np.ndarray, effect_name: str,
                 pattern: np.ndarray | None = None, **params) -> np.ndarray:
    """Apply a single effect to a frame.

    Displacement effects take the pattern array; the mode comes from the
    effect name and cannot be overridden through params.
    """
    fn, defaults = get_effect(effect_name)
    merged = {**defaults, **params}

    if effect_name in PATTERN_EFFECTS:
        if pattern is None:
            raise ValueError(f"Effect '{effect_name}' needs a pattern")
        merged["mode"] = defaults["mode"]
        return fn(frame, pattern, **merged)
    return fn(frame, **merged)
