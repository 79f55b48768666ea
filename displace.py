#!/usr/bin/env python3
"""
Displace — Pattern Glass, Noise and Glitch
CLI entry point. Also importable as a library.

Usage:
    python displace.py apply photo.jpg -o out.png --pattern ripple --x-shift 15
    python displace.py apply photo.jpg -o out.png --pattern my_tile.png --mode radial
    python displace.py apply photo.jpg -o out.png --random --seed 7
    python displace.py magnify out.png -o zoom.png --x 120 --y 80 --zoom 4
    python displace.py list-patterns
    python displace.py list-effects
    python displace.py random --seed 7
    python displace.py serve --port 7861
    python displace.py ui
"""

import sys
import os
import random
import argparse
from pathlib import Path

# Add project root to path so imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.image_io import load_image, save_image, DEFAULT_EXPORT_NAME
from core.models import DisplacementMode, DisplacementParams, UI_RANGES
from core.patterns import PatternGallery, PatternRef, BUILTIN_PATTERNS
from core.randomize import randomize_params, randomize_pattern
from effects import apply, extract, list_categories, EFFECTS, CATEGORIES

__version__ = "0.1.0"


def _resolve_pattern(gallery: PatternGallery, value: str) -> PatternRef:
    """A built-in name, a 'builtin:'/'custom:' ref, or a path to an image file."""
    if value in BUILTIN_PATTERNS or value.startswith(("builtin:", "custom:")):
        return PatternRef.parse(value)
    if Path(value).is_file():
        return gallery.add_custom(load_image(value), name=Path(value).name)
    return PatternRef.parse(value)


def cmd_apply(args):
    """Displace an image and save the result as PNG."""
    gallery = PatternGallery()
    source = load_image(args.source)
    print(f"Source: {args.source} ({source.width}x{source.height})")

    rng = random.Random(args.seed) if args.seed is not None else random.Random()
    mode = DisplacementMode(args.mode)
    if args.random:
        params = randomize_params(rng, mode=mode)
    else:
        params = DisplacementParams(
            x_shift=args.x_shift, y_shift=args.y_shift, scale=args.scale, mode=mode,
        )

    if args.pattern:
        ref = _resolve_pattern(gallery, args.pattern)
    elif args.random:
        ref = randomize_pattern(gallery, rng)
    else:
        ref = PatternRef.parse("ripple")
    pattern = gallery.get(ref)

    print(f"Pattern: {ref} ({pattern.width}x{pattern.height})")
    print(f"Params: x_shift={params.x_shift} y_shift={params.y_shift} "
          f"scale={params.scale:.2f} mode={params.mode.value}")

    output = apply(source, pattern, params)
    path = save_image(output, args.output)
    print(f"Saved: {path}")


def cmd_magnify(args):
    """Save a zoomed square around a point of an image."""
    image = load_image(args.image)
    zoomed = extract(image, args.zoom, (args.x, args.y), args.size)
    path = save_image(zoomed, args.output)
    print(f"Saved {zoomed.width}x{zoomed.height} magnifier view: {path}")


def cmd_list_patterns(args):
    """List built-in patterns in gallery order."""
    print(f"\n  BUILT-IN PATTERNS ({len(BUILTIN_PATTERNS)})")
    print(f"  {'—' * 50}")
    for item in PatternGallery().describe():
        print(f"    {item['name']:12s} — {item['description']}")
    print()


def cmd_list_effects(args):
    """List displacement modes and helpers."""
    for cat, names in list_categories().items():
        print(f"\n  {CATEGORIES[cat].upper()}")
        print(f"  {'—' * 50}")
        for name in names:
            print(f"    {name:12s} — {EFFECTS[name]['description']}")
    print()


def cmd_random(args):
    """Print a random parameter set."""
    rng = random.Random(args.seed) if args.seed is not None else random.Random()
    params = randomize_params(rng, mode=DisplacementMode(args.mode))
    ref = randomize_pattern(PatternGallery(), rng)
    print(f"--x-shift {params.x_shift} --y-shift {params.y_shift} "
          f"--scale {params.scale:.2f} --mode {params.mode.value} --pattern {ref}")


def cmd_serve(args):
    """Launch the HTTP API."""
    from server import main as serve
    serve(host=args.host, port=args.port)


def cmd_ui(args):
    """Launch the Gradio visual interface."""
    from gradio_ui import launch
    launch()


def build_parser():
    parser = argparse.ArgumentParser(
        prog="displace",
        description="Displace — pattern glass, noise and glitch effects",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")
    modes = [m.value for m in DisplacementMode]

    # apply
    p = sub.add_parser("apply", help="Displace an image by a tiled pattern")
    p.add_argument("source", help="Path to source image")
    p.add_argument("-o", "--output", default=DEFAULT_EXPORT_NAME, help="Output PNG path")
    p.add_argument("--pattern", help="Built-in pattern name or path to a tileable image")
    p.add_argument("--x-shift", type=int, default=15,
                   help=f"Pattern x offset (UI range {UI_RANGES['x_shift'][0]}..{UI_RANGES['x_shift'][1]})")
    p.add_argument("--y-shift", type=int, default=0,
                   help=f"Pattern y offset (UI range {UI_RANGES['y_shift'][0]}..{UI_RANGES['y_shift'][1]})")
    p.add_argument("--scale", type=float, default=1.0,
                   help=f"Displacement strength (UI range {UI_RANGES['scale'][0]}..{UI_RANGES['scale'][1]})")
    p.add_argument("--mode", choices=modes, default="horizontal")
    p.add_argument("--random", action="store_true", help="Randomize shifts, scale (and pattern if none given)")
    p.add_argument("--seed", type=int, help="Seed for --random")

    # magnify
    p = sub.add_parser("magnify", help="Zoom into a point of an image")
    p.add_argument("image", help="Path to image")
    p.add_argument("-o", "--output", required=True, help="Output PNG path")
    p.add_argument("--x", type=float, required=True, help="Focal x in pixels")
    p.add_argument("--y", type=float, required=True, help="Focal y in pixels")
    p.add_argument("--zoom", type=float, default=2.0)
    p.add_argument("--size", type=int, default=150, help="Side of the output square")

    # list-patterns / list-effects
    sub.add_parser("list-patterns", help="List built-in patterns")
    sub.add_parser("list-effects", help="List displacement modes")

    # random
    p = sub.add_parser("random", help="Print a random parameter set")
    p.add_argument("--seed", type=int)
    p.add_argument("--mode", choices=modes, default="horizontal")

    # serve
    p = sub.add_parser("serve", help="Launch the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=7861)

    # ui
    sub.add_parser("ui", help="Launch Gradio visual interface")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "apply": cmd_apply,
        "magnify": cmd_magnify,
        "list-patterns": cmd_list_patterns,
        "list-effects": cmd_list_effects,
        "random": cmd_random,
        "serve": cmd_serve,
        "ui": cmd_ui,
    }

    if args.command in commands:
        try:
            commands[args.command](args)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
