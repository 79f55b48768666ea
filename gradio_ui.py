#!/usr/bin/env python3
"""
Displace — Gradio Visual Interface
Drag-and-drop UI for pattern displacement with a live magnifier.
Launches at http://localhost:7860
"""

import math
import sys
import os
import tempfile

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import gradio as gr

from effects import apply, extract
from core.buffer import PixelBuffer
from core.image_io import save_image, DEFAULT_EXPORT_NAME
from core.models import DisplacementMode, DisplacementParams, UI_RANGES
from core.patterns import PatternGallery, BUILTIN_PATTERNS, builtin, render_pattern
from core.randomize import randomize_params, randomize_pattern

CUSTOM_CHOICE = "custom upload"


def get_pattern_choices():
    return list(BUILTIN_PATTERNS.keys()) + [CUSTOM_CHOICE]


def _pattern_buffer(pattern_name, custom_pattern):
    if pattern_name == CUSTOM_CHOICE:
        if custom_pattern is None:
            raise ValueError("Upload a custom pattern first")
        return PixelBuffer.from_array(custom_pattern)
    return PatternGallery().get(builtin(pattern_name))


def render_preview(image, pattern_name, custom_pattern, x_shift, y_shift, scale, mode):
    """Displace the uploaded image and return (result, status)."""
    if image is None:
        return None, "Upload an image first"
    try:
        params = DisplacementParams(
            x_shift=int(x_shift), y_shift=int(y_shift),
            scale=float(scale), mode=DisplacementMode(mode),
        )
        output = apply(PixelBuffer.from_array(image),
                       _pattern_buffer(pattern_name, custom_pattern), params)
        info = (f"{output.width}x{output.height} | pattern={pattern_name} "
                f"x={params.x_shift} y={params.y_shift} scale={params.scale:.1f} mode={mode}")
        return output.to_array().copy(), info
    except Exception as e:
        return None, f"Error: {e}"


def randomize_controls(pattern_name, include_pattern, custom_pattern=None):
    """New slider values, optionally a new pattern.

    The pattern draw covers the built-ins plus the custom upload, if any.
    Scale is truncated to the slider step so it stays below the upper bound.
    """
    params = randomize_params()
    if include_pattern:
        gallery = PatternGallery()
        if custom_pattern is not None:
            gallery.add_custom(PixelBuffer.from_array(custom_pattern))
        ref = randomize_pattern(gallery)
        pattern_name = CUSTOM_CHOICE if ref.kind == "custom" else ref.id
    scale = math.floor(params.scale * 10) / 10
    return params.x_shift, params.y_shift, scale, pattern_name


def magnify_preview(result, focal_x, focal_y, zoom):
    """Zoomed square around a fractional (0-1) point of the result."""
    if result is None:
        return None
    h, w = result.shape[:2]
    buffer = PixelBuffer.from_array(result)
    zoomed = extract(buffer, float(zoom), (focal_x * w, focal_y * h), 150)
    return zoomed.to_array().copy()


def pattern_thumbnail(pattern_name):
    if pattern_name not in BUILTIN_PATTERNS:
        return None
    return render_pattern(pattern_name)


def export_png(result):
    """Write the current result to a temp PNG for download."""
    if result is None:
        return None
    out_dir = tempfile.mkdtemp(prefix="displace_")
    return str(save_image(PixelBuffer.from_array(result), os.path.join(out_dir, DEFAULT_EXPORT_NAME)))


def launch():
    """Build and launch the Gradio interface."""
    x_min, x_max, x_step = UI_RANGES["x_shift"]
    y_min, y_max, y_step = UI_RANGES["y_shift"]
    s_min, s_max, s_step = UI_RANGES["scale"]
    z_min, z_max, z_step = UI_RANGES["zoom"]

    with gr.Blocks(title="Displace — pattern glass, noise and glitch effects") as app:
        gr.Markdown("# Displace\n### pattern glass, noise and glitch effects")

        with gr.Row():
            with gr.Column(scale=2):
                image_input = gr.Image(label="Drop Image Here", type="numpy", image_mode="RGBA")
                result_image = gr.Image(label="Result", type="numpy", image_mode="RGBA")
                status_text = gr.Textbox(label="Status", interactive=False)

            with gr.Column(scale=1):
                pattern_dropdown = gr.Dropdown(choices=get_pattern_choices(), label="Pattern", value="ripple")
                pattern_preview = gr.Image(label="Pattern", type="numpy", value=pattern_thumbnail("ripple"),
                                           interactive=False)
                custom_pattern = gr.Image(label="Custom Pattern", type="numpy", image_mode="RGBA")
                mode_radio = gr.Radio(choices=[m.value for m in DisplacementMode],
                                      label="Mode", value="horizontal")
                x_slider = gr.Slider(label="X Shift", minimum=x_min, maximum=x_max, step=x_step, value=15)
                y_slider = gr.Slider(label="Y Shift", minimum=y_min, maximum=y_max, step=y_step, value=0)
                scale_slider = gr.Slider(label="Scale", minimum=s_min, maximum=s_max, step=s_step, value=1.0)
                random_pattern = gr.Checkbox(label="Randomize pattern too", value=False)

                with gr.Row():
                    random_btn = gr.Button("Random", variant="secondary")
                    download_btn = gr.Button("Download", variant="primary")
                download_file = gr.File(label="Download")

                gr.Markdown("#### Magnifier")
                focal_x = gr.Slider(label="Focus X", minimum=0, maximum=1, step=0.01, value=0.5)
                focal_y = gr.Slider(label="Focus Y", minimum=0, maximum=1, step=0.01, value=0.5)
                zoom_slider = gr.Slider(label="Zoom", minimum=z_min, maximum=z_max, step=z_step, value=2.0)
                magnifier = gr.Image(label="Magnifier", type="numpy", interactive=False)

        render_inputs = [image_input, pattern_dropdown, custom_pattern,
                         x_slider, y_slider, scale_slider, mode_radio]
        # Re-render whenever any input changes
        for control in render_inputs:
            control.change(fn=render_preview, inputs=render_inputs, outputs=[result_image, status_text])

        pattern_dropdown.change(fn=pattern_thumbnail, inputs=[pattern_dropdown], outputs=[pattern_preview])

        for control in (result_image, focal_x, focal_y, zoom_slider):
            control.change(fn=magnify_preview, inputs=[result_image, focal_x, focal_y, zoom_slider],
                           outputs=[magnifier])

        random_btn.click(
            fn=randomize_controls,
            inputs=[pattern_dropdown, random_pattern, custom_pattern],
            outputs=[x_slider, y_slider, scale_slider, pattern_dropdown],
        )
        download_btn.click(fn=export_png, inputs=[result_image], outputs=[download_file])

    app.launch(server_name="127.0.0.1", server_port=7860)


if __name__ == "__main__":
    launch()
