"""Presentation and export of rendered frames.

Components:
    display: Tone mapping, gamma and a Matplotlib preview
    export: PNG output and image decoding via Pillow
    interactive: Taichi GGUI window with orbit controls
"""

from diorama.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from diorama.preview.export import (
    compute_rmse,
    image_to_uint8,
    load_image_array,
    save_png,
    save_png_from_array,
)
from diorama.preview.interactive import InteractivePreview

__all__ = [
    "InteractivePreview",
    "show_preview",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "load_image_array",
    "compute_rmse",
]
