"""Image file input and output via Pillow.

Frames are written as 8-bit RGB PNGs after the display pipeline in
``preview.display``. Texture and cubemap images are decoded to row-major
uint8 RGB arrays, the layout ``materials.texture.add_texture`` accepts.

Example:
    >>> from diorama.preview.export import load_image_array, save_png
    >>> pixels = load_image_array("bricks.png")
    >>> save_png(renderer, "frame.png")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from diorama.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from diorama.core.renderer import FrameRenderer

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Run the display pipeline and quantize to 8 bits (truncating).

    Args:
        image: Linear image of shape (H, W, 3).
        tone_map: Tone mapping method.
        gamma: Display gamma.
        exposure: Exposure for the exposure operator.

    Returns:
        uint8 array of shape (H, W, 3).
    """
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return (processed * 255).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Write a linear float image as an 8-bit RGB PNG."""
    pixels = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(pixels, mode="RGB").save(filepath)
    logger.info("Wrote %dx%d image to %s", pixels.shape[1], pixels.shape[0], filepath)


def save_png(
    renderer: FrameRenderer,
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Write the renderer's last frame at display resolution.

    Raises:
        RuntimeError: If the renderer has not rendered a frame.
    """
    save_png_from_array(
        renderer.get_display_image(),
        filepath,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )


def load_image_array(filepath: str) -> npt.NDArray[np.uint8]:
    """Decode an image file to a row-major uint8 RGB array.

    Alpha and palette images are converted to RGB. Decoding errors from
    Pillow propagate unchanged.

    Returns:
        Array of shape (height, width, 3).
    """
    with PILImage.open(filepath) as img:
        rgb = img.convert("RGB")
        pixels = np.asarray(rgb, dtype=np.uint8)
    logger.debug("Loaded %s (%dx%d)", filepath, pixels.shape[1], pixels.shape[0])
    return pixels


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Root mean squared difference of two equally shaped images.

    Raises:
        ValueError: If the shapes differ.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")
    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
