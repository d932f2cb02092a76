"""Display pipeline and Matplotlib preview for rendered frames.

Frames come out of the renderer already clamped to [0, 1] in linear space,
so the default pipeline is gamma only. The Reinhard and exposure operators
are kept for frames rendered with bright lights where the unnormalized
material weights push colors past 1 before the renderer clamps them, and
for arrays that did not come from the renderer at all.

Example:
    >>> from diorama.core.renderer import FrameRenderer
    >>> from diorama.preview.display import show_preview
    >>>
    >>> renderer = FrameRenderer(640, 360)
    >>> renderer.render_frame(camera)
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from diorama.core.renderer import FrameRenderer


ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Compress values with c / (1 + c). Negative input is treated as 0."""
    positive = np.maximum(image, 0.0)
    return (positive / (1.0 + positive)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Map values with 1 - exp(-c * exposure).

    Args:
        image: Linear image of shape (H, W, 3).
        exposure: Brightness multiplier; larger values saturate sooner.

    Returns:
        Image in [0, 1).
    """
    positive = np.maximum(image, 0.0)
    return (1.0 - np.exp(-positive * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Encode a linear image with out = in ** (1 / gamma).

    A gamma of 1.0 returns the input untouched. Otherwise values are clamped
    to [0, 1] first.
    """
    if gamma == 1.0:
        return image
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    clamped = np.clip(image, 0.0, 1.0)
    return np.power(clamped, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the display pipeline: tone map, gamma, clamp.

    Args:
        image: Linear image of shape (H, W, 3).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Display gamma; 1.0 writes linear values as-is.
        exposure: Only used by the exposure operator.

    Returns:
        A new float32 array in [0, 1].

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    result = np.array(image, dtype=np.float32, copy=True)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def format_frame_title(renderer: FrameRenderer) -> str:
    """Describe the renderer's last frame for a window or figure title."""
    size = renderer.frame_size
    if size is None:
        return f"Diorama {renderer.width}x{renderer.height} (no frame)"
    avg = renderer.quality.average_ms
    timing = f", {avg:.1f} ms" if avg is not None else ""
    return (
        f"Diorama {renderer.width}x{renderer.height} "
        f"(internal {size[0]}x{size[1]}, scale {renderer.quality.scale:.2f}{timing})"
    )


def show_preview(
    renderer: FrameRenderer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (10, 5.625),
    block: bool = True,
) -> None:
    """Show the renderer's last frame, upscaled to display size, in a figure.

    Args:
        renderer: A renderer that has produced at least one frame.
        tone_map: Tone mapping method.
        gamma: Display gamma.
        exposure: Exposure for the exposure operator.
        title: Figure title; defaults to resolution and timing info.
        figsize: Figure size in inches.
        block: Block until the figure is closed.

    Raises:
        RuntimeError: If the renderer has not rendered a frame.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        renderer.get_display_image(),
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")
    ax.set_title(title if title is not None else format_frame_title(renderer))

    plt.tight_layout()
    plt.show(block=block)
