"""Parallel frame renderer with adaptive internal resolution.

Each frame traces one primary ray per pixel of an internal grid in a single
Taichi parallel loop, so every pixel is an independent task on the CPU
thread pool or the GPU. ``ti.sync()`` is the barrier after which the buffer
is complete and may be presented. The scene and camera are read-only while
the kernel runs; the camera snapshot is uploaded only at frame boundaries.

The internal grid is the display size times the current adaptive scale (see
``core.adaptive``). The frame buffer is row-major with row 0 at the top and
each pixel is clamped to [0, 1] with non-finite components replaced by 0.
``get_display_image`` upscales the internal image back to the display size
by nearest-neighbor lookup.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.core.renderer import FrameRenderer
    >>> from diorama.scene.diorama import create_diorama_scene
    >>>
    >>> scene, camera = create_diorama_scene()
    >>> renderer = FrameRenderer(960, 540)
    >>> stats = renderer.render_frame(camera)
    >>> frame = renderer.get_display_image()
"""

import logging
import time
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from diorama.camera.orbit import OrbitCamera, get_ray, setup_camera
from diorama.core.adaptive import AdaptiveQuality, QualityConfig
from diorama.core.integrator import sanitize_color, trace_color

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Maximum supported internal dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Indexed [row, col], row 0 at the top
_frame_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))


@ti.func
def _pixel_uv(col: ti.i32, row: ti.i32, width: ti.i32, height: ti.i32) -> tm.vec2:
    """Normalized coordinates of a pixel center, v = 0 at the top row."""
    u = (ti.cast(col, ti.f32) + 0.5) / ti.cast(width, ti.f32)
    v = (ti.cast(row, ti.f32) + 0.5) / ti.cast(height, ti.f32)
    return tm.vec2(u, v)


@ti.func
def _shade_pixel(col: ti.i32, row: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    uv = _pixel_uv(col, row, width, height)
    ray = get_ray(uv.x, uv.y)
    color, _, _ = trace_color(ray.origin, ray.direction)
    return tm.clamp(sanitize_color(color), 0.0, 1.0)


@ti.kernel
def _render_frame(width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        _frame_buffer[row, col] = _shade_pixel(col, row, width, height)


@ti.kernel
def _render_single_pixel(col: ti.i32, row: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    return _shade_pixel(col, row, width, height)


@ti.kernel
def _copy_frame(out: ti.types.ndarray(), width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        for c in ti.static(range(3)):
            out[row, col, c] = _frame_buffer[row, col][c]


@dataclass
class FrameStats:
    """Timing and resolution of one rendered frame.

    Attributes:
        frame_ms: Wall-clock time of the kernel including the sync barrier.
        average_ms: Smoothed frame time after this frame.
        scale: Resolution scale this frame was rendered at.
        next_scale: Scale chosen for the next frame.
        width: Internal width of this frame.
        height: Internal height of this frame.
    """

    frame_ms: float
    average_ms: float
    scale: float
    next_scale: float
    width: int
    height: int


class FrameRenderer:
    """Renders frames of the current scene at an adaptive internal resolution.

    Attributes:
        width: Display width in pixels.
        height: Display height in pixels.
        quality: The adaptive scale controller owned by this renderer.
        adaptive: Whether frame times update the scale.
    """

    def __init__(
        self,
        width: int,
        height: int,
        quality_config: QualityConfig | None = None,
        adaptive: bool = True,
    ) -> None:
        """Initialize the renderer.

        Args:
            width: Display width in pixels (max MAX_IMAGE_WIDTH).
            height: Display height in pixels (max MAX_IMAGE_HEIGHT).
            quality_config: Adaptive resolution tuning.
            adaptive: If False the scale stays at its initial value.

        Raises:
            ValueError: If dimensions are non-positive or exceed the maximum.
        """
        _check_dimensions(width, height)
        self._width = width
        self._height = height
        self.quality = AdaptiveQuality(quality_config)
        self.adaptive = adaptive
        self._frame_size: tuple[int, int] | None = None
        self._frame_count = 0

    @property
    def width(self) -> int:
        """Get the display width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the display height."""
        return self._height

    @property
    def frame_count(self) -> int:
        """Number of frames rendered so far."""
        return self._frame_count

    @property
    def frame_size(self) -> tuple[int, int] | None:
        """(width, height) of the last rendered internal frame."""
        return self._frame_size

    def resize(self, width: int, height: int) -> None:
        """Change the display size. Adaptive state is kept.

        Raises:
            ValueError: If dimensions are non-positive or exceed the maximum.
        """
        _check_dimensions(width, height)
        self._width = width
        self._height = height
        self._frame_size = None

    def render_frame(self, camera: OrbitCamera | None = None) -> FrameStats:
        """Render one frame of the current scene.

        Args:
            camera: If given, its snapshot is uploaded before rendering.
                Otherwise the previously uploaded camera is used.

        Returns:
            FrameStats for the rendered frame.
        """
        if camera is not None:
            setup_camera(camera)

        scale = self.quality.scale
        width, height = self.quality.internal_resolution(self._width, self._height)

        start = time.perf_counter()
        _render_frame(width, height)
        ti.sync()
        frame_ms = (time.perf_counter() - start) * 1000.0

        self._frame_size = (width, height)
        self._frame_count += 1
        if self.adaptive:
            self.quality.update(frame_ms)

        stats = FrameStats(
            frame_ms=frame_ms,
            average_ms=self.quality.average_ms if self.quality.average_ms is not None else frame_ms,
            scale=scale,
            next_scale=self.quality.scale,
            width=width,
            height=height,
        )
        logger.debug(
            "Frame %d: %dx%d at scale %.3f in %.2f ms",
            self._frame_count,
            width,
            height,
            scale,
            frame_ms,
        )
        return stats

    def render_pixel(self, col: int, row: int) -> tuple[float, float, float]:
        """Render a single display-resolution pixel with the uploaded camera.

        Args:
            col: Pixel column (0 = left).
            row: Pixel row (0 = top).

        Returns:
            Tuple of clamped (R, G, B) values.
        """
        color = _render_single_pixel(col, row, self._width, self._height)
        return (float(color[0]), float(color[1]), float(color[2]))

    def _check_rendered(self) -> tuple[int, int]:
        if self._frame_size is None:
            raise RuntimeError("No frame rendered yet. Call render_frame() first.")
        return self._frame_size

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the last frame at internal resolution.

        Returns:
            Array of shape (internal_height, internal_width, 3), values in [0, 1].

        Raises:
            RuntimeError: If no frame has been rendered.
        """
        width, height = self._check_rendered()
        image = np.empty((height, width, 3), dtype=np.float32)
        _copy_frame(image, width, height)
        return image

    def get_display_image(self) -> npt.NDArray[np.float32]:
        """Get the last frame upscaled to display resolution.

        Raises:
            RuntimeError: If no frame has been rendered.
        """
        return upscale_nearest(self.get_image_numpy(), self._width, self._height)

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the display image as 8-bit RGB."""
        return (self.get_display_image() * 255).astype(np.uint8)

    def save_image(self, filepath: str) -> None:
        """Save the display image as a PNG (or any format Pillow infers)."""
        from PIL import Image as PILImage

        PILImage.fromarray(self.get_image_uint8(), mode="RGB").save(filepath)
        logger.info("Saved frame to %s", filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"FrameRenderer(width={self.width}, height={self.height}, "
            f"scale={self.quality.scale:.3f}, frames={self._frame_count})"
        )


def upscale_nearest(
    image: npt.NDArray[np.float32], width: int, height: int
) -> npt.NDArray[np.float32]:
    """Resize an (H, W, C) image to (height, width, C) by nearest neighbor."""
    src_h, src_w = image.shape[0], image.shape[1]
    if (src_w, src_h) == (width, height):
        return image
    rows = (np.arange(height) * src_h) // height
    cols = (np.arange(width) * src_w) // width
    return image[rows[:, None], cols[None, :]]


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
