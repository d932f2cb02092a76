"""Interactive preview window using Taichi GGUI.

Drives a FrameRenderer from an orbit camera and presents each frame,
upscaled to the window size, on a GGUI canvas.

Controls (polled once per frame while held):
    Left / Right: orbit azimuth by +/- ORBIT_STEP radians
    Up / Down: orbit elevation by -/+ ORBIT_STEP radians
    W / S: dolly toward / away from the target by DOLLY_STEP
    P: save the current frame to a timestamped PNG

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from diorama.preview.interactive import InteractivePreview
    >>> from diorama.scene.diorama import create_diorama_scene
    >>>
    >>> scene, camera = create_diorama_scene()
    >>> preview = InteractivePreview(960, 540, camera)
    >>> preview.run()
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from diorama.core.renderer import FrameRenderer

if TYPE_CHECKING:
    import numpy.typing as npt

    from diorama.camera.orbit import OrbitCamera
    from diorama.core.adaptive import QualityConfig
    from diorama.core.renderer import FrameStats

logger = logging.getLogger(__name__)

ORBIT_STEP = 0.02
DOLLY_STEP = 0.1


def camera_step(pressed: set[str]) -> tuple[float, float, float]:
    """Camera motion for one frame given the held keys.

    Args:
        pressed: Names of held keys ("left", "right", "up", "down", "w", "s").

    Returns:
        A tuple (d_azimuth, d_elevation, dolly).
    """
    d_azimuth = 0.0
    d_elevation = 0.0
    dolly = 0.0
    if "left" in pressed:
        d_azimuth += ORBIT_STEP
    if "right" in pressed:
        d_azimuth -= ORBIT_STEP
    if "up" in pressed:
        d_elevation -= ORBIT_STEP
    if "down" in pressed:
        d_elevation += ORBIT_STEP
    if "w" in pressed:
        dolly += DOLLY_STEP
    if "s" in pressed:
        dolly -= DOLLY_STEP
    return d_azimuth, d_elevation, dolly


def apply_camera_step(camera: OrbitCamera, pressed: set[str]) -> bool:
    """Move the camera for the held keys. Returns True if anything moved."""
    d_azimuth, d_elevation, dolly = camera_step(pressed)
    if d_azimuth != 0.0 or d_elevation != 0.0:
        camera.orbit(d_azimuth, d_elevation)
    if dolly != 0.0:
        camera.dolly(dolly)
    return d_azimuth != 0.0 or d_elevation != 0.0 or dolly != 0.0


def timestamped_filename(prefix: str = "diorama", now: datetime | None = None) -> str:
    """Filename of the form <prefix>_YYYYMMDD_HHMMSS.png."""
    stamp = (now if now is not None else datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{stamp}.png"


class InteractivePreview:
    """Orbit-camera preview window.

    The window, canvas and display field are created lazily on the first call
    that needs them, so the class can be constructed in headless tests.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        camera: The orbit camera driven by the keyboard.
        renderer: The frame renderer.
        output_dir: Directory for saved frames.
    """

    def __init__(
        self,
        width: int,
        height: int,
        camera: OrbitCamera,
        *,
        quality_config: QualityConfig | None = None,
        title: str = "Diorama Raytracer",
        output_dir: str = ".",
    ) -> None:
        self.width = width
        self.height = height
        self.camera = camera
        self.renderer = FrameRenderer(width, height, quality_config)
        self.output_dir = output_dir
        self._title = title
        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None
        self._display: ti.MatrixField | None = None
        self._last_stats: FrameStats | None = None

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(name=self._title, res=(self.width, self.height), vsync=False)
        self._canvas = self._window.get_canvas()
        # Taichi canvases are indexed (x, y) with y up
        self._display = ti.Vector.field(3, dtype=ti.f32, shape=(self.width, self.height))

    @property
    def window(self) -> ti.ui.Window:
        """The GGUI window, created on first access."""
        self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def last_stats(self) -> FrameStats | None:
        """Stats of the most recent frame, if any."""
        return self._last_stats

    def render(self) -> FrameStats:
        """Render one frame from the current camera."""
        self._last_stats = self.renderer.render_frame(self.camera)
        return self._last_stats

    def _pressed_keys(self) -> set[str]:
        window = self.window
        keys = {
            "left": ti.ui.LEFT,
            "right": ti.ui.RIGHT,
            "up": ti.ui.UP,
            "down": ti.ui.DOWN,
            "w": "w",
            "s": "s",
        }
        return {name for name, key in keys.items() if window.is_pressed(key)}

    def _handle_events(self) -> None:
        for event in self.window.get_events(ti.ui.PRESS):
            if event.key in ("p", "P"):
                self.save_frame()
            elif event.key == ti.ui.ESCAPE:
                self.window.running = False

    def _present(self, image: npt.NDArray[np.float32]) -> None:
        assert self._display is not None and self._canvas is not None
        # (H, W, 3) with row 0 at the top -> (W, H, 3) with y up
        self._display.from_numpy(np.ascontiguousarray(np.transpose(np.flipud(image), (1, 0, 2))))
        self._canvas.set_image(self._display)
        self.window.show()

    def save_frame(self, filepath: str | None = None) -> str:
        """Write the last rendered frame to a PNG.

        Args:
            filepath: Target path; defaults to a timestamped name in
                output_dir.

        Returns:
            The path written.

        Raises:
            RuntimeError: If no frame has been rendered.
        """
        from diorama.preview.export import save_png

        if filepath is None:
            filepath = os.path.join(self.output_dir, timestamped_filename())
        save_png(self.renderer, filepath)
        print(f"Saved: {filepath}")
        return filepath

    def run(self) -> None:
        """Render and present frames until the window is closed."""
        self._initialize_window()
        while self.window.running:
            self._handle_events()
            apply_camera_step(self.camera, self._pressed_keys())
            self.render()
            self._present(self.renderer.get_display_image())

    def close(self) -> None:
        """Stop the event loop. The window cannot be reopened."""
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Best-effort check for a usable display (False when headless)."""
        if os.name == "nt":
            return True
        if os.uname().sysname == "Darwin":
            return not (os.environ.get("SSH_CONNECTION") and not os.environ.get("DISPLAY"))
        return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))
