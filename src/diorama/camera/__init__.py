"""Orbit camera and primary ray generation.

Pixel coordinates are normalized: u in [0, 1] left to right, v in [0, 1]
top to bottom.
"""

from .orbit import (
    MAX_ELEVATION,
    MIN_DISTANCE,
    OrbitCamera,
    get_camera_info,
    get_ray,
    get_ray_direction,
    setup_camera,
)

__all__ = [
    "OrbitCamera",
    "setup_camera",
    "get_ray",
    "get_ray_direction",
    "get_camera_info",
    "MAX_ELEVATION",
    "MIN_DISTANCE",
]
