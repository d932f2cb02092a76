"""Orbit camera for ray generation around a target point.

The camera is described by spherical coordinates around a target:

    eye = target + distance * (cos(e) cos(a), sin(e), cos(e) sin(a))

with azimuth a and elevation e in radians. The view basis is rebuilt from
scratch on every query, so it stays orthonormal however many times the
camera is orbited:

    forward = normalize(target - eye)
    right   = normalize(forward x world_up)
    up      = right x forward

A pixel at normalized coordinates (u, v) in [0, 1]^2, where v = 0 is the
top row, maps to

    px  = (2u - 1) tan(vfov / 2) aspect
    py  = (1 - 2v) tan(vfov / 2)
    dir = normalize(forward + px right + py up)

``OrbitCamera`` is a plain dataclass mutated between frames from Python.
``setup_camera`` uploads a snapshot of it into Taichi fields and ``get_ray``
reads that snapshot inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.camera.orbit import OrbitCamera, setup_camera
    >>> camera = OrbitCamera(target=(0.0, 0.6, 0.0), distance=6.8)
    >>> camera.orbit(0.02, 0.0)
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from diorama.core.ray import Ray, make_ray, vec3

WORLD_UP = (0.0, 1.0, 0.0)

# Elevation limit keeps forward away from the world up axis
MAX_ELEVATION = 1.45
MIN_DISTANCE = 0.5


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class OrbitCamera:
    """Configuration of an orbiting perspective camera.

    Attributes:
        target: Point the camera orbits and looks at.
        distance: Distance from target to eye (>= MIN_DISTANCE).
        azimuth: Rotation around the world up axis in radians.
        elevation: Angle above the horizontal plane in radians,
            clamped to [-MAX_ELEVATION, MAX_ELEVATION].
        vfov: Vertical field of view in degrees.
        aspect_ratio: Image width divided by height.
    """

    target: tuple[float, float, float] = (0.0, 0.0, 0.0)
    distance: float = 5.0
    azimuth: float = 0.0
    elevation: float = 0.0
    vfov: float = 60.0
    aspect_ratio: float = 16.0 / 9.0

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        self.distance = max(MIN_DISTANCE, float(self.distance))
        self.elevation = _clamp_elevation(self.elevation)

    @classmethod
    def from_look_at(
        cls,
        eye: tuple[float, float, float],
        target: tuple[float, float, float],
        vfov: float = 60.0,
        aspect_ratio: float = 16.0 / 9.0,
    ) -> "OrbitCamera":
        """Build an orbit camera whose eye sits at a given position.

        Raises:
            ValueError: If eye and target coincide.
        """
        offset = np.asarray(eye, dtype=np.float64) - np.asarray(target, dtype=np.float64)
        distance = float(np.linalg.norm(offset))
        if distance == 0.0:
            raise ValueError("eye and target must differ")
        elevation = math.asin(max(-1.0, min(1.0, offset[1] / distance)))
        azimuth = math.atan2(offset[2], offset[0])
        return cls(
            target=tuple(float(c) for c in target),
            distance=distance,
            azimuth=azimuth,
            elevation=elevation,
            vfov=vfov,
            aspect_ratio=aspect_ratio,
        )

    def orbit(self, d_azimuth: float, d_elevation: float) -> None:
        """Rotate around the target. Elevation is clamped short of the poles."""
        self.azimuth += d_azimuth
        self.elevation = _clamp_elevation(self.elevation + d_elevation)

    def dolly(self, amount: float) -> None:
        """Move toward (positive) or away from (negative) the target."""
        self.distance = max(MIN_DISTANCE, self.distance - amount)

    def eye(self) -> np.ndarray:
        """World-space eye position."""
        ce = math.cos(self.elevation)
        offset = np.array(
            [ce * math.cos(self.azimuth), math.sin(self.elevation), ce * math.sin(self.azimuth)]
        )
        return np.asarray(self.target, dtype=np.float64) + self.distance * offset

    def basis(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Orthonormal (forward, right, up) view basis."""
        forward = np.asarray(self.target, dtype=np.float64) - self.eye()
        forward /= np.linalg.norm(forward)
        right = np.cross(forward, np.asarray(WORLD_UP, dtype=np.float64))
        right /= np.linalg.norm(right)
        up = np.cross(right, forward)
        return forward, right, up

    def ray(self, u: float, v: float) -> tuple[np.ndarray, np.ndarray]:
        """Primary ray for normalized pixel coordinates, computed in NumPy.

        Returns:
            A tuple (origin, unit direction).
        """
        forward, right, up = self.basis()
        half_h = math.tan(math.radians(self.vfov) / 2.0)
        px = (2.0 * u - 1.0) * half_h * self.aspect_ratio
        py = (1.0 - 2.0 * v) * half_h
        direction = forward + px * right + py * up
        return self.eye(), direction / np.linalg.norm(direction)


def _clamp_elevation(elevation: float) -> float:
    return max(-MAX_ELEVATION, min(MAX_ELEVATION, float(elevation)))


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_forward = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())
# Half extents of the image plane at unit distance
_half_width = ti.field(dtype=ti.f32, shape=())
_half_height = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: OrbitCamera) -> None:
    """Upload a snapshot of the camera into the kernel-visible fields.

    Call only between frames; kernels read these fields while rendering.
    """
    forward, right, up = camera.basis()
    half_h = math.tan(math.radians(camera.vfov) / 2.0)

    _camera_origin[None] = camera.eye().tolist()
    _camera_forward[None] = forward.tolist()
    _camera_right[None] = right.tolist()
    _camera_up[None] = up.tolist()
    _half_height[None] = half_h
    _half_width[None] = half_h * camera.aspect_ratio


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Generate the primary ray through normalized image coordinates.

    Args:
        u: Horizontal coordinate in [0, 1] (left to right).
        v: Vertical coordinate in [0, 1] (top to bottom).

    Returns:
        A Ray from the eye with a unit direction.
    """
    px = (2.0 * u - 1.0) * _half_width[None]
    py = (1.0 - 2.0 * v) * _half_height[None]
    direction = _camera_forward[None] + px * _camera_right[None] + py * _camera_up[None]
    return make_ray(_camera_origin[None], tm.normalize(direction))


@ti.kernel
def _get_ray_kernel(u: ti.f32, v: ti.f32) -> vec3:
    return get_ray(u, v).direction


def get_ray_direction(u: float, v: float) -> tuple[float, float, float]:
    """Direction of the uploaded camera's ray at (u, v), read back to Python."""
    d = _get_ray_kernel(u, v)
    return (float(d[0]), float(d[1]), float(d[2]))


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with origin, forward, right and up vectors.
    """
    info = {}
    for name, f in (
        ("origin", _camera_origin),
        ("forward", _camera_forward),
        ("right", _camera_right),
        ("up", _camera_up),
    ):
        vec = f[None]
        info[name] = (float(vec[0]), float(vec[1]), float(vec[2]))
    return info
