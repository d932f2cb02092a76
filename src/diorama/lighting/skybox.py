"""Environment lookup for rays that leave the scene.

The environment is either a six-face cubemap or, when no cubemap is set, a
vertical gradient between a horizon color and a sky color:

    t = 0.5 * (d.y + 1)
    color = sky * t + horizon * (1 - t)

Cubemap faces are texture atlas slots given in +X, -X, +Y, -Y, +Z, -Z order.
Face selection picks the dominant axis of the direction (ties prefer X, then
Y) and face coordinates follow the OpenGL cubemap convention:

    +X: (-z, -y)    -X: ( z, -y)
    +Y: ( x,  z)    -Y: ( x, -z)
    +Z: ( x, -y)    -Z: (-x, -y)

each divided by the dominant magnitude and remapped from [-1, 1] to [0, 1].
Faces are sampled nearest-neighbor with clamped addressing.
"""

import logging
from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from diorama.materials.texture import num_textures, sample_clamped

logger = logging.getLogger(__name__)

vec3 = tm.vec3
vec2 = tm.vec2

DEFAULT_SKY_COLOR = (0.5, 0.7, 1.0)
DEFAULT_HORIZON_COLOR = (0.8, 0.9, 1.0)

CUBE_FACE_NAMES = ("+x", "-x", "+y", "-y", "+z", "-z")

_cubemap_enabled = ti.field(dtype=ti.i32, shape=())
_cubemap_faces = ti.field(dtype=ti.i32, shape=6)
_sky_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_horizon_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_gradient(
    sky: tuple[float, float, float] = DEFAULT_SKY_COLOR,
    horizon: tuple[float, float, float] = DEFAULT_HORIZON_COLOR,
) -> None:
    """Use the procedural gradient as the environment and drop any cubemap."""
    _sky_color[None] = vec3(sky[0], sky[1], sky[2])
    _horizon_color[None] = vec3(horizon[0], horizon[1], horizon[2])
    _cubemap_enabled[None] = 0


def clear_environment() -> None:
    """Reset to the default gradient environment."""
    set_gradient()


def set_cubemap(face_texture_ids: Sequence[int]) -> None:
    """Use six atlas textures as a cubemap.

    Args:
        face_texture_ids: Texture slots for the +X, -X, +Y, -Y, +Z, -Z faces.

    Raises:
        ValueError: If there are not exactly six faces or a slot is unknown.
    """
    if len(face_texture_ids) != 6:
        raise ValueError(f"A cubemap needs 6 faces, got {len(face_texture_ids)}")
    for name, tex_id in zip(CUBE_FACE_NAMES, face_texture_ids):
        if not 0 <= tex_id < num_textures[None]:
            raise ValueError(f"Invalid texture_id {tex_id} for cubemap face {name}")
    for i, tex_id in enumerate(face_texture_ids):
        _cubemap_faces[i] = int(tex_id)
    _cubemap_enabled[None] = 1
    logger.debug("Cubemap environment set from textures %s", list(face_texture_ids))


def has_cubemap() -> bool:
    """Whether a cubemap is currently bound."""
    return bool(_cubemap_enabled[None])


@ti.func
def cube_face_uv(direction: vec3):
    """Select the cubemap face for a direction and compute its coordinates.

    Returns:
        A tuple (face, uv) with face in 0..5 (+X, -X, +Y, -Y, +Z, -Z) and uv
        in [0, 1]^2.
    """
    a = ti.abs(direction)
    face = 0
    u = 0.0
    v = 0.0
    if a.x >= a.y and a.x >= a.z:
        m = ti.max(a.x, 1e-12)
        if direction.x > 0.0:
            face = 0
            u = -direction.z / m
        else:
            face = 1
            u = direction.z / m
        v = -direction.y / m
    elif a.y >= a.z:
        m = ti.max(a.y, 1e-12)
        u = direction.x / m
        if direction.y > 0.0:
            face = 2
            v = direction.z / m
        else:
            face = 3
            v = -direction.z / m
    else:
        m = ti.max(a.z, 1e-12)
        v = -direction.y / m
        if direction.z > 0.0:
            face = 4
            u = direction.x / m
        else:
            face = 5
            u = -direction.x / m
    return face, vec2(0.5 * (u + 1.0), 0.5 * (v + 1.0))


@ti.func
def gradient_color(direction: vec3) -> vec3:
    """Vertical sky gradient for a unit direction."""
    t = 0.5 * (direction.y + 1.0)
    return _sky_color[None] * t + _horizon_color[None] * (1.0 - t)


@ti.func
def sample_environment(direction: vec3) -> vec3:
    """Environment radiance seen along a direction."""
    result = vec3(0.0, 0.0, 0.0)
    if _cubemap_enabled[None] == 1:
        face, uv = cube_face_uv(direction)
        result = sample_clamped(_cubemap_faces[face], uv)
    else:
        result = gradient_color(direction)
    return result


@ti.kernel
def _sample_environment_kernel(dx: ti.f32, dy: ti.f32, dz: ti.f32) -> vec3:
    return sample_environment(vec3(dx, dy, dz))


def sample_sky(direction: tuple[float, float, float]) -> tuple[float, float, float]:
    """Python-side environment lookup, mainly for inspection and tests."""
    c = _sample_environment_kernel(direction[0], direction[1], direction[2])
    return (float(c[0]), float(c[1]), float(c[2]))
