"""Light registry: ambient, directional and point lights.

Lights are stored in a fixed-capacity structure-of-arrays registry. Each
entry carries a kind tag, a vector (unit direction the light travels for
directional lights, world position for point lights, unused for ambient),
a premultiplied radiance (color * intensity) and the bare scalar intensity.
Diffuse terms are tinted by the radiance. Specular highlights are scaled by
the intensity only, so a colored light still produces a white highlight.

Local shading asks ``get_light_sample`` for the unit vector toward the light,
its radiance and its intensity at a point. Point lights have no distance
falloff and no light is occluded: the tracer does not cast shadow rays.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.lighting.lights import add_ambient_light, add_point_light
    >>> add_ambient_light((0.1, 0.1, 0.1))
    >>> add_point_light(position=(0.0, 5.0, 0.0), color=(1.0, 1.0, 1.0), intensity=1.2)
"""

import logging
import math
from enum import IntEnum

import taichi as ti
import taichi.math as tm

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class LightKind(IntEnum):
    """Tag identifying the light variant."""

    AMBIENT = 0
    DIRECTIONAL = 1
    POINT = 2


MAX_LIGHTS = 16

light_kinds = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_vectors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_radiance = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def get_light_count() -> int:
    """Get the number of registered lights."""
    return int(num_lights[None])


def _validate_color(name: str, color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if not math.isfinite(component) or component < 0.0:
            raise ValueError(f"{name} component {i} = {component} must be finite and non-negative")


def _validate_intensity(intensity: float) -> None:
    if not math.isfinite(intensity) or intensity < 0.0:
        raise ValueError(f"Light intensity must be finite and non-negative, got {intensity}")


def _store_light(
    kind: LightKind,
    vector: tuple[float, float, float],
    color: tuple[float, float, float],
    intensity: float,
) -> int:
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_kinds[idx] = int(kind)
    light_vectors[idx] = vec3(vector[0], vector[1], vector[2])
    light_radiance[idx] = vec3(color[0] * intensity, color[1] * intensity, color[2] * intensity)
    light_intensities[idx] = intensity
    num_lights[None] = idx + 1
    logger.debug("Added %s light %d", kind.name.lower(), idx)
    return idx


def add_ambient_light(color: tuple[float, float, float], intensity: float = 1.0) -> int:
    """Add an ambient term, applied to every surface regardless of orientation.

    Args:
        color: Ambient RGB color.
        intensity: Scalar multiplier on color.

    Returns:
        The light index.

    Raises:
        ValueError: If color or intensity is negative or non-finite.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    _validate_color("Ambient color", color)
    _validate_intensity(intensity)
    return _store_light(LightKind.AMBIENT, (0.0, 0.0, 0.0), color, intensity)


def add_directional_light(
    direction: tuple[float, float, float],
    intensity: float,
    color: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> int:
    """Add a light infinitely far away, shining along direction.

    Args:
        direction: The direction light travels (normalized on storage).
        intensity: Scalar multiplier on color.
        color: Light RGB color. Defaults to white.

    Returns:
        The light index.

    Raises:
        ValueError: If direction is zero-length, or color/intensity invalid.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    _validate_color("Light color", color)
    _validate_intensity(intensity)
    norm = math.sqrt(sum(c * c for c in direction))
    if norm == 0.0 or not math.isfinite(norm):
        raise ValueError(f"Light direction must be a non-zero finite vector, got {direction}")
    unit = (direction[0] / norm, direction[1] / norm, direction[2] / norm)
    return _store_light(LightKind.DIRECTIONAL, unit, color, intensity)


def add_point_light(
    position: tuple[float, float, float],
    color: tuple[float, float, float],
    intensity: float,
) -> int:
    """Add an omnidirectional point light without distance falloff.

    Args:
        position: World-space light position.
        color: Light RGB color.
        intensity: Scalar multiplier on color.

    Returns:
        The light index.

    Raises:
        ValueError: If color or intensity is negative or non-finite.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    _validate_color("Light color", color)
    _validate_intensity(intensity)
    return _store_light(LightKind.POINT, position, color, intensity)


@ti.func
def get_light_sample(light_idx: ti.i32, point: vec3):
    """Evaluate a light as seen from a surface point.

    Args:
        light_idx: Index into the light registry.
        point: The shaded point.

    Returns:
        A tuple (to_light, radiance, intensity, is_ambient). to_light is the
        unit vector from the point toward the light (zero for ambient lights).
        radiance is color * intensity; intensity is the bare scalar.
    """
    kind = light_kinds[light_idx]
    radiance = light_radiance[light_idx]
    intensity = light_intensities[light_idx]
    to_light = vec3(0.0, 0.0, 0.0)
    is_ambient = 0

    if kind == int(LightKind.AMBIENT):
        is_ambient = 1
    elif kind == int(LightKind.DIRECTIONAL):
        to_light = -light_vectors[light_idx]
    else:
        offset = light_vectors[light_idx] - point
        len_sq = tm.dot(offset, offset)
        if len_sq > 0.0:
            to_light = offset / ti.sqrt(len_sq)

    return to_light, radiance, intensity, is_ambient
