"""Dielectric (glass / water) material.

A dielectric surface is mostly carried by its secondary rays: it reflects
with weight ``reflectivity`` and transmits with weight ``transparency``,
refracting through Snell's law with its index of refraction. Local shading
is a faint ambient term so that fully transparent surfaces still read as
slightly tinted:

    local = base * ambient * AMBIENT_FACTOR * LOCAL_FACTOR

The weights are not normalized against each other; reflectivity and
transparency may sum to more than one.

Common index of refraction values: air 1.0, water 1.33, glass 1.5, diamond 2.4.
"""

import math

import taichi as ti
import taichi.math as tm

from diorama.lighting.lights import get_light_sample, num_lights
from diorama.materials.lambert import validate_albedo, validate_unit_interval

vec3 = tm.vec3

AMBIENT_FACTOR = 0.25
LOCAL_FACTOR = 0.1


@ti.func
def shade_dielectric(base: vec3, point: vec3) -> vec3:
    """Faint ambient-only local term of a dielectric surface."""
    color = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        _, radiance, _intensity, is_ambient = get_light_sample(i, point)
        if is_ambient == 1:
            color += base * radiance * AMBIENT_FACTOR
    return color * LOCAL_FACTOR


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 256

dielectric_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
dielectric_transparency = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
dielectric_reflectivity = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
dielectric_roughness = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(
    albedo: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ior: float = 1.5,
    transparency: float = 0.9,
    reflectivity: float = 0.1,
    roughness: float = 0.0,
) -> int:
    """Add a dielectric material to the registry.

    Args:
        albedo: Tint of the faint local term, each component in [0, 1].
        ior: Index of refraction (must be positive).
        transparency: Transmissive weight in [0, 1].
        reflectivity: Mirror-reflective weight in [0, 1].
        roughness: Roughness in [0, 1]; informational only.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any parameter is out of range.
    """
    validate_albedo(albedo)
    if not math.isfinite(ior) or ior <= 0.0:
        raise ValueError(f"IOR must be positive, got {ior}")
    validate_unit_interval("Transparency", transparency)
    validate_unit_interval("Reflectivity", reflectivity)
    validate_unit_interval("Roughness", roughness)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    dielectric_iors[idx] = ior
    dielectric_transparency[idx] = transparency
    dielectric_reflectivity[idx] = reflectivity
    dielectric_roughness[idx] = roughness
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def shade_dielectric_by_id(material_idx: ti.i32, point: vec3):
    """Shade a registered dielectric material.

    Returns:
        A tuple (local_color, reflectivity, transparency, ior).
    """
    local = shade_dielectric(dielectric_albedos[material_idx], point)
    return (
        local,
        dielectric_reflectivity[material_idx],
        dielectric_transparency[material_idx],
        dielectric_iors[material_idx],
    )
