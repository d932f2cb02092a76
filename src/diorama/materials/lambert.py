"""Lambert (ideal diffuse) material.

Local shading is the classic cosine law summed over lights:

    color = sum_ambient(base * radiance) + sum_other(base * radiance * max(0, n . l))

Lambert surfaces neither mirror-reflect nor transmit. The roughness parameter
is carried for scene descriptions but does not alter diffuse shading.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.materials.lambert import add_lambert_material
    >>> idx = add_lambert_material(albedo=(0.8, 0.2, 0.2))
"""

import taichi as ti
import taichi.math as tm

from diorama.lighting.lights import get_light_sample, num_lights
from diorama.materials.texture import TextureMode, sample_binding, validate_texture_binding

vec3 = tm.vec3
vec2 = tm.vec2


@ti.func
def shade_lambert(base: vec3, point: vec3, normal: vec3) -> vec3:
    """Diffuse local shading for a base color at a surface point.

    Args:
        base: Albedo times texture sample.
        point: The shaded point.
        normal: Unit normal facing the incoming ray.

    Returns:
        The locally lit color (unbounded).
    """
    color = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        to_light, radiance, _, is_ambient = get_light_sample(i, point)
        if is_ambient == 1:
            color += base * radiance
        else:
            color += base * radiance * ti.max(0.0, tm.dot(normal, to_light))
    return color


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_LAMBERT_MATERIALS = 256

lambert_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERT_MATERIALS)
lambert_roughness = ti.field(dtype=ti.f32, shape=MAX_LAMBERT_MATERIALS)
lambert_texture_ids = ti.field(dtype=ti.i32, shape=MAX_LAMBERT_MATERIALS)
lambert_texture_modes = ti.field(dtype=ti.i32, shape=MAX_LAMBERT_MATERIALS)
lambert_texture_scales = ti.field(dtype=ti.f32, shape=MAX_LAMBERT_MATERIALS)
num_lambert_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambert_materials() -> None:
    """Clear all Lambert materials."""
    num_lambert_materials[None] = 0


def validate_albedo(albedo: tuple[float, float, float]) -> None:
    """Check that every albedo component lies in [0, 1].

    Raises:
        ValueError: If a component is out of range or the tuple is malformed.
    """
    if len(albedo) != 3:
        raise ValueError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if not 0.0 <= component <= 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1]")


def validate_unit_interval(name: str, value: float) -> None:
    """Raise ValueError unless value lies in [0, 1]."""
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def add_lambert_material(
    albedo: tuple[float, float, float],
    roughness: float = 1.0,
    texture_id: int | None = None,
    texture_mode: TextureMode = TextureMode.UV,
    texture_scale: float = 1.0,
) -> int:
    """Add a Lambert material to the registry.

    Args:
        albedo: Diffuse color, each component in [0, 1].
        roughness: Surface roughness in [0, 1]; informational only.
        texture_id: Optional texture slot multiplied into the albedo.
        texture_mode: UV or triplanar texture mapping.
        texture_scale: Multiplier on UV (or world position for triplanar).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any parameter is out of range.
    """
    validate_albedo(albedo)
    validate_unit_interval("Roughness", roughness)
    tex = validate_texture_binding(texture_id, texture_mode, texture_scale)

    idx = num_lambert_materials[None]
    if idx >= MAX_LAMBERT_MATERIALS:
        raise RuntimeError(f"Maximum number of Lambert materials ({MAX_LAMBERT_MATERIALS}) exceeded")

    lambert_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    lambert_roughness[idx] = roughness
    lambert_texture_ids[idx] = tex
    lambert_texture_modes[idx] = int(texture_mode)
    lambert_texture_scales[idx] = texture_scale
    num_lambert_materials[None] = idx + 1
    return idx


def get_lambert_material_count() -> int:
    """Get the number of Lambert materials in the registry."""
    return int(num_lambert_materials[None])


@ti.func
def lambert_base_color(material_idx: ti.i32, point: vec3, normal: vec3, uv: vec2) -> vec3:
    """Albedo multiplied by the bound texture sample."""
    tex = sample_binding(
        lambert_texture_ids[material_idx],
        lambert_texture_modes[material_idx],
        lambert_texture_scales[material_idx],
        point,
        normal,
        uv,
    )
    return lambert_albedos[material_idx] * tex


@ti.func
def shade_lambert_by_id(material_idx: ti.i32, point: vec3, normal: vec3, uv: vec2) -> vec3:
    """Look up a Lambert material and shade it locally."""
    base = lambert_base_color(material_idx, point, normal, uv)
    return shade_lambert(base, point, normal)
