"""Metallic material: diffuse base plus a Blinn-Phong highlight and mirror term.

For every non-ambient light the local color is

    base * radiance * max(0, n . l)
        + (1 - roughness)^2 * max(0, n . h)^e * F0 * intensity

with h = normalize(l + v), F0 = 0.04 (1 - metallic) + metallic and a
roughness-driven exponent e = max(1, 2 / alpha^2 - 2), alpha = max(roughness^2, 0.1),
so smoother surfaces get a tighter highlight. The highlight is scaled by the
light intensity alone, so it stays white under colored lights. Ambient lights add
base * radiance.

Beyond local shading a metallic surface mirror-reflects with weight
metallic * (1 - roughness); it never transmits.
"""

import taichi as ti
import taichi.math as tm

from diorama.core.ray import safe_normalize, safe_pow
from diorama.lighting.lights import get_light_sample, num_lights
from diorama.materials.lambert import validate_albedo, validate_unit_interval
from diorama.materials.texture import TextureMode, sample_binding, validate_texture_binding

vec3 = tm.vec3
vec2 = tm.vec2

# Reflectance at normal incidence for non-metals
DIELECTRIC_F0 = 0.04

# Lower bound on the squared roughness used for the highlight exponent
MIN_ALPHA = 0.1


@ti.func
def specular_exponent(roughness: ti.f32) -> ti.f32:
    """Blinn-Phong exponent equivalent to a roughness value."""
    alpha = ti.max(roughness * roughness, MIN_ALPHA)
    return ti.max(1.0, 2.0 / (alpha * alpha) - 2.0)


@ti.func
def fresnel_f0(metallic: ti.f32) -> ti.f32:
    """Blend of the dielectric and fully metallic normal-incidence reflectance."""
    return DIELECTRIC_F0 * (1.0 - metallic) + metallic


@ti.func
def shade_metallic(
    base: vec3,
    metallic: ti.f32,
    roughness: ti.f32,
    point: vec3,
    normal: vec3,
    view_dir: vec3,
) -> vec3:
    """Local shading for a metallic surface.

    Args:
        base: Albedo times texture sample.
        metallic: Metalness in [0, 1].
        roughness: Roughness in [0, 1].
        point: The shaded point.
        normal: Unit normal facing the incoming ray.
        view_dir: Unit vector from the point toward the viewer.

    Returns:
        The locally lit color (unbounded).
    """
    exponent = specular_exponent(roughness)
    strength = (1.0 - roughness) * (1.0 - roughness) * fresnel_f0(metallic)

    color = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        to_light, radiance, intensity, is_ambient = get_light_sample(i, point)
        if is_ambient == 1:
            color += base * radiance
        else:
            n_dot_l = ti.max(0.0, tm.dot(normal, to_light))
            half_vec = safe_normalize(to_light + view_dir)
            spec = strength * safe_pow(tm.dot(normal, half_vec), exponent)
            color += base * radiance * n_dot_l + intensity * spec
    return color


@ti.func
def metallic_reflectance(metallic: ti.f32, roughness: ti.f32) -> ti.f32:
    """Mirror-reflection weight of a metallic surface."""
    return metallic * (1.0 - roughness)


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_METALLIC_MATERIALS = 256

metallic_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METALLIC_MATERIALS)
metallic_metalness = ti.field(dtype=ti.f32, shape=MAX_METALLIC_MATERIALS)
metallic_roughness = ti.field(dtype=ti.f32, shape=MAX_METALLIC_MATERIALS)
metallic_texture_ids = ti.field(dtype=ti.i32, shape=MAX_METALLIC_MATERIALS)
metallic_texture_modes = ti.field(dtype=ti.i32, shape=MAX_METALLIC_MATERIALS)
metallic_texture_scales = ti.field(dtype=ti.f32, shape=MAX_METALLIC_MATERIALS)
num_metallic_materials = ti.field(dtype=ti.i32, shape=())


def clear_metallic_materials() -> None:
    """Clear all metallic materials."""
    num_metallic_materials[None] = 0


def add_metallic_material(
    albedo: tuple[float, float, float],
    metallic: float = 1.0,
    roughness: float = 0.0,
    texture_id: int | None = None,
    texture_mode: TextureMode = TextureMode.UV,
    texture_scale: float = 1.0,
) -> int:
    """Add a metallic material to the registry.

    Args:
        albedo: Base color, each component in [0, 1].
        metallic: Metalness in [0, 1].
        roughness: Roughness in [0, 1]. 0 is a perfect mirror.
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
    validate_unit_interval("Metallic", metallic)
    validate_unit_interval("Roughness", roughness)
    tex = validate_texture_binding(texture_id, texture_mode, texture_scale)

    idx = num_metallic_materials[None]
    if idx >= MAX_METALLIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metallic materials ({MAX_METALLIC_MATERIALS}) exceeded"
        )

    metallic_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metallic_metalness[idx] = metallic
    metallic_roughness[idx] = roughness
    metallic_texture_ids[idx] = tex
    metallic_texture_modes[idx] = int(texture_mode)
    metallic_texture_scales[idx] = texture_scale
    num_metallic_materials[None] = idx + 1
    return idx


def get_metallic_material_count() -> int:
    """Get the number of metallic materials in the registry."""
    return int(num_metallic_materials[None])


@ti.func
def shade_metallic_by_id(
    material_idx: ti.i32,
    point: vec3,
    normal: vec3,
    uv: vec2,
    view_dir: vec3,
):
    """Shade a registered metallic material.

    Returns:
        A tuple (local_color, reflectance).
    """
    tex = sample_binding(
        metallic_texture_ids[material_idx],
        metallic_texture_modes[material_idx],
        metallic_texture_scales[material_idx],
        point,
        normal,
        uv,
    )
    base = metallic_albedos[material_idx] * tex
    metallic = metallic_metalness[material_idx]
    roughness = metallic_roughness[material_idx]
    local = shade_metallic(base, metallic, roughness, point, normal, view_dir)
    return local, metallic_reflectance(metallic, roughness)
