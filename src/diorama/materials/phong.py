"""Legacy combined Phong material.

Older scene descriptions use one material record holding a diffuse color, a
Phong shininess, four blend weights and an index of refraction:

    weights = [diffuse, specular, reflective, transmissive]

Each weight lies in [0, 1]; they are not required to sum to one. Per light

    diffuse  = base * radiance * max(0, n . l)
    specular = intensity * max(0, r . v)^shininess,  r = reflect(-l, n)
    local   += w_diffuse * diffuse + w_specular * specular

The specular lobe uses the scalar light intensity, not the tinted radiance,
and ambient lights add base * radiance. The reflective and transmissive
weights feed the integrator's secondary rays.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.materials.phong import add_phong_material
    >>> glass = add_phong_material((1.0, 1.0, 1.0), 96.0, (0.1, 0.3, 0.4, 0.4), ior=1.5)
"""

import math

import taichi as ti
import taichi.math as tm

from diorama.core.ray import reflect, safe_pow
from diorama.lighting.lights import get_light_sample, num_lights
from diorama.materials.lambert import validate_albedo, validate_unit_interval
from diorama.materials.texture import TextureMode, sample_binding, validate_texture_binding

vec3 = tm.vec3
vec2 = tm.vec2
vec4 = tm.vec4


@ti.func
def shade_phong(
    base: vec3,
    shininess: ti.f32,
    weights: vec4,
    point: vec3,
    normal: vec3,
    view_dir: vec3,
) -> vec3:
    """Local Phong shading weighted by the diffuse and specular weights.

    Args:
        base: Diffuse color times texture sample.
        shininess: Phong exponent.
        weights: (diffuse, specular, reflective, transmissive) weights.
        point: The shaded point.
        normal: Unit normal facing the incoming ray.
        view_dir: Unit vector from the point toward the viewer.

    Returns:
        The locally lit color (unbounded).
    """
    color = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        to_light, radiance, intensity, is_ambient = get_light_sample(i, point)
        if is_ambient == 1:
            color += base * radiance
        else:
            n_dot_l = ti.max(0.0, tm.dot(normal, to_light))
            mirrored = reflect(-to_light, normal)
            spec = safe_pow(tm.dot(view_dir, mirrored), shininess)
            color += weights[0] * base * radiance * n_dot_l + weights[1] * spec * intensity
    return color


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_PHONG_MATERIALS = 256

phong_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PHONG_MATERIALS)
phong_shininess = ti.field(dtype=ti.f32, shape=MAX_PHONG_MATERIALS)
phong_weights = ti.Vector.field(4, dtype=ti.f32, shape=MAX_PHONG_MATERIALS)
phong_iors = ti.field(dtype=ti.f32, shape=MAX_PHONG_MATERIALS)
phong_texture_ids = ti.field(dtype=ti.i32, shape=MAX_PHONG_MATERIALS)
phong_texture_modes = ti.field(dtype=ti.i32, shape=MAX_PHONG_MATERIALS)
phong_texture_scales = ti.field(dtype=ti.f32, shape=MAX_PHONG_MATERIALS)
num_phong_materials = ti.field(dtype=ti.i32, shape=())


def clear_phong_materials() -> None:
    """Clear all Phong materials."""
    num_phong_materials[None] = 0


def add_phong_material(
    diffuse_color: tuple[float, float, float],
    specular_exponent: float,
    weights: tuple[float, float, float, float],
    ior: float = 1.0,
    texture_id: int | None = None,
    texture_mode: TextureMode = TextureMode.UV,
    texture_scale: float = 1.0,
) -> int:
    """Add a legacy Phong material to the registry.

    Args:
        diffuse_color: Diffuse tint, each component in [0, 1].
        specular_exponent: Phong shininess (non-negative).
        weights: (diffuse, specular, reflective, transmissive), each in [0, 1].
        ior: Index of refraction used when the transmissive weight is non-zero.
        texture_id: Optional texture slot multiplied into the diffuse color.
        texture_mode: UV or triplanar texture mapping.
        texture_scale: Multiplier on UV (or world position for triplanar).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any parameter is out of range.
    """
    validate_albedo(diffuse_color)
    if not math.isfinite(specular_exponent) or specular_exponent < 0.0:
        raise ValueError(f"Specular exponent must be non-negative, got {specular_exponent}")
    if len(weights) != 4:
        raise ValueError(f"Expected 4 weights (kd, ks, kr, kt), got {len(weights)}")
    for name, value in zip(("Diffuse", "Specular", "Reflective", "Transmissive"), weights):
        validate_unit_interval(f"{name} weight", value)
    if not math.isfinite(ior) or ior <= 0.0:
        raise ValueError(f"IOR must be positive, got {ior}")
    tex = validate_texture_binding(texture_id, texture_mode, texture_scale)

    idx = num_phong_materials[None]
    if idx >= MAX_PHONG_MATERIALS:
        raise RuntimeError(f"Maximum number of Phong materials ({MAX_PHONG_MATERIALS}) exceeded")

    phong_diffuse[idx] = vec3(diffuse_color[0], diffuse_color[1], diffuse_color[2])
    phong_shininess[idx] = specular_exponent
    phong_weights[idx] = vec4(weights[0], weights[1], weights[2], weights[3])
    phong_iors[idx] = ior
    phong_texture_ids[idx] = tex
    phong_texture_modes[idx] = int(texture_mode)
    phong_texture_scales[idx] = texture_scale
    num_phong_materials[None] = idx + 1
    return idx


def get_phong_material_count() -> int:
    """Get the number of Phong materials in the registry."""
    return int(num_phong_materials[None])


@ti.func
def shade_phong_by_id(
    material_idx: ti.i32,
    point: vec3,
    normal: vec3,
    uv: vec2,
    view_dir: vec3,
):
    """Shade a registered Phong material.

    Returns:
        A tuple (local_color, reflective_weight, transmissive_weight, ior).
    """
    tex = sample_binding(
        phong_texture_ids[material_idx],
        phong_texture_modes[material_idx],
        phong_texture_scales[material_idx],
        point,
        normal,
        uv,
    )
    base = phong_diffuse[material_idx] * tex
    weights = phong_weights[material_idx]
    local = shade_phong(base, phong_shininess[material_idx], weights, point, normal, view_dir)
    return local, weights[2], weights[3], phong_iors[material_idx]
