"""Recursive Whitted-style color integrator.

For a ray the color is defined recursively:

    color(ray, depth) =
        environment(ray.d)                              if depth > MAX_DEPTH
        environment(ray.d)                              if the ray misses
        local + kr * color(reflected, depth + 1)
              + kt * color(refracted, depth + 1)        otherwise

where local is the material's local shading and kr / kt are its reflective
and transmissive weights. The blend is deliberately unnormalized. Total
internal reflection removes the refracted term; the reflected term already
covers that light.

Taichi functions cannot recurse at runtime, so the recursion is evaluated
with a small explicit work-list of (origin, direction, weight, depth)
entries. Each entry carries the product of weights along its path from the
primary ray, which makes the sum identical to the recursive form. The stack
is bounded because no entry deeper than MAX_DEPTH + 1 is ever pushed.

Secondary ray origins are offset to avoid self-intersection: reflected rays
along the normal on the side they travel toward, refracted rays along the
refracted direction.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.core.integrator import trace_ray
    >>> from diorama.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> color = trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))  # empty scene: sky color
"""

import taichi as ti
import taichi.math as tm

from diorama.core.ray import offset_origin, reflect, refract, safe_normalize
from diorama.lighting.skybox import sample_environment
from diorama.materials.dielectric import shade_dielectric_by_id
from diorama.materials.lambert import shade_lambert_by_id
from diorama.materials.metallic import shade_metallic_by_id
from diorama.materials.phong import shade_phong_by_id
from diorama.scene.intersection import intersect_scene
from diorama.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

vec3 = tm.vec3

# =============================================================================
# Integrator Constants
# =============================================================================

# Rays deeper than this see only the environment
MAX_DEPTH = 3

# Offset applied to secondary ray origins
RAY_BIAS = 1e-3

# Valid hit distance range
T_MIN = 1e-4
T_MAX = 1e9

# Work-list capacity; depth-first traversal of a binary tree never needs more
# than one pending sibling per level plus the two newest children
STACK_SIZE = 2 * (MAX_DEPTH + 1)


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _shade_material(
    material_id: ti.i32,
    point: vec3,
    normal: vec3,
    uv: tm.vec2,
    view_dir: vec3,
):
    """Dispatch to the local shading of the hit material.

    Args:
        material_id: The unified material ID.
        point: The hit point.
        normal: Unit normal facing the incoming ray.
        uv: Surface coordinates at the hit.
        view_dir: Unit vector from the hit toward the ray origin.

    Returns:
        A tuple (local, kr, kt, ior). Unknown materials shade black and
        spawn no secondary rays.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    local = vec3(0.0, 0.0, 0.0)
    kr = 0.0
    kt = 0.0
    ior = 1.0

    if mat_type == int(MaterialType.LAMBERT):
        local = shade_lambert_by_id(type_index, point, normal, uv)
    elif mat_type == int(MaterialType.METALLIC):
        local, kr = shade_metallic_by_id(type_index, point, normal, uv, view_dir)
    elif mat_type == int(MaterialType.DIELECTRIC):
        local, kr, kt, ior = shade_dielectric_by_id(type_index, point)
    elif mat_type == int(MaterialType.PHONG):
        local, kr, kt, ior = shade_phong_by_id(type_index, point, normal, uv, view_dir)

    return local, kr, kt, ior


# =============================================================================
# Tracing Core
# =============================================================================


@ti.func
def trace_color(origin: vec3, direction: vec3):
    """Evaluate the recursive color of a ray.

    Args:
        origin: Ray origin.
        direction: Unit ray direction.

    Returns:
        A tuple (color, max_depth, evaluations): the unclamped color, the
        deepest recursion level visited and the number of color evaluations
        (ray nodes) it took.
    """
    stack_origin = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_dir = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_weight = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_depth = ti.Vector.zero(ti.i32, STACK_SIZE)

    for c in ti.static(range(3)):
        stack_origin[0, c] = origin[c]
        stack_dir[0, c] = direction[c]
        stack_weight[0, c] = 1.0
    sp = 1

    color = vec3(0.0, 0.0, 0.0)
    max_depth = 0
    evaluations = 0

    while sp > 0:
        sp -= 1
        o = vec3(stack_origin[sp, 0], stack_origin[sp, 1], stack_origin[sp, 2])
        d = vec3(stack_dir[sp, 0], stack_dir[sp, 1], stack_dir[sp, 2])
        w = vec3(stack_weight[sp, 0], stack_weight[sp, 1], stack_weight[sp, 2])
        depth = stack_depth[sp]

        evaluations += 1
        max_depth = ti.max(max_depth, depth)

        if depth > MAX_DEPTH:
            color += w * sample_environment(d)
        else:
            rec = intersect_scene(o, d, T_MIN, T_MAX)
            if rec.hit == 0:
                color += w * sample_environment(d)
            else:
                local, kr, kt, ior = _shade_material(
                    rec.material_id, rec.point, rec.normal, rec.uv, -d
                )
                color += w * local

                if kt > 0.0 and sp < STACK_SIZE:
                    # Refraction needs the geometric outward normal
                    outward = rec.normal
                    if rec.front_face == 0:
                        outward = -rec.normal
                    t_dir, valid = refract(d, outward, ior)
                    if valid == 1:
                        t_origin = rec.point + RAY_BIAS * t_dir
                        for c in ti.static(range(3)):
                            stack_origin[sp, c] = t_origin[c]
                            stack_dir[sp, c] = t_dir[c]
                            stack_weight[sp, c] = w[c] * kt
                        stack_depth[sp] = depth + 1
                        sp += 1

                if kr > 0.0 and sp < STACK_SIZE:
                    r_dir = safe_normalize(reflect(d, rec.normal))
                    r_origin = offset_origin(rec.point, rec.normal, r_dir, RAY_BIAS)
                    for c in ti.static(range(3)):
                        stack_origin[sp, c] = r_origin[c]
                        stack_dir[sp, c] = r_dir[c]
                        stack_weight[sp, c] = w[c] * kr
                    stack_depth[sp] = depth + 1
                    sp += 1

    return color, max_depth, evaluations


@ti.func
def sanitize_color(color: vec3) -> vec3:
    """Replace NaN or infinite components with zero."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Python-callable Entry Points
# =============================================================================

_debug_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_debug_max_depth = ti.field(dtype=ti.i32, shape=())
_debug_evaluations = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _trace_ray_kernel(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
    color, max_depth, evaluations = trace_color(vec3(ox, oy, oz), safe_normalize(vec3(dx, dy, dz)))
    _debug_color[None] = color
    _debug_max_depth[None] = max_depth
    _debug_evaluations[None] = evaluations


def trace_ray_stats(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[tuple[float, float, float], int, int]:
    """Trace one ray and report recursion statistics.

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized before tracing).

    Returns:
        A tuple (color, max_depth, evaluations). color is unclamped and may
        contain non-finite values only if the scene itself is degenerate.
    """
    _trace_ray_kernel(origin[0], origin[1], origin[2], direction[0], direction[1], direction[2])
    c = _debug_color[None]
    color = (float(c[0]), float(c[1]), float(c[2]))
    return color, int(_debug_max_depth[None]), int(_debug_evaluations[None])


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Trace one ray against the current scene and return its color."""
    color, _, _ = trace_ray_stats(origin, direction)
    return color
