"""Axis-aligned box primitive using the slab method.

Each axis contributes an entry/exit interval [t_near, t_far] computed from
the inverse ray direction. The box is hit where the intersection of the three
intervals is non-empty. The face that was hit is classified by remembering
which axis produced the binding entry (or exit) value, rather than by
comparing the hit point against the six face planes, so edges and corners
always resolve to exactly one face.

Zero direction components use a signed sentinel instead of an infinite
inverse. With the origin strictly inside the slab the interval becomes
effectively unbounded; outside it the interval lies beyond any finite t_max.

Surface coordinates follow the face axis: X faces use (z, y), Y faces use
(x, z) and Z faces use (x, y), each normalized by the box extent and then
multiplied by the box tiling factor.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.geometry.box import Box, hit_box
    >>> box = Box(
    ...     min_corner=ti.math.vec3(-1, -1, -1),
    ...     max_corner=ti.math.vec3(1, 1, 1),
    ...     uv_tile=1.0,
    ... )
    >>> # Use hit_box within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from diorama.geometry.hit_record import HitRecord, make_miss_record

vec3 = tm.vec3
vec2 = tm.vec2

# Stand-in for 1 / 0 on axis-parallel rays
INV_DIR_SENTINEL = 1e30

# Direction components below this magnitude are treated as zero
DIR_EPSILON = 1e-12

# Smallest tiling factor accepted for box UVs
MIN_UV_TILE = 0.001


@ti.dataclass
class Box:
    """An axis-aligned box.

    Attributes:
        min_corner: The minimum corner (componentwise smaller than max_corner).
        max_corner: The maximum corner.
        uv_tile: How many times a texture repeats across each face.
    """

    min_corner: vec3
    max_corner: vec3
    uv_tile: ti.f32


@ti.func
def _safe_inverse(d: ti.f32) -> ti.f32:
    """Inverse of a direction component, with a signed sentinel for zero."""
    inv = ti.select(d >= 0.0, INV_DIR_SENTINEL, -INV_DIR_SENTINEL)
    if ti.abs(d) > DIR_EPSILON:
        inv = 1.0 / d
    return inv


@ti.func
def _face_uv(point: vec3, box: Box, axis: ti.i32) -> vec2:
    """Compute tiled surface coordinates for a point on a box face."""
    rel = (point - box.min_corner) / (box.max_corner - box.min_corner)
    uv = vec2(rel.x, rel.y)
    if axis == 0:
        uv = vec2(rel.z, rel.y)
    elif axis == 1:
        uv = vec2(rel.x, rel.z)
    return uv * box.uv_tile


@ti.func
def hit_box(
    ray_origin: vec3,
    ray_direction: vec3,
    box: Box,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test ray intersection with an axis-aligned box.

    When the ray origin lies inside the box the exit face is reported with
    front_face = 0 and a normal pointing back into the box (toward the ray).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        box: The box to test against.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord for the nearest valid face crossing, or a miss record.
    """
    result = make_miss_record()

    t_enter = -INV_DIR_SENTINEL
    t_exit = INV_DIR_SENTINEL
    enter_axis = 0
    exit_axis = 0

    for axis in ti.static(range(3)):
        inv_d = _safe_inverse(ray_direction[axis])
        t0 = (box.min_corner[axis] - ray_origin[axis]) * inv_d
        t1 = (box.max_corner[axis] - ray_origin[axis]) * inv_d
        t_near = ti.min(t0, t1)
        t_far = ti.max(t0, t1)
        # Strict comparisons keep ties on the lower axis
        if t_near > t_enter:
            t_enter = t_near
            enter_axis = axis
        if t_far < t_exit:
            t_exit = t_far
            exit_axis = axis

    if t_enter <= t_exit and t_exit >= t_min:
        t = t_enter
        hit_axis = enter_axis
        front_face = 1
        if t_enter < t_min:
            # Origin is inside the box; the exit face is the hit
            t = t_exit
            hit_axis = exit_axis
            front_face = 0

        if t <= t_max:
            point = ray_origin + t * ray_direction
            d_axis = ray_direction.x
            if hit_axis == 1:
                d_axis = ray_direction.y
            elif hit_axis == 2:
                d_axis = ray_direction.z
            # Entry and exit normals both oppose the ray along the hit axis
            n_axis = ti.select(d_axis > 0.0, -1.0, 1.0)
            normal = vec3(
                ti.select(hit_axis == 0, n_axis, 0.0),
                ti.select(hit_axis == 1, n_axis, 0.0),
                ti.select(hit_axis == 2, n_axis, 0.0),
            )

            result = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=normal,
                front_face=front_face,
                uv=_face_uv(point, box, hit_axis),
            )

    return result
