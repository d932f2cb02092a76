"""Infinite plane primitive.

A plane is defined by a point on it and a normal. Rays parallel to the plane
(|n . d| below PARALLEL_EPSILON) never hit it. The returned normal always
faces the incoming ray, so one-sided lighting works from either side.

Surface coordinates are the hit point projected onto a tangent frame built
from the plane normal, which lets floors and walls carry repeating textures.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.geometry.plane import Plane, hit_plane
    >>> floor = Plane(point=ti.math.vec3(0, 0, 0), normal=ti.math.vec3(0, 1, 0))
    >>> # Use hit_plane within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from diorama.core.ray import build_onb
from diorama.geometry.hit_record import HitRecord, make_miss_record

vec3 = tm.vec3
vec2 = tm.vec2

# Rays closer to parallel than this are treated as misses
PARALLEL_EPSILON = 1e-6


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point lying on the plane.
        normal: The plane normal (unit length).
    """

    point: vec3
    normal: vec3


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test ray intersection with an infinite plane.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane to test against.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord. The normal is flipped to face the ray and front_face is
        1 when the ray approached from the side the stored normal points to.
    """
    result = make_miss_record()
    denom = tm.dot(plane.normal, ray_direction)

    if ti.abs(denom) >= PARALLEL_EPSILON:
        t = tm.dot(plane.point - ray_origin, plane.normal) / denom
        if t_min <= t and t <= t_max:
            point = ray_origin + t * ray_direction
            front_face = 1
            normal = plane.normal
            if denom > 0.0:
                front_face = 0
                normal = -plane.normal

            tangent, bitangent = build_onb(plane.normal)
            local = point - plane.point

            result = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=normal,
                front_face=front_face,
                uv=vec2(tm.dot(local, tangent), tm.dot(local, bitangent)),
            )

    return result
