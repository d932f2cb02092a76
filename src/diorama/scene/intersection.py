"""Scene-level primitive intersection testing.

Primitives (infinite planes and axis-aligned boxes) are kept in a single
registration-ordered structure-of-arrays table and scanned linearly. Each
entry stores a kind tag, two vectors whose meaning depends on the kind
(plane point and normal, or box min and max corners), a UV tiling factor and
a material ID.

The nearest hit wins. Every candidate test is bounded by the closest t found
so far and only strictly nearer hits replace it, so among primitives at the
same distance the one registered first is reported.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.scene.intersection import add_box, add_plane, clear_scene
    >>> clear_scene()
    >>> add_plane((0, 0, 0), (0, 1, 0), material_id=0)
    >>> add_box((-1, 0, -1), (1, 2, 1), material_id=1)
    >>> # Use intersect_scene within a Taichi kernel
"""

import math
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from diorama.geometry.box import MIN_UV_TILE, Box, hit_box
from diorama.geometry.hit_record import HitRecord, make_miss_record
from diorama.geometry.plane import Plane, hit_plane

vec3 = tm.vec3
vec2 = tm.vec2


class PrimitiveKind(IntEnum):
    """Tag identifying the primitive variant."""

    PLANE = 0
    BOX = 1


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The intersection point.
        normal: Unit normal oriented against the incoming ray.
        front_face: 1 if the outward side was hit, 0 otherwise.
        uv: Surface coordinates with tiling applied.
        material_id: Material of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    uv: vec2
    material_id: ti.i32


MAX_PRIMITIVES = 1024

prim_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
# Plane: point on plane / Box: min corner
prim_vec_a = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
# Plane: unit normal / Box: max corner
prim_vec_b = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_uv_tiles = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())

# Python-side tallies per kind
_kind_counts = {PrimitiveKind.PLANE: 0, PrimitiveKind.BOX: 0}


def clear_scene() -> None:
    """Remove all primitives from the scene."""
    num_primitives[None] = 0
    for kind in _kind_counts:
        _kind_counts[kind] = 0


def _store_primitive(
    kind: PrimitiveKind,
    a: tuple[float, float, float],
    b: tuple[float, float, float],
    uv_tile: float,
    material_id: int,
) -> int:
    idx = num_primitives[None]
    if idx >= MAX_PRIMITIVES:
        raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
    prim_kinds[idx] = int(kind)
    prim_vec_a[idx] = vec3(a[0], a[1], a[2])
    prim_vec_b[idx] = vec3(b[0], b[1], b[2])
    prim_uv_tiles[idx] = uv_tile
    prim_material_ids[idx] = material_id
    num_primitives[None] = idx + 1
    _kind_counts[kind] += 1
    return idx


def add_plane(
    point: tuple[float, float, float],
    normal: tuple[float, float, float],
    material_id: int = 0,
) -> int:
    """Add an infinite plane to the scene.

    Args:
        point: Any point on the plane.
        normal: Plane normal; normalized on storage.
        material_id: The material ID to associate with this plane.

    Returns:
        The primitive index.

    Raises:
        ValueError: If the normal is zero-length or not finite.
        RuntimeError: If the maximum number of primitives is exceeded.
    """
    norm = math.sqrt(sum(c * c for c in normal))
    if norm == 0.0 or not math.isfinite(norm):
        raise ValueError(f"Plane normal must be a non-zero finite vector, got {normal}")
    unit = (normal[0] / norm, normal[1] / norm, normal[2] / norm)
    return _store_primitive(PrimitiveKind.PLANE, point, unit, 1.0, material_id)


def add_box(
    min_corner: tuple[float, float, float],
    max_corner: tuple[float, float, float],
    material_id: int = 0,
    uv_tile: float = 1.0,
) -> int:
    """Add an axis-aligned box to the scene.

    Args:
        min_corner: Minimum corner.
        max_corner: Maximum corner; must exceed min_corner on every axis.
        material_id: The material ID to associate with this box.
        uv_tile: Texture repeat factor, clamped to at least MIN_UV_TILE.

    Returns:
        The primitive index.

    Raises:
        ValueError: If the box has a non-positive extent on any axis.
        RuntimeError: If the maximum number of primitives is exceeded.
    """
    for axis in range(3):
        if not min_corner[axis] < max_corner[axis]:
            raise ValueError(
                f"Box min corner {min_corner} must be below max corner {max_corner} on every axis"
            )
    return _store_primitive(
        PrimitiveKind.BOX, min_corner, max_corner, max(MIN_UV_TILE, uv_tile), material_id
    )


def get_primitive_count() -> int:
    """Get the total number of primitives in the scene."""
    return int(num_primitives[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return _kind_counts[PrimitiveKind.PLANE]


def get_box_count() -> int:
    """Get the number of boxes in the scene."""
    return _kind_counts[PrimitiveKind.BOX]


@ti.func
def _to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        uv=rec.uv,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        uv=vec2(0.0, 0.0),
        material_id=-1,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Test a ray against all primitives in the scene.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    for i in range(num_primitives[None]):
        rec = make_miss_record()
        if prim_kinds[i] == int(PrimitiveKind.PLANE):
            plane = Plane(point=prim_vec_a[i], normal=prim_vec_b[i])
            rec = hit_plane(ray_origin, ray_direction, plane, t_min, closest_t)
        else:
            box = Box(min_corner=prim_vec_a[i], max_corner=prim_vec_b[i], uv_tile=prim_uv_tiles[i])
            rec = hit_box(ray_origin, ray_direction, box, t_min, closest_t)

        # Strictly nearer only, so equal-distance ties keep the earlier primitive
        if rec.hit == 1 and (result.hit == 0 or rec.t < closest_t):
            closest_t = rec.t
            result = _to_scene_hit_record(rec, prim_material_ids[i])

    return result
