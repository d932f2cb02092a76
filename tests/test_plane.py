"""Unit tests for the infinite plane primitive.

Tests cover:
- Hits from the front and back sides (normal orientation, front_face)
- Parallel rays and hits outside [t_min, t_max]
- Planar UV coordinates
"""

import pytest
import taichi as ti


def _hit_floor(origin, direction, t_min=1e-4, t_max=1e9, normal=(0.0, 1.0, 0.0)):
    """Intersect a ray with the y = 0 plane and read the record back."""
    from diorama.geometry.plane import Plane, hit_plane, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t = ti.field(dtype=ti.f32, shape=())
    n = ti.field(dtype=ti.math.vec3, shape=())
    front = ti.field(dtype=ti.i32, shape=())
    uv = ti.field(dtype=ti.math.vec2, shape=())

    @ti.kernel
    def test_kernel(
        ox: ti.f32,
        oy: ti.f32,
        oz: ti.f32,
        dx: ti.f32,
        dy: ti.f32,
        dz: ti.f32,
        nx: ti.f32,
        ny: ti.f32,
        nz: ti.f32,
        lo: ti.f32,
        hi: ti.f32,
    ):
        plane = Plane(point=vec3(0.0, 0.0, 0.0), normal=vec3(nx, ny, nz))
        rec = hit_plane(vec3(ox, oy, oz), vec3(dx, dy, dz).normalized(), plane, lo, hi)
        hit[None] = rec.hit
        t[None] = rec.t
        n[None] = rec.normal
        front[None] = rec.front_face
        uv[None] = rec.uv

    test_kernel(*origin, *direction, *normal, t_min, t_max)
    return {
        "hit": int(hit[None]),
        "t": float(t[None]),
        "normal": tuple(float(c) for c in n[None]),
        "front_face": int(front[None]),
        "uv": (float(uv[None][0]), float(uv[None][1])),
    }


class TestPlaneHit:
    def test_hit_from_above(self):
        rec = _hit_floor((0.0, 2.0, 0.0), (0.0, -1.0, 0.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(2.0)
        assert rec["normal"] == pytest.approx((0.0, 1.0, 0.0))
        assert rec["front_face"] == 1

    def test_hit_from_below_flips_normal(self):
        """The reported normal always faces the incoming ray."""
        rec = _hit_floor((0.0, -3.0, 0.0), (0.0, 1.0, 0.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(3.0)
        assert rec["normal"] == pytest.approx((0.0, -1.0, 0.0))
        assert rec["front_face"] == 0

    def test_oblique_hit_distance(self):
        rec = _hit_floor((0.0, 1.0, 0.0), (1.0, -1.0, 0.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(2.0**0.5, abs=1e-5)


class TestPlaneMiss:
    def test_parallel_ray_misses(self):
        rec = _hit_floor((0.0, 1.0, 0.0), (1.0, 0.0, 0.0))
        assert rec["hit"] == 0

    def test_ray_in_plane_misses(self):
        """A ray lying in the plane is parallel and reports no hit."""
        rec = _hit_floor((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert rec["hit"] == 0

    def test_plane_behind_ray_misses(self):
        rec = _hit_floor((0.0, 1.0, 0.0), (0.0, 1.0, 0.0))
        assert rec["hit"] == 0

    def test_hit_beyond_t_max_misses(self):
        rec = _hit_floor((0.0, 5.0, 0.0), (0.0, -1.0, 0.0), t_max=4.0)
        assert rec["hit"] == 0

    def test_hit_before_t_min_misses(self):
        rec = _hit_floor((0.0, 0.5, 0.0), (0.0, -1.0, 0.0), t_min=1.0)
        assert rec["hit"] == 0


class TestPlaneUV:
    def test_uv_at_plane_point_is_zero(self):
        rec = _hit_floor((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))
        assert rec["uv"] == pytest.approx((0.0, 0.0), abs=1e-6)

    def test_uv_distance_matches_world_distance(self):
        """UVs are an isometric projection onto the plane."""
        rec = _hit_floor((3.0, 1.0, 4.0), (0.0, -1.0, 0.0))
        u, v = rec["uv"]
        assert (u * u + v * v) ** 0.5 == pytest.approx(5.0, abs=1e-4)
