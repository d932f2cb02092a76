"""Unit tests for scene-level intersection.

Tests cover:
- Primitive registration, validation and counts
- Closest-hit selection across planes and boxes
- Registration-order tie breaking
- Material IDs in the scene hit record
"""

import pytest
import taichi as ti


def _intersect(origin, direction, t_min=1e-4, t_max=1e9):
    from diorama.scene.intersection import intersect_scene, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t = ti.field(dtype=ti.f32, shape=())
    n = ti.field(dtype=ti.math.vec3, shape=())
    material = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32, lo: ti.f32, hi: ti.f32
    ):
        rec = intersect_scene(vec3(ox, oy, oz), vec3(dx, dy, dz).normalized(), lo, hi)
        hit[None] = rec.hit
        t[None] = rec.t
        n[None] = rec.normal
        material[None] = rec.material_id

    test_kernel(*origin, *direction, t_min, t_max)
    return {
        "hit": int(hit[None]),
        "t": float(t[None]),
        "normal": tuple(float(c) for c in n[None]),
        "material_id": int(material[None]),
    }


class TestPrimitiveStorage:
    def test_add_plane_and_box(self):
        from diorama.scene.intersection import (
            add_box,
            add_plane,
            get_box_count,
            get_plane_count,
            get_primitive_count,
        )

        assert add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), material_id=0) == 0
        assert add_box((-1.0, 0.0, -1.0), (1.0, 2.0, 1.0), material_id=1) == 1
        assert get_plane_count() == 1
        assert get_box_count() == 1
        assert get_primitive_count() == 2

    def test_clear_scene(self):
        from diorama.scene.intersection import (
            add_box,
            add_plane,
            clear_scene,
            get_box_count,
            get_plane_count,
            get_primitive_count,
        )

        add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        add_box((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        clear_scene()
        assert get_primitive_count() == 0
        assert get_plane_count() == 0
        assert get_box_count() == 0

    def test_plane_normal_is_normalized(self):
        from diorama.scene.intersection import add_plane, prim_vec_b

        add_plane((0.0, 0.0, 0.0), (0.0, 5.0, 0.0))
        n = prim_vec_b[0]
        assert n[1] == pytest.approx(1.0)

    def test_zero_plane_normal_rejected(self):
        from diorama.scene.intersection import add_plane

        with pytest.raises(ValueError, match="normal"):
            add_plane((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    @pytest.mark.parametrize(
        "box_min, box_max",
        [
            ((0.0, 0.0, 0.0), (0.0, 1.0, 1.0)),
            ((1.0, 0.0, 0.0), (0.0, 1.0, 1.0)),
            ((0.0, 0.0, 2.0), (1.0, 1.0, 1.0)),
        ],
    )
    def test_degenerate_box_rejected(self, box_min, box_max):
        from diorama.scene.intersection import add_box

        with pytest.raises(ValueError, match="min corner"):
            add_box(box_min, box_max)

    def test_uv_tile_is_clamped(self):
        from diorama.geometry.box import MIN_UV_TILE
        from diorama.scene.intersection import add_box, prim_uv_tiles

        add_box((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), uv_tile=0.0)
        assert prim_uv_tiles[0] == pytest.approx(MIN_UV_TILE)

    def test_capacity_exceeded(self):
        from diorama.scene.intersection import MAX_PRIMITIVES, add_plane

        for _ in range(MAX_PRIMITIVES):
            add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        with pytest.raises(RuntimeError, match="Maximum number of primitives"):
            add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))


class TestClosestHit:
    def test_empty_scene_misses(self):
        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 0
        assert rec["material_id"] == -1

    def test_single_box_reports_material(self):
        from diorama.scene.intersection import add_box

        add_box((-1.0, -1.0, -6.0), (1.0, 1.0, -4.0), material_id=7)
        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(4.0)
        assert rec["material_id"] == 7

    def test_nearest_of_two_boxes_wins_regardless_of_order(self):
        from diorama.scene.intersection import add_box

        add_box((-1.0, -1.0, -11.0), (1.0, 1.0, -9.0), material_id=1)
        add_box((-1.0, -1.0, -4.0), (1.0, 1.0, -2.0), material_id=2)
        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["material_id"] == 2
        assert rec["t"] == pytest.approx(2.0)

    def test_box_in_front_of_plane(self):
        from diorama.scene.intersection import add_box, add_plane

        add_plane((0.0, 0.0, -20.0), (0.0, 0.0, 1.0), material_id=0)
        add_box((-1.0, -1.0, -6.0), (1.0, 1.0, -4.0), material_id=1)
        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))["material_id"] == 1
        assert _intersect((3.0, 0.0, 0.0), (0.0, 0.0, -1.0))["material_id"] == 0

    def test_t_max_limits_hits(self):
        from diorama.scene.intersection import add_plane

        add_plane((0.0, 0.0, -10.0), (0.0, 0.0, 1.0), material_id=0)
        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), t_max=5.0)["hit"] == 0

    def test_equal_distance_tie_keeps_first_registered(self):
        """Coincident surfaces resolve to the earlier primitive."""
        from diorama.scene.intersection import add_box, add_plane

        add_plane((0.0, 0.0, -4.0), (0.0, 0.0, 1.0), material_id=3)
        add_box((-1.0, -1.0, -6.0), (1.0, 1.0, -4.0), material_id=5)
        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))["material_id"] == 3

    def test_equal_distance_tie_reversed_order(self):
        from diorama.scene.intersection import add_box, add_plane

        add_box((-1.0, -1.0, -6.0), (1.0, 1.0, -4.0), material_id=5)
        add_plane((0.0, 0.0, -4.0), (0.0, 0.0, 1.0), material_id=3)
        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))["material_id"] == 5

    def test_normal_faces_ray(self):
        from diorama.scene.intersection import add_plane

        add_plane((0.0, 0.0, -4.0), (0.0, 0.0, -1.0), material_id=0)
        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["normal"] == pytest.approx((0.0, 0.0, 1.0))
