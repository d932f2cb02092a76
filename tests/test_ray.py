"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at
- safe_normalize on zero and non-zero vectors
- Mirror reflection
- Refraction entering and leaving a medium, and total internal reflection
- Secondary ray origin offsets
- Orthonormal basis construction
"""

import math

import pytest
import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and ray_at."""

    def test_ray_at_positive_t(self):
        """ray_at walks along the direction."""
        from diorama.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 5.0)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0)
        assert r[1] == pytest.approx(2.0)
        assert r[2] == pytest.approx(-2.0)

    def test_make_ray(self):
        """make_ray stores origin and direction unchanged."""
        from diorama.core.ray import make_ray, vec3

        origin = ti.field(dtype=ti.math.vec3, shape=())
        direction = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.5, 0.0, 0.0), vec3(0.0, 1.0, 0.0))
            origin[None] = ray.origin
            direction[None] = ray.direction

        test_kernel()
        assert origin[None][0] == pytest.approx(0.5)
        assert direction[None][1] == pytest.approx(1.0)


class TestSafeNormalize:
    """Tests for safe_normalize."""

    def test_normalizes_non_zero_vector(self):
        from diorama.core.ray import safe_normalize, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = safe_normalize(vec3(3.0, 0.0, 4.0))

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(0.6)
        assert r[2] == pytest.approx(0.8)

    def test_zero_vector_is_returned_unchanged(self):
        """Zero-length input must not produce NaN."""
        from diorama.core.ray import safe_normalize, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = safe_normalize(vec3(0.0, 0.0, 0.0))

        test_kernel()
        r = result[None]
        assert all(r[i] == 0.0 for i in range(3))


class TestReflect:
    """Tests for mirror reflection."""

    def test_reflect_45_degrees(self):
        from diorama.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            d = vec3(1.0, -1.0, 0.0).normalized()
            result[None] = reflect(d, vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        s = 1.0 / math.sqrt(2.0)
        assert r[0] == pytest.approx(s, abs=1e-6)
        assert r[1] == pytest.approx(s, abs=1e-6)

    def test_reflect_preserves_length(self):
        from diorama.core.ray import reflect, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            d = vec3(0.3, -0.8, 0.52).normalized()
            n = vec3(0.2, 1.0, -0.1).normalized()
            result[None] = reflect(d, n).norm()

        test_kernel()
        assert result[None] == pytest.approx(1.0, abs=1e-5)


class TestRefract:
    """Tests for Snell refraction with the outward-normal convention."""

    def _refract(self, incident, normal, ior):
        from diorama.core.ray import refract, vec3

        direction = ti.field(dtype=ti.math.vec3, shape=())
        valid = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(
            ix: ti.f32, iy: ti.f32, iz: ti.f32, nx: ti.f32, ny: ti.f32, nz: ti.f32, eta: ti.f32
        ):
            d, ok = refract(vec3(ix, iy, iz).normalized(), vec3(nx, ny, nz), eta)
            direction[None] = d
            valid[None] = ok

        test_kernel(*incident, *normal, ior)
        d = direction[None]
        return (float(d[0]), float(d[1]), float(d[2])), int(valid[None])

    def test_normal_incidence_passes_straight_through(self):
        d, valid = self._refract((0.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1.5)
        assert valid == 1
        assert d[1] == pytest.approx(-1.0, abs=1e-6)

    def test_entering_bends_toward_normal(self):
        """sin(theta_t) = sin(theta_i) / ior when entering."""
        d, valid = self._refract((1.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1.5)
        assert valid == 1
        sin_t = math.sqrt(d[0] ** 2 + d[2] ** 2)
        assert sin_t == pytest.approx(math.sin(math.pi / 4) / 1.5, abs=1e-5)
        assert d[1] < 0.0

    def test_leaving_bends_away_from_normal(self):
        """A ray inside the medium travels along the outward normal."""
        sin_i = 0.4
        incident = (sin_i, math.sqrt(1.0 - sin_i**2), 0.0)
        d, valid = self._refract(incident, (0.0, 1.0, 0.0), 1.5)
        assert valid == 1
        assert d[0] == pytest.approx(sin_i * 1.5, abs=1e-5)
        assert d[1] > 0.0

    def test_total_internal_reflection_is_flagged(self):
        """Beyond the critical angle no transmitted direction exists."""
        sin_i = 0.9  # critical angle of ior 1.5 is asin(1/1.5) ~ 0.667
        incident = (sin_i, math.sqrt(1.0 - sin_i**2), 0.0)
        d, valid = self._refract(incident, (0.0, 1.0, 0.0), 1.5)
        assert valid == 0
        assert d == (0.0, 0.0, 0.0)

    def test_unit_ior_is_identity(self):
        d, valid = self._refract((0.3, -0.9, 0.1), (0.0, 1.0, 0.0), 1.0)
        norm = math.sqrt(0.3**2 + 0.9**2 + 0.1**2)
        assert valid == 1
        assert d[0] == pytest.approx(0.3 / norm, abs=1e-5)
        assert d[1] == pytest.approx(-0.9 / norm, abs=1e-5)


class TestOffsetOrigin:
    """Tests for the self-intersection offset."""

    @pytest.mark.parametrize("dy, expected", [(1.0, 0.001), (-1.0, -0.001)])
    def test_offset_follows_outgoing_side(self, dy, expected):
        from diorama.core.ray import offset_origin, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(d: ti.f32):
            result[None] = offset_origin(
                vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0), vec3(0.3, d, 0.0), 0.001
            )

        test_kernel(dy)
        assert result[None][1] == pytest.approx(expected, abs=1e-7)


class TestBuildOnb:
    """Tests for tangent frame construction."""

    @pytest.mark.parametrize(
        "normal",
        [(0.0, 1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.57735, 0.57735, 0.57735)],
    )
    def test_frame_is_orthonormal(self, normal):
        from diorama.core.ray import build_onb, vec3

        dots = ti.field(dtype=ti.f32, shape=5)

        @ti.kernel
        def test_kernel(nx: ti.f32, ny: ti.f32, nz: ti.f32):
            n = vec3(nx, ny, nz).normalized()
            t, b = build_onb(n)
            dots[0] = t.dot(n)
            dots[1] = b.dot(n)
            dots[2] = t.dot(b)
            dots[3] = t.norm()
            dots[4] = b.norm()

        test_kernel(*normal)
        assert dots[0] == pytest.approx(0.0, abs=1e-5)
        assert dots[1] == pytest.approx(0.0, abs=1e-5)
        assert dots[2] == pytest.approx(0.0, abs=1e-5)
        assert dots[3] == pytest.approx(1.0, abs=1e-5)
        assert dots[4] == pytest.approx(1.0, abs=1e-5)


class TestSafePow:
    def test_non_positive_base_gives_zero(self):
        from diorama.core.ray import safe_pow

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = safe_pow(-0.5, 32.0)
            result[1] = safe_pow(0.5, 2.0)

        test_kernel()
        assert result[0] == 0.0
        assert result[1] == pytest.approx(0.25)
