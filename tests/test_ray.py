"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at function
- Vector utility functions (dot, cross, normalize, length, reflect, refract)
- Schlick reflectance
- Random sampling functions for Monte Carlo
"""

import math

import pytest
import taichi as ti

SAMPLE_COUNT = 2000


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_origin(self):
        """Test ray_at returns origin when t=0."""
        from src.pathtracer.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 0.0)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0, abs=1e-6)
        assert r[1] == pytest.approx(2.0, abs=1e-6)
        assert r[2] == pytest.approx(3.0, abs=1e-6)

    def test_ray_at_unnormalized_direction(self):
        """Test ray_at scales by the direction as given, not its unit vector."""
        from src.pathtracer.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 1.0, 1.0), vec3(0.0, 0.0, 2.0))
            result[None] = ray_at(ray, 1.5)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0, abs=1e-6)
        assert r[1] == pytest.approx(1.0, abs=1e-6)
        assert r[2] == pytest.approx(4.0, abs=1e-6)

    def test_ray_at_negative_t(self):
        """Test ray_at handles negative t (behind origin)."""
        from src.pathtracer.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 1.0, 0.0))
            result[None] = ray_at(ray, -3.0)

        test_kernel()
        assert result[None][1] == pytest.approx(-3.0, abs=1e-6)


class TestVectorUtilities:
    """Tests for vector utility functions."""

    def test_length(self):
        from src.pathtracer.core.ray import length, length_squared, vec3

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            v = vec3(3.0, 4.0, 0.0)
            result[0] = length(v)
            result[1] = length_squared(v)

        test_kernel()
        assert result[0] == pytest.approx(5.0, abs=1e-6)
        assert result[1] == pytest.approx(25.0, abs=1e-6)

    @pytest.mark.parametrize(
        "components",
        [(3.0, 4.0, 0.0), (1e-3, -2e-3, 5e-4), (120.0, -75.0, 300.0), (0.0, 0.0, -7.0)],
    )
    def test_normalize_gives_unit_length(self, components):
        """Normalizing any non-zero vector gives length 1."""
        from src.pathtracer.core.ray import length, normalize, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(x: ti.f32, y: ti.f32, z: ti.f32):
            result[None] = length(normalize(vec3(x, y, z)))

        test_kernel(*components)
        assert result[None] == pytest.approx(1.0, abs=1e-5)

    def test_dot_and_cross(self):
        from src.pathtracer.core.ray import cross, dot, vec3

        dot_result = ti.field(dtype=ti.f32, shape=())
        cross_result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            dot_result[None] = dot(vec3(1.0, 2.0, 3.0), vec3(4.0, 5.0, 6.0))
            cross_result[None] = cross(vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        assert dot_result[None] == pytest.approx(32.0, abs=1e-6)
        c = cross_result[None]
        assert (c[0], c[1], c[2]) == pytest.approx((0.0, 0.0, 1.0), abs=1e-6)

    def test_reflect(self):
        """Reflecting off a floor flips the vertical component."""
        from src.pathtracer.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert (r[0], r[1], r[2]) == pytest.approx((1.0, 1.0, 0.0), abs=1e-6)

    def test_refract_unit_ratio_is_straight(self):
        """A ratio of 1 leaves the direction unchanged."""
        from src.pathtracer.core.ray import normalize, refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            d = normalize(vec3(0.3, -1.0, 0.2))
            result[None] = refract(d, vec3(0.0, 1.0, 0.0), 1.0)

        test_kernel()
        expected = (0.3, -1.0, 0.2)
        norm = math.sqrt(sum(c * c for c in expected))
        r = result[None]
        for i in range(3):
            assert r[i] == pytest.approx(expected[i] / norm, abs=1e-5)

    def test_refract_obeys_snell(self):
        """sin(theta_t) = eta_ratio * sin(theta_i) and the result is unit length."""
        from src.pathtracer.core.ray import normalize, refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        eta = 1.0 / 1.5

        @ti.kernel
        def test_kernel(eta_ratio: ti.f32):
            d = normalize(vec3(1.0, -1.0, 0.0))
            result[None] = refract(d, vec3(0.0, 1.0, 0.0), eta_ratio)

        test_kernel(eta)
        r = result[None]
        length = math.sqrt(r[0] ** 2 + r[1] ** 2 + r[2] ** 2)
        assert length == pytest.approx(1.0, abs=1e-5)
        sin_t = abs(r[0]) / length
        assert sin_t == pytest.approx(eta * math.sin(math.radians(45.0)), abs=1e-5)
        assert r[1] < 0.0

    def test_schlick_reflectance(self):
        from src.pathtracer.core.ray import schlick_reflectance

        result = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            result[0] = schlick_reflectance(1.0, 1.5)
            result[1] = schlick_reflectance(0.0, 1.5)
            result[2] = schlick_reflectance(1.0, 1.0)

        test_kernel()
        assert result[0] == pytest.approx(0.04, abs=1e-5)
        assert result[1] == pytest.approx(1.0, abs=1e-5)
        assert result[2] == pytest.approx(0.0, abs=1e-6)

    def test_near_zero(self):
        from src.pathtracer.core.ray import near_zero, vec3

        result = ti.field(dtype=ti.i32, shape=3)

        @ti.kernel
        def test_kernel():
            result[0] = near_zero(vec3(1e-9, -1e-9, 0.0))
            result[1] = near_zero(vec3(1e-9, 1e-3, 0.0))
            result[2] = near_zero(vec3(0.0, 0.0, 0.0))

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0
        assert result[2] == 1


class TestRandomSampling:
    """Tests for random sampling functions."""

    def test_random_in_unit_sphere_bounds(self):
        from src.pathtracer.core.ray import length_squared, random_in_unit_sphere

        result = ti.field(dtype=ti.f32, shape=SAMPLE_COUNT)

        @ti.kernel
        def test_kernel():
            for i in range(SAMPLE_COUNT):
                result[i] = length_squared(random_in_unit_sphere())

        test_kernel()
        values = result.to_numpy()
        assert (values > 0.0).all()
        assert (values < 1.0).all()

    def test_random_unit_vector_length_and_spread(self):
        from src.pathtracer.core.ray import random_unit_vector

        result = ti.Vector.field(3, dtype=ti.f32, shape=SAMPLE_COUNT)

        @ti.kernel
        def test_kernel():
            for i in range(SAMPLE_COUNT):
                result[i] = random_unit_vector()

        test_kernel()
        vectors = result.to_numpy()
        lengths = (vectors**2).sum(axis=1) ** 0.5
        assert lengths == pytest.approx(1.0, abs=1e-5)
        # Uniform on the sphere: the mean direction is close to zero
        assert abs(vectors.mean(axis=0)).max() < 0.1

    def test_random_in_unit_disk_bounds(self):
        from src.pathtracer.core.ray import random_in_unit_disk

        result = ti.Vector.field(3, dtype=ti.f32, shape=SAMPLE_COUNT)

        @ti.kernel
        def test_kernel():
            for i in range(SAMPLE_COUNT):
                result[i] = random_in_unit_disk()

        test_kernel()
        points = result.to_numpy()
        assert (points[:, 2] == 0.0).all()
        assert ((points[:, 0] ** 2 + points[:, 1] ** 2) < 1.0).all()
