"""Unit tests for the dielectric material.

Tests cover:
- Refraction ratio orientation (as given on front faces, inverted on back faces)
- Total internal reflection
- Schlick-weighted choice between reflection and refraction
- Transparency of a ratio-1 interface
- Registry storage and validation
"""

import math

import numpy as np
import pytest
import taichi as ti

SAMPLE_COUNT = 4000


def scatter_many(ratio, incident, normal, front_face, count=SAMPLE_COUNT):
    """Scatter `count` rays at one interface; return directions and attenuations."""
    from src.pathtracer.core.ray import normalize, vec3
    from src.pathtracer.materials.dielectric import scatter_dielectric

    directions = ti.Vector.field(3, dtype=ti.f32, shape=count)
    attenuations = ti.Vector.field(3, dtype=ti.f32, shape=count)
    flags = ti.field(dtype=ti.i32, shape=count)

    @ti.kernel
    def test_kernel(
        eta: ti.f32,
        ix: ti.f32, iy: ti.f32, iz: ti.f32,
        nx: ti.f32, ny: ti.f32, nz: ti.f32,
        front: ti.i32,
    ):
        for i in range(count):
            d, a, s = scatter_dielectric(eta, vec3(ix, iy, iz), normalize(vec3(nx, ny, nz)), front)
            directions[i] = normalize(d)
            attenuations[i] = a
            flags[i] = s

    test_kernel(ratio, *incident, *normal, front_face)
    return directions.to_numpy(), attenuations.to_numpy(), flags.to_numpy()


def unit(v):
    n = math.sqrt(sum(c * c for c in v))
    return np.array([c / n for c in v])


class TestEffectiveRatio:
    def test_front_face_uses_ratio_as_given(self):
        from src.pathtracer.materials.dielectric import GLASS_IN_AIR, effective_ratio

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel(ratio: ti.f32):
            result[0] = effective_ratio(ratio, 1)
            result[1] = effective_ratio(ratio, 0)

        test_kernel(GLASS_IN_AIR)
        assert result[0] == pytest.approx(1.0 / 1.5, abs=1e-6)
        assert result[1] == pytest.approx(1.5, abs=1e-5)


class TestTransparency:
    @pytest.mark.parametrize("front_face", [1, 0])
    @pytest.mark.parametrize("incident", [(0.0, -1.0, 0.0), (0.5, -1.0, 0.2)])
    def test_unit_ratio_passes_straight_through(self, incident, front_face):
        """A ratio of 1 transmits along the incident direction."""
        directions, _, flags = scatter_many(1.0, incident, (0.0, 1.0, 0.0), front_face)
        assert (flags == 1).all()

        straight = np.all(np.abs(directions - unit(incident)) < 1e-4, axis=1)
        # Schlick gives (1 - cos)^5 chance of reflection, negligible here
        assert straight.mean() > 0.995


class TestRefractionVersusReflection:
    def test_near_normal_glass_mostly_refracts(self):
        """Glass in air at near-normal incidence reflects only about 4%."""
        from src.pathtracer.materials.dielectric import GLASS_IN_AIR

        directions, _, _ = scatter_many(GLASS_IN_AIR, (0.05, -1.0, 0.0), (0.0, 1.0, 0.0), 1)
        transmitted = directions[:, 1] < 0.0
        assert transmitted.mean() > 0.9
        assert transmitted.mean() < 0.995

    def test_refracted_direction_obeys_snell(self):
        from src.pathtracer.materials.dielectric import GLASS_IN_AIR

        incident = unit((1.0, -1.0, 0.0))
        directions, _, _ = scatter_many(GLASS_IN_AIR, tuple(incident), (0.0, 1.0, 0.0), 1)
        transmitted = directions[directions[:, 1] < 0.0]
        assert len(transmitted) > 0

        sin_i = abs(incident[0])
        sin_t = np.abs(transmitted[:, 0])
        np.testing.assert_allclose(sin_t, GLASS_IN_AIR * sin_i, atol=1e-4)

    def test_grazing_incidence_reflects_more(self):
        from src.pathtracer.materials.dielectric import GLASS_IN_AIR

        near_normal, _, _ = scatter_many(GLASS_IN_AIR, (0.05, -1.0, 0.0), (0.0, 1.0, 0.0), 1)
        grazing, _, _ = scatter_many(GLASS_IN_AIR, (1.0, -0.05, 0.0), (0.0, 1.0, 0.0), 1)
        assert (grazing[:, 1] > 0.0).mean() > (near_normal[:, 1] > 0.0).mean() + 0.3


class TestTotalInternalReflection:
    def test_tir_from_inside_beyond_critical_angle(self):
        """Leaving glass at 60 degrees exceeds the ~41.8 degree critical angle."""
        from src.pathtracer.materials.dielectric import GLASS_IN_AIR

        angle = math.radians(60.0)
        incident = (math.sin(angle), -math.cos(angle), 0.0)
        directions, _, flags = scatter_many(GLASS_IN_AIR, incident, (0.0, 1.0, 0.0), 0)
        assert (flags == 1).all()
        # Every ray is reflected back above the normal
        expected = np.array([math.sin(angle), math.cos(angle), 0.0])
        np.testing.assert_allclose(directions, np.tile(expected, (SAMPLE_COUNT, 1)), atol=1e-4)


class TestAttenuation:
    def test_white_attenuation_and_always_scatters(self):
        from src.pathtracer.materials.dielectric import GLASS_IN_AIR

        _, attenuations, flags = scatter_many(GLASS_IN_AIR, (0.3, -1.0, 0.1), (0.0, 1.0, 0.0), 1)
        assert (flags == 1).all()
        np.testing.assert_allclose(attenuations, 1.0, atol=1e-6)


class TestDielectricRegistry:
    def test_default_ratio_is_glass_in_air(self):
        from src.pathtracer.materials.dielectric import (
            GLASS_IN_AIR,
            add_dielectric_material,
            get_dielectric_material_count,
            get_dielectric_ratio,
        )

        idx = add_dielectric_material()
        assert idx == 0
        assert get_dielectric_material_count() == 1

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(material_idx: ti.i32):
            result[None] = get_dielectric_ratio(material_idx)

        test_kernel(idx)
        assert result[None] == pytest.approx(GLASS_IN_AIR, abs=1e-6)

    @pytest.mark.parametrize("ratio", [0.0, -1.5])
    def test_non_positive_ratio_rejected(self, ratio):
        from src.pathtracer.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="must be positive"):
            add_dielectric_material(ratio)

    def test_ratio_above_one_is_allowed(self):
        """Ratios above 1 describe a less dense sphere, like an air bubble."""
        from src.pathtracer.materials.dielectric import add_dielectric_material

        assert add_dielectric_material(1.5) == 0
