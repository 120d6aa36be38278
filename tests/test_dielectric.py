"""Unit tests for the dielectric material module.

Tests cover:
- Refraction ratio selection by hit side
- Total internal reflection detection
- Refraction and reflection through scatter_dielectric
- Fresnel-weighted reflection probability
- Material registry operations
"""

import math

import numpy as np
import pytest
import taichi as ti

N_RAYS = 2048


def _scatter_dielectric(ior, incoming, normal, front_face, count=1):
    """Scatter `count` rays off a dielectric hit at the origin."""
    from pathtracer.core.ray import Ray
    from pathtracer.materials.dielectric import scatter_dielectric
    from pathtracer.scene.intersection import SceneHitRecord, vec3

    scattered = ti.field(dtype=ti.i32, shape=count)
    attenuation = ti.Vector.field(3, dtype=ti.f32, shape=count)
    direction = ti.Vector.field(3, dtype=ti.f32, shape=count)

    @ti.kernel
    def test_kernel(eta: ti.f32, d: vec3, n: vec3, ff: ti.i32):
        for i in range(count):
            ray_in = Ray(origin=-d, direction=d)
            rec = SceneHitRecord(
                hit=1,
                t=1.0,
                point=vec3(0.0, 0.0, 0.0),
                normal=n,
                front_face=ff,
                material_id=0,
            )
            result = scatter_dielectric(eta, ray_in, rec, i)
            scattered[i] = result.scattered
            attenuation[i] = result.attenuation
            direction[i] = result.direction

    def v(values):
        return vec3(*[float(x) for x in values])

    test_kernel(ior, v(incoming), v(normal), front_face)
    return scattered.to_numpy(), attenuation.to_numpy(), direction.to_numpy()


class TestRefractionHelpers:
    """Tests for refraction_ratio_for and cannot_refract."""

    def test_refraction_ratio(self):
        """Entering uses 1/ior, leaving uses ior."""
        from pathtracer.materials.dielectric import refraction_ratio_for

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = refraction_ratio_for(1.5, 1)
            result[1] = refraction_ratio_for(1.5, 0)

        test_kernel()
        assert abs(result[0] - 1.0 / 1.5) < 1e-6
        assert abs(result[1] - 1.5) < 1e-6

    def test_cannot_refract(self):
        """Total internal reflection only happens leaving the dense medium at steep angles."""
        from pathtracer.core.vector import unit, vec3
        from pathtracer.materials.dielectric import cannot_refract

        result = ti.field(dtype=ti.i32, shape=3)

        @ti.kernel
        def test_kernel():
            n = vec3(0.0, 0.0, 1.0)
            grazing = unit(vec3(0.9, 0.0, -0.43589))
            steep = unit(vec3(0.1, 0.0, -1.0))
            result[0] = cannot_refract(1.5, grazing, n, 0)
            result[1] = cannot_refract(1.5, grazing, n, 1)
            result[2] = cannot_refract(1.5, steep, n, 0)

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0
        assert result[2] == 0


class TestScatterDielectric:
    """Tests for scatter_dielectric."""

    def test_always_scatters_white(self):
        """Dielectrics never absorb and do not tint."""
        scattered, attenuation, _ = _scatter_dielectric(
            1.5, (0.3, -1.0, 0.0), (0.0, 1.0, 0.0), 1, count=64
        )
        assert np.all(scattered == 1)
        assert np.allclose(attenuation, 1.0)

    def test_index_one_passes_straight_through(self):
        """With ior 1 at normal incidence the direction is unchanged."""
        scattered, _, direction = _scatter_dielectric(
            1.0, (0.0, 0.0, -1.0), (0.0, 0.0, 1.0), 1, count=64
        )
        assert np.all(scattered == 1)
        assert np.allclose(direction, [0.0, 0.0, -1.0], atol=1e-5)

    @pytest.mark.parametrize("front_face", [1, 0])
    def test_index_one_does_not_bend_oblique_rays(self, front_face):
        """With ior 1 a ray at 30 degrees refracts without changing direction on either side."""
        incoming = (0.5, 0.0, -math.sqrt(0.75))

        _, _, direction = _scatter_dielectric(
            1.0, incoming, (0.0, 0.0, 1.0), front_face, count=N_RAYS
        )
        refracted = direction[direction[:, 2] < 0.0]
        assert len(refracted) > N_RAYS // 2
        assert np.allclose(refracted, incoming, atol=1e-5)

    def test_total_internal_reflection(self):
        """Beyond the critical angle every ray reflects."""
        incoming = np.array([0.9, 0.0, -0.43589])
        incoming /= np.linalg.norm(incoming)

        _, _, direction = _scatter_dielectric(
            1.5, tuple(incoming), (0.0, 0.0, 1.0), 0, count=64
        )
        expected = incoming * np.array([1.0, 1.0, -1.0])
        assert np.allclose(direction, expected, atol=1e-5)

    def test_refracted_direction_obeys_snell(self):
        """Refracted rays bend by the index ratio."""
        sin_in = 0.5
        incoming = (sin_in, 0.0, -math.sqrt(1.0 - sin_in * sin_in))

        _, _, direction = _scatter_dielectric(
            1.5, incoming, (0.0, 0.0, 1.0), 1, count=N_RAYS
        )
        refracted = direction[direction[:, 2] < 0.0]
        assert len(refracted) > 0
        assert np.allclose(refracted[:, 0], sin_in / 1.5, atol=1e-5)

    def test_reflection_probability_matches_schlick(self):
        """The share of reflected rays follows Schlick's approximation."""
        cos_theta = 0.2
        incoming = (math.sqrt(1.0 - cos_theta * cos_theta), 0.0, -cos_theta)

        _, _, direction = _scatter_dielectric(
            1.5, incoming, (0.0, 0.0, 1.0), 1, count=N_RAYS
        )
        reflected_share = np.mean(direction[:, 2] > 0.0)

        ratio = 1.0 / 1.5
        r0 = ((1.0 - ratio) / (1.0 + ratio)) ** 2
        expected = r0 + (1.0 - r0) * (1.0 - cos_theta) ** 5
        assert abs(reflected_share - expected) < 0.04


class TestDielectricRegistry:
    """Tests for the dielectric material registry."""

    def test_add_and_count(self):
        """Indices are sequential and counted."""
        from pathtracer.materials.dielectric import (
            add_dielectric_material,
            get_dielectric_material_count,
        )

        assert add_dielectric_material(1.5) == 0
        assert add_dielectric_material(1.33) == 1
        assert get_dielectric_material_count() == 2

    def test_default_ior(self):
        """The default index is glass."""
        from pathtracer.materials.dielectric import add_dielectric_material, dielectric_iors

        idx = add_dielectric_material()
        assert abs(dielectric_iors[idx] - 1.5) < 1e-6

    @pytest.mark.parametrize("ior", [0.0, -1.5])
    def test_non_positive_ior(self, ior):
        """Non-positive indices are rejected."""
        from pathtracer.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="must be positive"):
            add_dielectric_material(ior)

    def test_clear(self):
        """clear_dielectric_materials empties the registry."""
        from pathtracer.materials.dielectric import (
            add_dielectric_material,
            clear_dielectric_materials,
            get_dielectric_material_count,
        )

        add_dielectric_material(1.5)
        clear_dielectric_materials()
        assert get_dielectric_material_count() == 0
