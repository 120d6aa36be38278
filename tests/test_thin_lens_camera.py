"""Unit tests for the thin-lens camera.

Tests cover:
- Basis and viewport derivation
- Configuration validation
- Ray generation through the viewport
- Depth of field (lens sampling and focus plane)
- Jittered and centered pixel sampling
"""

import math

import numpy as np
import pytest
import taichi as ti

N_RAYS = 256


def _make_camera(**overrides):
    from pathtracer.camera.thin_lens import ThinLensCamera

    params = {
        "lookfrom": (0.0, 0.0, 0.0),
        "lookat": (0.0, 0.0, -1.0),
        "vup": (0.0, 1.0, 0.0),
        "vfov": 90.0,
        "aspect_ratio": 1.0,
    }
    params.update(overrides)
    return ThinLensCamera(**params)


class TestCameraSetup:
    """Tests for setup_camera and get_camera_info."""

    def test_default_view(self, default_camera):
        """A 90 degree square view spans [-1, 1]^2 at z = -1."""
        from pathtracer.camera.thin_lens import get_camera_info

        info = get_camera_info()
        assert info["origin"] == pytest.approx((0.0, 0.0, 0.0))
        assert info["u"] == pytest.approx((1.0, 0.0, 0.0))
        assert info["v"] == pytest.approx((0.0, 1.0, 0.0))
        assert info["w"] == pytest.approx((0.0, 0.0, 1.0))
        assert info["horizontal"] == pytest.approx((2.0, 0.0, 0.0), abs=1e-6)
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0), abs=1e-6)
        assert info["lower_left"] == pytest.approx((-1.0, -1.0, -1.0), abs=1e-6)
        assert info["lens_radius"] == 0.0

    def test_aspect_ratio_and_focus_scale_viewport(self):
        """The viewport width follows the aspect ratio and both sides scale with focus distance."""
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(aspect_ratio=2.0, vfov=60.0, focus_dist=3.0, aperture=0.5))
        info = get_camera_info()

        height = 2.0 * math.tan(math.radians(30.0)) * 3.0
        assert info["vertical"][1] == pytest.approx(height, rel=1e-5)
        assert info["horizontal"][0] == pytest.approx(2.0 * height, rel=1e-5)
        assert info["lower_left"][2] == pytest.approx(-3.0, rel=1e-5)
        assert info["lens_radius"] == pytest.approx(0.25)

    def test_basis_is_orthonormal(self):
        """An oblique view still produces an orthonormal basis."""
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(lookfrom=(3.0, 3.0, 2.0), lookat=(0.0, 0.0, -1.0)))
        info = get_camera_info()
        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))

        for vec in (u, v, w):
            assert np.linalg.norm(vec) == pytest.approx(1.0, abs=1e-5)
        assert abs(np.dot(u, v)) < 1e-5
        assert abs(np.dot(u, w)) < 1e-5
        assert abs(np.dot(v, w)) < 1e-5

    @pytest.mark.parametrize(
        "overrides",
        [
            {"lookat": (0.0, 0.0, 0.0)},
            {"vup": (0.0, 0.0, 1.0)},
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aspect_ratio": 0.0},
            {"focus_dist": 0.0},
            {"aperture": -0.1},
        ],
    )
    def test_invalid_configuration(self, overrides):
        """Degenerate or out-of-range configurations raise ValueError."""
        from pathtracer.camera.thin_lens import setup_camera

        with pytest.raises(ValueError):
            setup_camera(_make_camera(**overrides))


class TestRayGeneration:
    """Tests for get_ray and the per-pixel helpers."""

    def test_center_ray(self, default_camera):
        """The ray through (0.5, 0.5) looks straight ahead."""
        from pathtracer.camera.thin_lens import get_ray

        origin = ti.Vector.field(3, dtype=ti.f32, shape=())
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = get_ray(0.5, 0.5, 0)
            origin[None] = ray.origin
            direction[None] = ray.direction

        test_kernel()
        assert np.allclose(origin[None].to_numpy(), [0.0, 0.0, 0.0], atol=1e-6)
        assert np.allclose(direction[None].to_numpy(), [0.0, 0.0, -1.0], atol=1e-6)

    def test_corner_ray_is_not_normalized(self, default_camera):
        """Directions point at the viewport point and keep its distance."""
        from pathtracer.camera.thin_lens import get_ray

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            direction[None] = get_ray(1.0, 1.0, 0).direction

        test_kernel()
        assert np.allclose(direction[None].to_numpy(), [1.0, 1.0, -1.0], atol=1e-6)

    def test_depth_of_field(self):
        """Lens rays start on the aperture disk and meet on the focus plane."""
        from pathtracer.camera.thin_lens import get_ray, setup_camera

        setup_camera(_make_camera(aperture=1.0, focus_dist=2.0))

        origins = ti.Vector.field(3, dtype=ti.f32, shape=N_RAYS)
        targets = ti.Vector.field(3, dtype=ti.f32, shape=N_RAYS)

        @ti.kernel
        def test_kernel():
            for i in range(N_RAYS):
                ray = get_ray(0.5, 0.5, i)
                origins[i] = ray.origin
                targets[i] = ray.origin + ray.direction

        test_kernel()
        o = origins.to_numpy()
        t = targets.to_numpy()

        # Origins lie in the lens plane within the lens radius
        assert np.all(np.abs(o[:, 2]) < 1e-6)
        assert np.all(o[:, 0] ** 2 + o[:, 1] ** 2 <= 0.25 + 1e-6)
        assert np.std(o[:, 0]) > 1e-3
        # Every ray passes through the same point on the focus plane
        assert np.allclose(t, [0.0, 0.0, -2.0], atol=1e-5)

    def test_jittered_rays_stay_inside_pixel(self, default_camera):
        """Jittered rays for pixel (0, 0) of a 3x3 image keep s and t in [0, 0.5)."""
        from pathtracer.camera.thin_lens import get_ray_jittered

        directions = ti.Vector.field(3, dtype=ti.f32, shape=N_RAYS)

        @ti.kernel
        def test_kernel():
            for i in range(N_RAYS):
                directions[i] = get_ray_jittered(0, 0, 3, 3, i).direction

        test_kernel()
        d = directions.to_numpy()
        assert np.all(d[:, 0] >= -1.0 - 1e-6)
        assert np.all(d[:, 0] <= 1e-6)
        assert np.all(d[:, 1] >= -1.0 - 1e-6)
        assert np.all(d[:, 1] <= 1e-6)
        assert np.std(d[:, 0]) > 1e-2

    def test_centered_ray_uses_pixel_center(self, default_camera):
        """get_ray_centered aims through (i + 0.5) / (width - 1), (j + 0.5) / (height - 1)."""
        from pathtracer.camera.thin_lens import get_ray_centered

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            direction[None] = get_ray_centered(0, 2, 3, 3, 0).direction

        test_kernel()
        assert np.allclose(
            direction[None].to_numpy(), [-0.5, 1.5, -1.0], atol=1e-6
        )

    def test_last_pixel_starts_on_far_edge(self, default_camera):
        """For a 2x2 image pixel (1, 1) starts at s = t = 1, the upper-right corner."""
        from pathtracer.camera.thin_lens import get_ray_jittered

        directions = ti.Vector.field(3, dtype=ti.f32, shape=N_RAYS)

        @ti.kernel
        def test_kernel():
            for i in range(N_RAYS):
                directions[i] = get_ray_jittered(1, 1, 2, 2, i).direction

        test_kernel()
        d = directions.to_numpy()
        assert np.all(d[:, 0] >= 1.0 - 1e-6)
        assert np.all(d[:, 0] <= 3.0 + 1e-6)
        assert np.all(d[:, 1] >= 1.0 - 1e-6)
        assert np.all(d[:, 1] <= 3.0 + 1e-6)

    def test_single_pixel_image_aims_at_view_center(self, default_camera):
        """A 1x1 image divides by one, so its centered ray is the view axis."""
        from pathtracer.camera.thin_lens import get_ray_centered

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            direction[None] = get_ray_centered(0, 0, 1, 1, 0).direction

        test_kernel()
        assert np.allclose(direction[None].to_numpy(), [0.0, 0.0, -1.0], atol=1e-6)
