"""Pytest configuration for pathtracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material and render state around each test.

    Random streams are reseeded with 0 so every test starts from the same
    generator state.
    """
    # Import here so Taichi is initialized before any field is allocated
    from pathtracer.core.integrator import reset_render_target
    from pathtracer.core.sampler import seed_streams
    from pathtracer.materials.dielectric import clear_dielectric_materials
    from pathtracer.materials.lambertian import clear_lambertian_materials
    from pathtracer.materials.metal import clear_metal_materials
    from pathtracer.scene.intersection import clear_scene
    from pathtracer.scene.manager import _reset_material_table

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _reset_material_table()
        reset_render_target()
        seed_streams(0)

    _clear_all()

    yield

    _clear_all()


@pytest.fixture
def default_camera():
    """Pinhole camera at the origin looking down -z with a square 90 degree view.

    The viewport spans [-1, 1] x [-1, 1] on the plane z = -1.
    """
    from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=1.0,
    )
    setup_camera(camera)
    return camera
