"""Ready-made scenes.

The three-spheres scene is a small showcase of every scattering model:

- Ground: a huge yellow diffuse sphere standing in for a floor
- Center: diffuse blue sphere
- Left: hollow glass sphere, built from an outer sphere and a slightly
  smaller sphere with negative radius that share one dielectric material
- Right: polished gold mirror

The camera sits at the origin looking down -z with a 90 degree vertical
field of view, so the three small spheres fill the middle of the frame.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.presets import create_three_spheres_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene(aspect_ratio=16.0 / 9.0)
    >>> setup_camera(camera)
"""

from pathtracer.camera.thin_lens import ThinLensCamera
from pathtracer.scene.manager import SceneManager

DEFAULT_ASPECT_RATIO = 16.0 / 9.0

# Material colors
GROUND_ALBEDO = (0.8, 0.8, 0.0)
CENTER_ALBEDO = (0.1, 0.2, 0.5)
GOLD_ALBEDO = (0.8, 0.6, 0.2)
GLASS_IOR = 1.5


def create_three_spheres_camera(aspect_ratio: float = DEFAULT_ASPECT_RATIO) -> ThinLensCamera:
    """Create the pinhole camera used by the three-spheres scene."""
    return ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=1.0,
    )


def create_three_spheres_scene(
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the three-spheres scene.

    Args:
        aspect_ratio: Image width divided by height, passed to the camera.

    Returns:
        Tuple of (SceneManager, ThinLensCamera). The camera still has to be
        passed to setup_camera() before rendering.
    """
    scene = SceneManager()

    material_ground = scene.add_lambertian_material(GROUND_ALBEDO)
    material_center = scene.add_lambertian_material(CENTER_ALBEDO)
    material_left = scene.add_dielectric_material(GLASS_IOR)
    material_right = scene.add_metal_material(GOLD_ALBEDO, fuzz=0.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, material_ground)
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, material_center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, material_left)
    scene.add_sphere((-1.0, 0.0, -1.0), -0.4, material_left)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, material_right)

    return scene, create_three_spheres_camera(aspect_ratio)
