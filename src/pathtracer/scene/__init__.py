"""Scene module: sphere storage, closest-hit queries and scene building.

Components:
    intersection: Sphere fields and the closest-hit aggregate query
    manager: SceneManager with the unified material id space
    presets: Ready-made scenes

Note: manager and presets are NOT imported here, because the material
modules import the hit record from this package. Import them directly from
pathtracer.scene.manager and pathtracer.scene.presets.
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)

__all__ = [
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
]
