"""Lambertian (ideal diffuse) material implementation.

Diffuse surfaces scatter toward ``normal + random_unit_vector()``. Offsetting
the normal by a uniform point on the unit sphere produces directions whose
density follows the cosine of the angle to the normal, which is the Lambertian
distribution. No energy bookkeeping beyond the albedo is needed: the
attenuation is the albedo itself.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # rec = scatter_lambertian(albedo, ray_in, hit, stream)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray
from pathtracer.core.vector import near_zero, random_unit_vector
from pathtracer.materials.material import ScatterRecord, make_scattered
from pathtracer.scene.intersection import SceneHitRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(
    albedo: vec3,
    ray_in: Ray,
    rec: SceneHitRecord,
    stream: ti.i32,
) -> ScatterRecord:
    """Scatter a ray off a diffuse surface.

    When the random unit vector nearly cancels the normal the sum is close to
    zero, which would make a degenerate ray; the normal itself is used
    instead.

    Args:
        albedo: The diffuse reflectance color (RGB).
        ray_in: The incoming ray (unused; diffuse scattering ignores it).
        rec: The hit being shaded.
        stream: Random stream handle for this path.

    Returns:
        A ScatterRecord that always has scattered == 1.
    """
    scatter_direction = rec.normal + random_unit_vector(stream)

    if near_zero(scatter_direction):
        scatter_direction = rec.normal

    return make_scattered(albedo, rec.point, scatter_direction)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 256

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.
            Each component must be in [0, 1].

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def scatter_lambertian_by_id(
    material_idx: ti.i32,
    ray_in: Ray,
    rec: SceneHitRecord,
    stream: ti.i32,
) -> ScatterRecord:
    """Scatter off the Lambertian material stored at material_idx."""
    return scatter_lambertian(lambertian_albedos[material_idx], ray_in, rec, stream)
