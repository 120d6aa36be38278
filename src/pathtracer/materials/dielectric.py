"""Dielectric (glass/water) material implementation.

Dielectrics either reflect or refract every incoming ray and absorb nothing.
The ray reflects when refraction is impossible (total internal reflection,
``ratio * sin_theta > 1``) or when a uniform draw falls below the Schlick
approximation of the Fresnel reflectance. Otherwise it refracts by Snell's
law. The index ratio is ``1/ior`` when entering through the front face and
``ior`` when leaving the medium.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # rec = scatter_dielectric(ior, ray_in, hit, stream)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray
from pathtracer.core.sampler import random_float
from pathtracer.core.vector import reflect, refract, schlick_reflectance, unit
from pathtracer.materials.material import ScatterRecord, make_scattered
from pathtracer.scene.intersection import SceneHitRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def refraction_ratio_for(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Return the incident-over-transmitted index ratio for a hit side."""
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior
    return ratio


@ti.func
def cannot_refract(ior: ti.f32, unit_direction: vec3, normal: vec3, front_face: ti.i32) -> ti.i32:
    """Check whether a ray undergoes total internal reflection.

    Returns:
        1 if refraction is impossible, 0 otherwise.
    """
    ratio = refraction_ratio_for(ior, front_face)
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(1.0 - cos_theta * cos_theta)
    return ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    ray_in: Ray,
    rec: SceneHitRecord,
    stream: ti.i32,
) -> ScatterRecord:
    """Reflect or refract a ray at a dielectric boundary.

    Args:
        ior: Index of refraction of the material.
        ray_in: The incoming ray.
        rec: The hit being shaded. front_face selects the index ratio.
        stream: Random stream handle for this path.

    Returns:
        A ScatterRecord with scattered == 1 and white attenuation.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    ratio = refraction_ratio_for(ior, rec.front_face)

    unit_direction = unit(ray_in.direction)
    cos_theta = tm.min(tm.dot(-unit_direction, rec.normal), 1.0)

    total_internal = cannot_refract(ior, unit_direction, rec.normal, rec.front_face)
    # Always draw so the stream advances identically on both branches
    random_reflect = schlick_reflectance(cos_theta, ratio) > random_float(stream)

    direction = vec3(0.0, 0.0, 0.0)
    if total_internal or random_reflect:
        direction = reflect(unit_direction, rec.normal)
    else:
        direction = refract(unit_direction, rec.normal, ratio)

    return make_scattered(attenuation, rec.point, direction)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction relative to the surrounding medium.
            Default is 1.5 (typical glass). Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
            Values below 1 model a thinner medium embedded in a denser one.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is not positive.
    """
    if ior <= 0.0:
        raise ValueError(f"Index of refraction = {ior} must be positive.")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    ray_in: Ray,
    rec: SceneHitRecord,
    stream: ti.i32,
) -> ScatterRecord:
    """Scatter off the dielectric material stored at material_idx."""
    return scatter_dielectric(dielectric_iors[material_idx], ray_in, rec, stream)
