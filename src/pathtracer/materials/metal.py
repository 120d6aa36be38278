"""Metal (specular reflective) material implementation.

Metals reflect the unit incoming direction about the normal,
``R = I - 2(I . N)N``, then push the reflection by a random point in a ball
of radius ``fuzz``. A fuzz of 0 is a perfect mirror. When the perturbed
direction ends up below the surface the ray is absorbed, which darkens very
rough metals at grazing angles.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # rec = scatter_metal(albedo, fuzz, ray_in, hit, stream)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray
from pathtracer.core.vector import random_in_unit_sphere, reflect, unit
from pathtracer.materials.material import ScatterRecord, make_absorbed, make_scattered
from pathtracer.scene.intersection import SceneHitRecord

# Type alias for 3D vectors
vec3 = tm.vec3


def clamp_fuzz(fuzz: float) -> float:
    """Clamp a fuzz coefficient into [0, 1]."""
    return min(max(fuzz, 0.0), 1.0)


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    ray_in: Ray,
    rec: SceneHitRecord,
    stream: ti.i32,
) -> ScatterRecord:
    """Scatter a ray off a metal surface.

    Args:
        albedo: The reflective color (RGB).
        fuzz: Radius of the reflection perturbation, in [0, 1].
        ray_in: The incoming ray.
        rec: The hit being shaded.
        stream: Random stream handle for this path.

    Returns:
        A ScatterRecord; scattered == 0 if the fuzzed direction points into
        the surface.
    """
    reflected = reflect(unit(ray_in.direction), rec.normal)
    direction = reflected + fuzz * random_in_unit_sphere(stream)

    result = make_absorbed()
    if tm.dot(direction, rec.normal) > 0.0:
        result = make_scattered(albedo, rec.point, direction)

    return result


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 256

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component must be in [0, 1].
        fuzz: The reflection fuzz. Values outside [0, 1] are clamped.

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

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = clamp_fuzz(fuzz)
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


def get_metal_fuzz(material_idx: int) -> float:
    """Get the stored (clamped) fuzz of a metal material."""
    return float(metal_fuzzes[material_idx])


@ti.func
def scatter_metal_by_id(
    material_idx: ti.i32,
    ray_in: Ray,
    rec: SceneHitRecord,
    stream: ti.i32,
) -> ScatterRecord:
    """Scatter off the metal material stored at material_idx."""
    return scatter_metal(
        metal_albedos[material_idx], metal_fuzzes[material_idx], ray_in, rec, stream
    )
