"""Core rendering module.

Components:
    sampler: Per-pixel random streams with explicit handles
    vector: Vector algebra and randomized vector constructors
    ray: Ray data structure
    integrator: Radiance estimate and the render target
    progressive: Batched accumulation with progress reporting

All compute-intensive operations use Taichi kernels.
"""

from .ray import Ray, make_ray, ray_at
from .vector import (
    cross,
    degrees_to_radians,
    dot,
    length,
    length_squared,
    near_zero,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    random_vec3,
    random_vec3_range,
    reflect,
    refract,
    schlick_reflectance,
    unit,
    vec3,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "unit",
    "near_zero",
    "reflect",
    "refract",
    "schlick_reflectance",
    "degrees_to_radians",
    "random_vec3",
    "random_vec3_range",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
