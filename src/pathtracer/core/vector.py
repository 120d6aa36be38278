"""Vector algebra and randomized vector sampling.

``vec3`` (Taichi's 3-component float vector) is the single value type used
for points, directions and RGB colors. Arithmetic, negation and component-wise
products come from the native ``vec3`` operators and always return new values;
this module adds the geometric helpers and the Monte Carlo constructors used by
the camera and materials.

The random constructors take an explicit ``stream`` handle (see
:mod:`pathtracer.core.sampler`) instead of reading a hidden generator.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.vector import reflect, vec3
    >>> @ti.kernel
    ... def mirror() -> vec3:
    ...     return reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))
"""

import math

import taichi as ti
import taichi.math as tm

from pathtracer.core.sampler import random_float, random_range

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Components below this magnitude count as zero in near_zero()
NEAR_ZERO_EPSILON = 1e-8


def degrees_to_radians(degrees: float) -> float:
    """Convert an angle from degrees to radians."""
    return degrees * math.pi / 180.0


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return ti.sqrt(length_squared(v))


@ti.func
def unit(v: vec3) -> vec3:
    """Scale a vector to unit length.

    Computed as ``v / length(v)`` with no guard: a zero vector yields NaN
    components. Callers must not pass a zero vector.
    """
    return v / length(v)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if every component of a vector is below NEAR_ZERO_EPSILON.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Reflect a vector about a normal: ``v - 2 (v . n) n``.

    Args:
        v: The incoming direction (pointing toward the surface).
        n: The surface normal (unit length).

    Returns:
        The reflected direction. Its length equals the length of v.
    """
    return v - 2.0 * tm.dot(v, n) * n


@ti.func
def refract(uv: vec3, n: vec3, etai_over_etat: ti.f32) -> vec3:
    """Refract a unit direction through a surface using Snell's law.

    The result is split into the components perpendicular and parallel to
    the normal:

        r_perp = eta * (uv + cos_theta * n)
        r_par = -sqrt(|1 - |r_perp|^2|) * n

    Args:
        uv: The incoming direction (unit length).
        n: The surface normal facing the incoming ray (unit length).
        etai_over_etat: Ratio of refractive indices, incident over transmitted.

    Returns:
        The refracted direction. Callers check for total internal reflection
        before calling; the absolute value keeps the result finite anyway.
    """
    cos_theta = tm.min(tm.dot(-uv, n), 1.0)
    r_out_perp = etai_over_etat * (uv + cos_theta * n)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * n
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Approximate Fresnel reflectance with Schlick's polynomial.

    Args:
        cosine: Cosine of the angle between the incoming ray and the normal.
        ref_idx: Refractive index (ratio) used for r0.

    Returns:
        ``r0 + (1 - r0)(1 - cosine)^5`` with ``r0 = ((1 - ref_idx)/(1 + ref_idx))^2``.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_vec3(stream: ti.i32) -> vec3:
    """Draw a vector uniformly from [0, 1)^3."""
    x = random_float(stream)
    y = random_float(stream)
    z = random_float(stream)
    return vec3(x, y, z)


@ti.func
def random_vec3_range(stream: ti.i32, lo: ti.f32, hi: ti.f32) -> vec3:
    """Draw a vector uniformly from [lo, hi)^3."""
    x = random_range(stream, lo, hi)
    y = random_range(stream, lo, hi)
    z = random_range(stream, lo, hi)
    return vec3(x, y, z)


@ti.func
def random_in_unit_sphere(stream: ti.i32) -> vec3:
    """Draw a point uniformly from inside the unit ball.

    Rejection sampling: draw from the [-1, 1)^3 cube until the sample's
    squared length is below 1.
    """
    result = vec3(0.0, 0.0, 0.0)
    while True:
        p = random_vec3_range(stream, -1.0, 1.0)
        if length_squared(p) < 1.0:
            result = p
            break
    return result


@ti.func
def random_unit_vector(stream: ti.i32) -> vec3:
    """Draw a unit vector uniformly distributed over the sphere."""
    return unit(random_in_unit_sphere(stream))


@ti.func
def random_in_unit_disk(stream: ti.i32) -> vec3:
    """Draw a point uniformly from the unit disk in the xy-plane (z = 0).

    Used for lens sampling in the thin-lens camera.
    """
    result = vec3(0.0, 0.0, 0.0)
    while True:
        x = random_range(stream, -1.0, 1.0)
        y = random_range(stream, -1.0, 1.0)
        if x * x + y * y < 1.0:
            result = vec3(x, y, 0.0)
            break
    return result
