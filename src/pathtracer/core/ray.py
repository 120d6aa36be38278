"""Ray data structure.

A ray is an origin point plus a direction; points along it are
``origin + t * direction``. The direction is not required to be unit length,
consumers normalize where they need to (e.g. the background gradient).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.vector import length_squared

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Any non-zero
            length is accepted.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction.

    A zero direction has no meaningful parametric line and would turn into
    NaN as soon as it is normalized. It is rejected with a kernel assertion,
    which Taichi checks when initialized with ``debug=True``.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector (must be non-zero).

    Returns:
        A new Ray instance.
    """
    assert length_squared(direction) > 0.0, "Ray direction must be non-zero"
    return Ray(origin=origin, direction=direction)
