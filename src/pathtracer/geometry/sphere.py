"""Sphere primitive with ray-sphere intersection.

The intersection solves ``|origin + t * direction - center|^2 = radius^2``
in its half-b form and reports the nearest root inside the requested
parametric interval.

A negative radius is allowed and leaves the intersection unchanged, but it
flips the outward normal ``(p - center) / radius``. Pairing a negative-radius
sphere with a positive one of the same material models a hollow shell, such
as a glass bubble.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Negative values invert the
            outward normal.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
            The remaining fields are only valid if hit == 1.
        t: The ray parameter of the intersection.
        point: The intersection point.
        normal: The unit surface normal, always facing against the incoming
            ray.
        front_face: 1 if the ray struck the outside of the surface (the
            outward normal faced the ray), 0 if it struck from inside.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test a ray against a sphere.

    Expanding the sphere equation along the ray gives

        a*t^2 + 2*half_b*t + c = 0

    with ``a = |d|^2``, ``half_b = (o - center) . d`` and
    ``c = |o - center|^2 - radius^2``. The smaller root is tried first and
    the larger one only if the smaller falls outside ``(t_min, t_max]``.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray. Must be non-zero; it need
            not be normalized.
        sphere: The sphere to test.
        t_min: Exclusive lower bound on accepted t.
        t_max: Inclusive upper bound on accepted t.

    Returns:
        A HitRecord. Check the hit field to see whether it is valid.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    half_b = tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0:
        sqrtd = ti.sqrt(discriminant)

        root = (-half_b - sqrtd) / a
        valid = t_min < root and root <= t_max
        if not valid:
            root = (-half_b + sqrtd) / a
            valid = t_min < root and root <= t_max

        if valid:
            did_hit = 1
            hit_t = root
            hit_point = ray_origin + root * ray_direction

            outward_normal = (hit_point - sphere.center) / sphere.radius
            if tm.dot(ray_direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                # Ray is leaving the surface; keep the normal facing it
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )

