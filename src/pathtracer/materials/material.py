"""Scattering contract shared by all material models.

Every material exposes a scatter function that consumes the incoming ray and
the hit record and returns a ScatterRecord. The ``scattered`` flag plays the
role of an optional result: when it is 0 the path was absorbed and the other
fields carry no meaning; when it is 1 the record holds the attenuation color
and the outgoing ray (which always starts at the hit point).
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class ScatterRecord:
    """Result of a material scatter query.

    Attributes:
        scattered: 1 if an outgoing ray was produced, 0 if absorbed.
        attenuation: Color multiplier applied to the outgoing ray's radiance.
        origin: Origin of the outgoing ray (the hit point).
        direction: Direction of the outgoing ray (not normalized).
    """

    scattered: ti.i32
    attenuation: vec3
    origin: vec3
    direction: vec3


@ti.func
def make_scattered(attenuation: vec3, origin: vec3, direction: vec3) -> ScatterRecord:
    """Build a record for a ray that continues from origin along direction."""
    return ScatterRecord(
        scattered=1,
        attenuation=attenuation,
        origin=origin,
        direction=direction,
    )


@ti.func
def make_absorbed() -> ScatterRecord:
    """Build a record for a fully absorbed path."""
    return ScatterRecord(
        scattered=0,
        attenuation=vec3(0.0, 0.0, 0.0),
        origin=vec3(0.0, 0.0, 0.0),
        direction=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def scattered_ray(rec: ScatterRecord) -> Ray:
    """Return the outgoing ray of a record with scattered == 1."""
    return make_ray(rec.origin, rec.direction)
