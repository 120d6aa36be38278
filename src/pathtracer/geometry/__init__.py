"""Geometry module: the sphere primitive and ray-sphere intersection."""

from .sphere import HitRecord, Sphere, hit_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
]
