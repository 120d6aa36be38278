"""Normal-visualization material.

Maps the shading normal to a color, ``0.5 * (normal + 1)``, and ends the
path there. It draws no random numbers, so images made only of normal
materials (plus the sky) are fully deterministic. That makes it the
reference surface for checking the camera, the intersection code and the
integrator against hand-computed colors.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.materials.material import ScatterRecord, make_absorbed
from pathtracer.scene.intersection import SceneHitRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def normal_color(normal: vec3) -> vec3:
    """Map a unit normal from [-1, 1]^3 to an RGB color in [0, 1]^3."""
    return 0.5 * (normal + vec3(1.0, 1.0, 1.0))


@ti.func
def emitted_normal(rec: SceneHitRecord) -> vec3:
    """Radiance leaving a normal-visualization surface."""
    return normal_color(rec.normal)


@ti.func
def scatter_normal() -> ScatterRecord:
    """Normal-visualization surfaces never scatter."""
    return make_absorbed()
