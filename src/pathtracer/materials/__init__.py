"""Materials module for scattering models.

Components:
    material: ScatterRecord and helpers shared by every model
    lambertian: Ideal diffuse reflection
    metal: Mirror reflection with optional fuzz
    dielectric: Glass-like refraction with Schlick reflectance
    normal: Normal visualization, a deterministic non-scattering surface

Each model keeps its parameters in its own Taichi field registry and exposes a
``scatter_*_by_id`` function for the integrator's material dispatch.
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_material_count,
    scatter_dielectric,
    scatter_dielectric_by_id,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_material_count,
    scatter_lambertian,
    scatter_lambertian_by_id,
)
from .material import ScatterRecord, make_absorbed, make_scattered, scattered_ray
from .metal import (
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
)
from .normal import emitted_normal, normal_color, scatter_normal

__all__ = [
    # Shared
    "ScatterRecord",
    "make_scattered",
    "make_absorbed",
    "scattered_ray",
    # Lambertian
    "scatter_lambertian",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    # Metal
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_fuzz",
    "clamp_fuzz",
    # Dielectric
    "scatter_dielectric",
    "scatter_dielectric_by_id",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    # Normal
    "normal_color",
    "emitted_normal",
    "scatter_normal",
]
