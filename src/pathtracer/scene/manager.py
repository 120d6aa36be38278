"""Scene construction: one material id space shared by every sphere.

Lambertian, metal and dielectric parameters live in per-kind registries
(see ``pathtracer.materials``). This module numbers materials across all
kinds and keeps a device-side table from material id to (kind, slot), which
the integrator reads to pick a scatter function. A material id is a handle,
so a hollow glass shell can put both of its spheres on one id.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.manager import SceneManager
    >>> builder = SceneManager()
    >>> glass = builder.add_dielectric_material(ior=1.5)
    >>> builder.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    >>> builder.add_sphere((-1.0, 0.0, -1.0), -0.4, glass)  # hollow shell
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from pathtracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtracer.materials.metal import (
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
)
from pathtracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Material kinds the integrator knows how to shade.

    The integer value is what the device-side id table stores.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    NORMAL = 3


MAX_MATERIALS = 1024

# Per material id: its MaterialType value and its slot in that kind's registry.
# The third metal ever added has slot 2 no matter how many other ids precede it.
_material_kind = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
_material_slot = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
_material_count = ti.field(dtype=ti.i32, shape=())


def _reset_material_table() -> None:
    """Forget every material id."""
    _material_count[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """MaterialType value for ``material_id``, or -1 when the id is unknown."""
    kind = -1
    if 0 <= material_id < _material_count[None]:
        kind = _material_kind[material_id]
    return kind


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Slot of ``material_id`` in its kind's parameter registry, or -1."""
    slot = -1
    if 0 <= material_id < _material_count[None]:
        slot = _material_slot[material_id]
    return slot


@dataclass
class MaterialInfo:
    """Host-side record of one material id.

    Attributes:
        material_id: Id spheres use to refer to this material.
        material_type: Which scatter rule applies.
        type_index: Slot in the per-kind registry.
        params: Parameters as stored. Metal fuzz is already clamped.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Host-side record of one sphere.

    Attributes:
        sphere_index: Slot in the scene's sphere fields.
        center: World-space center.
        radius: Signed radius; negative spheres have inward normals.
        material_id: Material the sphere is shaded with.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Plain-data form of a scene, as read from or written to JSON.

    Attributes:
        materials: Material entries; list position is the material id.
        spheres: Sphere entries referencing those ids.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    """Read an ``[x, y, z]`` config value as floats."""
    try:
        count = len(values)
    except TypeError:
        raise ValueError(f"{name} must be a list of 3 numbers, got {values!r}") from None
    if count != 3:
        raise ValueError(f"{name} must have 3 components, got {count}")
    return (_as_float(values[0], name), _as_float(values[1], name), _as_float(values[2], name))


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _check_entries(entries: Any, section: str) -> None:
    """Reject a config section that is not a list of mappings."""
    if not isinstance(entries, list):
        raise ValueError(f"'{section}' must be a list, got {type(entries).__name__}")
    for position, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ValueError(
                f"{section}[{position}] must be an object, got {type(entry).__name__}"
            )


class SceneManager:
    """Registers materials and places spheres that use them.

    Populate the scene completely before rendering. Kernels only read it.

    Attributes:
        materials: One MaterialInfo per material id, in id order.
        spheres: One SphereInfo per sphere, in insertion order.

    Example:
        >>> builder = SceneManager()
        >>> ground = builder.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
        >>> gold = builder.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.0)
        >>> builder.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
        >>> builder.add_sphere((1.0, 0.0, -1.0), 0.5, gold)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Drop every sphere and material, host records and device fields alike."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _reset_material_table()
        self.materials.clear()
        self.spheres.clear()

    # =========================================================================
    # Materials
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = int(_material_count[None])
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Scene is full: at most {MAX_MATERIALS} materials")

        _material_kind[material_id] = int(material_type)
        _material_slot[material_id] = type_index
        _material_count[None] = material_id + 1

        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        logger.debug("Registered %s material %d", material_type.name.lower(), material_id)
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Register a diffuse material and return its id.

        Raises:
            RuntimeError: If no material id is left.
            ValueError: If an albedo channel lies outside [0, 1].
        """
        slot = add_lambertian_material(albedo)
        return self._register_material(MaterialType.LAMBERTIAN, slot, {"albedo": tuple(albedo)})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Register a metal and return its id.

        ``fuzz`` is clamped into [0, 1]; 0 gives a perfect mirror.

        Raises:
            RuntimeError: If no material id is left.
            ValueError: If an albedo channel lies outside [0, 1].
        """
        slot = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL,
            slot,
            {"albedo": tuple(albedo), "fuzz": clamp_fuzz(fuzz)},
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Register a clear refractive material and return its id.

        Raises:
            RuntimeError: If no material id is left.
            ValueError: If ``ior`` is not positive.
        """
        slot = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, slot, {"ior": ior})

    def add_normal_material(self) -> int:
        """Register a material that shows surface normals as colors."""
        return self._register_material(MaterialType.NORMAL, 0, {})

    def get_material_count(self) -> int:
        return int(_material_count[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Record for ``material_id``, or None when no such id was handed out."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Spheres
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Place a sphere and return its index.

        A negative radius keeps the same surface but points its normals
        inward, which is how hollow glass is modelled.

        Raises:
            RuntimeError: If the sphere fields are full.
            ValueError: If ``material_id`` was never registered.
        """
        if not 0 <= material_id < _material_count[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        sphere_index = add_sphere(vec3(center[0], center[1], center[2]), radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, tuple(center), radius, material_id))
        return sphere_index

    def _sphere_with(self, center, radius, material_id: int) -> tuple[int, int]:
        return self.add_sphere(center, radius, material_id), material_id

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Place a sphere on a new diffuse material; returns (sphere, material) ids."""
        return self._sphere_with(center, radius, self.add_lambertian_material(albedo))

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Place a sphere on a new metal; returns (sphere, material) ids."""
        return self._sphere_with(center, radius, self.add_metal_material(albedo, fuzz))

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Place a sphere on a new dielectric; returns (sphere, material) ids."""
        return self._sphere_with(center, radius, self.add_dielectric_material(ior))

    def add_normal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
    ) -> tuple[int, int]:
        """Place a sphere on a new normal material; returns (sphere, material) ids."""
        return self._sphere_with(center, radius, self.add_normal_material())

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    # =========================================================================
    # Config and JSON
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Describe the current scene as plain data."""
        materials = []
        for info in self.materials:
            entry: dict[str, Any] = {"type": info.material_type.name.lower()}
            entry.update(
                (key, list(value) if isinstance(value, tuple) else value)
                for key, value in info.params.items()
            )
            materials.append(entry)

        spheres = [
            {"center": list(s.center), "radius": s.radius, "material_id": s.material_id}
            for s in self.spheres
        ]
        return SceneConfig(materials=materials, spheres=spheres)

    def _load_material(self, entry: Mapping[str, Any]) -> None:
        kind = str(entry.get("type", "")).lower()
        if kind == "lambertian":
            albedo = _as_triple(entry.get("albedo", [0.5, 0.5, 0.5]), "albedo")
            self.add_lambertian_material(albedo)
        elif kind == "metal":
            self.add_metal_material(
                _as_triple(entry.get("albedo", [0.8, 0.8, 0.8]), "albedo"),
                _as_float(entry.get("fuzz", 0.0), "fuzz"),
            )
        elif kind == "dielectric":
            self.add_dielectric_material(_as_float(entry.get("ior", 1.5), "ior"))
        elif kind == "normal":
            self.add_normal_material()
        else:
            raise ValueError(f"Unknown material type: {kind!r}")

    def from_config(self, config: SceneConfig) -> None:
        """Replace the scene with the one ``config`` describes.

        Sphere entries refer to materials by their position in
        ``config.materials``. Missing fields take the defaults of the
        matching ``add_*`` method.

        Raises:
            ValueError: If a section is not a list of objects, a material
                kind is unknown, or a value is malformed or out of range.
        """
        _check_entries(config.materials, "materials")
        _check_entries(config.spheres, "spheres")
        self.clear()

        for entry in config.materials:
            self._load_material(entry)

        for entry in config.spheres:
            self.add_sphere(
                _as_triple(entry.get("center", [0.0, 0.0, 0.0]), "center"),
                _as_float(entry.get("radius", 1.0), "radius"),
                int(_as_float(entry.get("material_id", 0), "material_id")),
            )

        logger.info(
            "Loaded scene with %d materials and %d spheres",
            len(self.materials),
            len(self.spheres),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form of :meth:`to_config`."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a decoded JSON scene; absent sections count as empty."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Scene must be an object, got {type(data).__name__}")
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
            )
        )

    # =========================================================================
    # Limits
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
