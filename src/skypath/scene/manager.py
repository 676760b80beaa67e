"""Unified scene manager for coordinating spheres and materials.

The SceneManager maintains one material id space across all material kinds.
Each id maps to (material_type, type_local_index) so the integrator can
dispatch to the right scattering function, and any number of spheres can
share a material by referencing its id.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> mat_id = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=mat_id)
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from skypath.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from skypath.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from skypath.materials.metal import (
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
)
from skypath.scene.intersection import (
    MAX_SPHERES,
    NO_MATERIAL,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """The closed set of material kinds.

    Used for material dispatch in the path tracer.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all types
MAX_MATERIALS = 1536  # 512 per type * 3 types

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Returns:
        The material type as an integer (see MaterialType), or -1 for
        invalid material IDs (including NO_MATERIAL).
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    This is the index into the kind-specific registry
    (e.g., lambertian_albedos[type_index]).

    Returns:
        The registry index, or -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The kind of material.
        type_index: The index within the kind-specific registry.
        params: The material parameters as stored (fuzz already clamped).
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID, or None for an unshaded sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int | None


@dataclass
class SceneConfig:
    """Serializable description of a scene.

    Attributes:
        materials: List of material configurations, e.g.
            {"type": "metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 0.1}.
        spheres: List of sphere configurations, e.g.
            {"center": [0, 0, -1], "radius": 0.5, "material_id": 0}.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def as_float(value: Any, name: str) -> float:
    """Convert a config number to float, raising ValueError on bad input."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(value)


def as_triple(values: Any, name: str) -> tuple[float, float, float]:
    """Convert a 3-element list from a config into a float tuple."""
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"{name} must be a list of 3 numbers, got {values!r}")
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (
        as_float(values[0], name),
        as_float(values[1], name),
        as_float(values[2], name),
    )


def _as_material_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"material_id must be an integer, got {value!r}")
    return value


class SceneManager:
    """Unified scene manager coordinating spheres and materials.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        spheres: List of SphereInfo for all spheres in the scene.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(refractive_index=1.5)
        >>> scene.add_sphere((0, -1000, 0), 1000, ground)
        >>> scene.add_sphere((4, 1, 0), 1.0, gold)
        >>> scene.add_sphere((0, 1, 0), 1.0, glass)
        >>> scene.add_sphere((0, 1, 0), -0.9, glass)  # hollow shell, same material
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Clear the entire scene (spheres and materials)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign a unified material ID to a registry entry."""
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Args:
            albedo: The diffuse reflectance color as (R, G, B) tuple.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": tuple(albedo)}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular reflective) material to the scene.

        Args:
            albedo: The reflective color as (R, G, B) tuple.
            fuzz: The surface roughness, clamped to [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL,
            type_index,
            {"albedo": tuple(albedo), "fuzz": clamp_fuzz(fuzz)},
        )

    def add_dielectric_material(self, refractive_index: float = 1.5) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Args:
            refractive_index: Index of refraction. Default is 1.5 (glass).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If the refractive index is not positive.
        """
        type_index = add_dielectric_material(refractive_index)
        return self._register_material(
            MaterialType.DIELECTRIC,
            type_index,
            {"refractive_index": refractive_index},
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a given material ID (Python side).

        For kernel-side lookup use the get_material_type() Taichi function.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id].material_type
        return None

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int | None,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere. Negative radii invert normals.
            material_id: The unified material ID to bind, or None for an
                unshaded sphere (only meaningful in normal-shading mode).

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id is invalid or the radius is zero.
        """
        if material_id is not None and (
            material_id < 0 or material_id >= num_materials[None]
        ):
            raise ValueError(f"Invalid material_id: {material_id}")

        center_vec = vec3(center[0], center[1], center[2])
        sphere_index = add_sphere(
            center_vec,
            radius,
            NO_MATERIAL if material_id is None else material_id,
        )

        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=tuple(center),
                radius=radius,
                material_id=material_id,
            )
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refractive_index: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(refractive_index)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene first. Materials are loaded before spheres
        so sphere material ids refer to positions in the materials list.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        if not isinstance(config.materials, list) or not isinstance(config.spheres, list):
            raise ValueError("'materials' and 'spheres' must be lists")

        for mat_config in config.materials:
            if not isinstance(mat_config, dict):
                raise ValueError(f"Material entries must be objects, got {mat_config!r}")
            mat_type = str(mat_config.get("type", "")).lower()
            if mat_type == "lambertian":
                albedo = as_triple(mat_config.get("albedo", [0.5, 0.5, 0.5]), "albedo")
                self.add_lambertian_material(albedo)
            elif mat_type == "metal":
                albedo = as_triple(mat_config.get("albedo", [0.8, 0.8, 0.8]), "albedo")
                self.add_metal_material(albedo, as_float(mat_config.get("fuzz", 0.0), "fuzz"))
            elif mat_type == "dielectric":
                self.add_dielectric_material(
                    as_float(mat_config.get("refractive_index", 1.5), "refractive_index")
                )
            else:
                raise ValueError(f"Unknown material type: {mat_type!r}")

        for sphere_config in config.spheres:
            if not isinstance(sphere_config, dict):
                raise ValueError(f"Sphere entries must be objects, got {sphere_config!r}")
            if "center" not in sphere_config or "radius" not in sphere_config:
                raise ValueError("Sphere entries require 'center' and 'radius'")
            center = as_triple(sphere_config["center"], "center")
            material_id = sphere_config.get("material_id")
            self.add_sphere(
                center,
                as_float(sphere_config["radius"], "radius"),
                None if material_id is None else _as_material_id(material_id),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials' and 'spheres' keys."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
        )
        self.from_config(config)

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS
