"""Scene module for scene management and hit records.

Components:
    intersection: Sphere storage and closest-hit queries
    manager: Unified scene manager coordinating spheres and materials
    presets: Built-in scenes and JSON scene files

Scene data lives in Taichi fields in Structure-of-Arrays layout with fixed
capacities, so kernels compile once.
"""

from .intersection import (
    MAX_SPHERES,
    NO_MATERIAL,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .presets import (
    SCENES,
    create_normals_scene,
    create_random_scene,
    create_scene,
    create_three_spheres_scene,
    load_scene_file,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    "NO_MATERIAL",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Presets module
    "SCENES",
    "create_scene",
    "create_normals_scene",
    "create_three_spheres_scene",
    "create_random_scene",
    "load_scene_file",
]
