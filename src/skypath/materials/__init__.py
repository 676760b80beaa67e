"""Materials module for scattering models.

Components:
    lambertian: Ideal diffuse reflection
    metal: Specular reflection with fuzz (roughness)
    dielectric: Clear glass with refraction and Schlick reflectance

Every scatter function takes the random stream state as its last argument and
returns (scattered_direction, attenuation, did_scatter, state). did_scatter=0
means the path was absorbed.

Materials are stored in per-kind Taichi registries and addressed by index;
the scene manager maps a unified material id onto (kind, index).
"""

from .dielectric import (
    DielectricMaterial,
    add_dielectric_material,
    clear_dielectric_materials,
    fresnel_reflectance,
    get_dielectric_index,
    get_dielectric_material_count,
    refraction_ratio,
    scatter_dielectric,
    scatter_dielectric_by_id,
    will_reflect,
)
from .lambertian import (
    LambertianMaterial,
    add_lambertian_material,
    clear_lambertian_materials,
    diffuse_direction,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
    scatter_lambertian_by_id,
)
from .metal import (
    MetalMaterial,
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
)

__all__ = [
    # Lambertian
    "LambertianMaterial",
    "diffuse_direction",
    "scatter_lambertian",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "MetalMaterial",
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clamp_fuzz",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
    # Dielectric
    "DielectricMaterial",
    "scatter_dielectric",
    "scatter_dielectric_by_id",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_index",
    "refraction_ratio",
    "fresnel_reflectance",
    "will_reflect",
]
