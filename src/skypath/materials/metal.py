"""Metal (specular reflective) material implementation.

Metals reflect the incoming ray about the surface normal:

    R = D - 2(D . N)N

where D is the normalized incident direction. The reflection is then
perturbed by a random point in a sphere of radius `fuzz`, modelling a rough
surface. When the perturbed ray ends up pointing into the surface it is
absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from skypath.core.ray import reflect
from skypath.core.rng import random_in_unit_sphere

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class MetalMaterial:
    """Metal (specular reflective) material properties.

    Attributes:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: The surface roughness in [0, 1]. 0 = perfect mirror.
    """

    albedo: vec3
    fuzz: ti.f64


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f64,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Compute the scattered direction for a metal surface.

    A random offset is drawn even when fuzz is zero so the stream advances
    the same way for every metal.

    Args:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: The surface roughness in [0, 1]. 0 = perfect mirror.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the ray.
        state: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state) where:
        - scattered_direction: The fuzzed reflection (not normalized).
        - attenuation: The albedo.
        - did_scatter: 1 if the ray leaves above the surface, 0 if absorbed.
        - state: The advanced random stream state.
    """
    reflected = reflect(tm.normalize(incident_direction), normal)

    fuzz_offset, s = random_in_unit_sphere(state)
    scattered_direction = reflected + fuzz * fuzz_offset

    did_scatter = 1
    if tm.dot(scattered_direction, normal) <= 0.0:
        did_scatter = 0

    return scattered_direction, albedo, did_scatter, s


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 512

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f64, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_metal_materials[None] = 0


def clamp_fuzz(fuzz: float) -> float:
    """Clamp a fuzz value into [0, 1].

    Fuzz outside this range has no physical meaning; values above 1 are
    treated as maximally rough and negative values as a perfect mirror.
    """
    return min(max(float(fuzz), 0.0), 1.0)


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component should be in [0, 1].
        fuzz: The surface roughness. Default is 0 (perfect mirror).
            Values are clamped to [0, 1].

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = clamp_fuzz(fuzz)
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f64:
    """Get the (clamped) fuzz for a metal material by index."""
    return metal_fuzzes[material_idx]


@ti.func
def scatter_metal_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Scatter off a registered metal material.

    Looks up the albedo and fuzz from the registry and calls scatter_metal.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    albedo = get_metal_albedo(material_idx)
    fuzz = get_metal_fuzz(material_idx)
    return scatter_metal(albedo, fuzz, incident_direction, normal, state)
