"""Lambertian (ideal diffuse) material implementation.

The scattered direction is the surface normal plus a random unit vector,
which produces a cosine-weighted distribution over the hemisphere around the
normal. Because the sampling density matches the cosine falloff of the BRDF,
the per-bounce attenuation reduces to the albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_lambertian(
    >>> #     albedo, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from skypath.core.ray import near_zero
from skypath.core.rng import random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class LambertianMaterial:
    """Lambertian (ideal diffuse) material properties.

    Attributes:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
    """

    albedo: vec3


@ti.func
def diffuse_direction(normal: vec3, offset: vec3) -> vec3:
    """Scatter direction normal + offset, or the normal if the sum is degenerate."""
    direction = normal + offset
    if near_zero(direction):
        direction = normal
    return direction


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3, state: ti.u32):
    """Sample a scattered direction for a Lambertian surface.

    The direction is normal + random_unit_vector(). When the random vector
    almost exactly cancels the normal the sum is degenerate, and the normal
    itself is used instead.

    Args:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
        normal: The unit surface normal at the hit point, facing the ray.
        state: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state) where:
        - scattered_direction: The sampled direction (not normalized).
        - attenuation: The albedo.
        - did_scatter: Always 1; diffuse surfaces never absorb the path.
        - state: The advanced random stream state.
    """
    offset, s = random_unit_vector(state)
    return diffuse_direction(normal, offset), albedo, 1, s


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 512

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.
            Each component should be in [0, 1].

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

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, normal: vec3, state: ti.u32):
    """Scatter off a registered Lambertian material.

    Looks up the albedo from the registry and calls scatter_lambertian.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    albedo = get_lambertian_albedo(material_idx)
    return scatter_lambertian(albedo, normal, state)
