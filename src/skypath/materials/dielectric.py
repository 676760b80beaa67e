"""Dielectric (glass/water) material implementation.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when ratio * sin(theta) > 1

The material reflects on total internal reflection, or with probability equal
to the Schlick reflectance; otherwise it refracts. Glass is treated as clear
and non-absorbing, so the attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_dielectric(
    >>> #     refractive_index, incident_dir, normal, front_face, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from skypath.core.ray import reflect, refract, schlick_reflectance
from skypath.core.rng import random_float

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class DielectricMaterial:
    """Dielectric (glass/water) material properties.

    Attributes:
        refractive_index: Index of refraction. Common values:
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
    """

    refractive_index: ti.f64


@ti.func
def refraction_ratio(refractive_index: ti.f64, front_face: ti.i32) -> ti.f64:
    """Ratio n_incident / n_transmitted for a ray crossing the surface.

    Entering from outside (front_face=1) the ratio is 1/eta; leaving the
    material it is eta.
    """
    ratio = 1.0 / refractive_index
    if front_face == 0:
        ratio = refractive_index
    return ratio


@ti.func
def scatter_dielectric(
    refractive_index: ti.f64,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Compute the scattered direction for a dielectric surface.

    Args:
        refractive_index: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the ray.
        front_face: 1 if the ray hits the outside of the surface,
            0 if it hits from within the material.
        state: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state) where:
        - scattered_direction: The reflected or refracted direction.
        - attenuation: White (1, 1, 1).
        - did_scatter: Always 1; dielectrics never absorb.
        - state: The advanced random stream state.
    """
    ratio = refraction_ratio(refractive_index, front_face)

    unit_direction = tm.normalize(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    cannot_refract = ratio * sin_theta > 1.0

    # Always draw so the stream advances the same way on every hit
    u, s = random_float(state)
    reflectance = schlick_reflectance(cos_theta, ratio)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or u < reflectance:
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, ratio, cos_theta)

    return scattered_direction, vec3(1.0, 1.0, 1.0), 1, s


@ti.func
def will_reflect(
    refractive_index: ti.f64,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Determine if total internal reflection will occur.

    Returns:
        1 if the ray cannot refract at this angle, 0 otherwise.
    """
    ratio = refraction_ratio(refractive_index, front_face)

    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    return 1 if ratio * sin_theta > 1.0 else 0


@ti.func
def fresnel_reflectance(
    refractive_index: ti.f64,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f64:
    """Schlick reflectance for the given incidence.

    Returns:
        The reflection probability in [0, 1].
    """
    ratio = refraction_ratio(refractive_index, front_face)
    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    return schlick_reflectance(cos_theta, ratio)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 512

# Storage for dielectric material properties
dielectric_indices = ti.field(dtype=ti.f64, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_dielectric_materials[None] = 0


def add_dielectric_material(refractive_index: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        refractive_index: Index of refraction. Default is 1.5 (typical glass).
            Values below 1 are accepted (they model a medium optically thinner
            than its surroundings) but must be positive.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the refractive index is not positive.
    """
    if refractive_index <= 0.0:
        raise ValueError(
            f"Index of refraction = {refractive_index} must be positive."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_indices[idx] = refractive_index
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_index(material_idx: ti.i32) -> ti.f64:
    """Get the refractive index for a dielectric material by index."""
    return dielectric_indices[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Scatter off a registered dielectric material.

    Looks up the refractive index from the registry and calls
    scatter_dielectric.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    refractive_index = get_dielectric_index(material_idx)
    return scatter_dielectric(refractive_index, incident_direction, normal, front_face, state)
