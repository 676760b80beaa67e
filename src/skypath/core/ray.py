"""Ray data structure and vector utilities for Taichi ray tracing.

This module provides the fundamental Ray dataclass and the vector helpers used
by intersection and scattering code. All operations are Taichi functions so
they can be inlined into rendering kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Colors are linear RGB triples
Color = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; intersection and scattering handle any length.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f64) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to detect degenerate scatter directions.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Reflection and Refraction
# =============================================================================


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes d - 2(d . n)n. The normal should be unit length; the incident
    vector keeps its length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(unit_incident: vec3, normal: vec3, ratio: ti.f64, cos_theta: ti.f64) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The refracted direction is split into a component perpendicular to the
    normal and one parallel to it:

        perp = ratio * (d + cos_theta * n)
        parallel = -sqrt(|1 - |perp|^2|) * n

    The caller is responsible for handling total internal reflection; this
    function always returns the Snell direction.

    Args:
        unit_incident: The normalized incoming direction.
        normal: The unit normal, facing against the incoming ray.
        ratio: Ratio of refractive indices (n_incident / n_transmitted).
        cos_theta: Cosine of the incidence angle, -d . n clamped to 1.

    Returns:
        The refracted direction (unit length for unit inputs).
    """
    perp = ratio * (unit_incident + cos_theta * normal)
    parallel = -ti.sqrt(ti.abs(1.0 - tm.dot(perp, perp))) * normal
    return perp + parallel


@ti.func
def schlick_reflectance(cosine: ti.f64, ratio: ti.f64) -> ti.f64:
    """Compute Fresnel reflectance using Schlick's approximation.

    R(theta) = r0 + (1 - r0)(1 - cos theta)^5 with r0 = ((1 - ratio)/(1 + ratio))^2.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ratio: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = (1.0 - ratio) / (1.0 + ratio)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)
