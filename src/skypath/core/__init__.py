"""Core rendering module.

Components:
    ray: Ray data structure, reflection and refraction
    rng: Explicit per-pixel random streams (hash seeding, xorshift steps)
    integrator: Path tracing kernels and the render target
    renderer: Render settings and the scan line driver

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Color,
    Ray,
    make_ray,
    near_zero,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .rng import (
    next_state,
    random_float,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_range,
    random_unit_vector,
    seed_state,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from skypath.core.integrator or skypath.core.renderer when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "Color",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "seed_state",
    "next_state",
    "random_float",
    "random_range",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
