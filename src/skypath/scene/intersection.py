"""Scene-level ray intersection over the sphere list.

The scene stores spheres in Taichi fields (structure of arrays) together with
the material id each sphere is bound to. Intersection is an exhaustive scan:
every sphere is tested against every ray, and the closest hit wins.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.scene.intersection import (
    ...     SceneHitRecord, add_sphere, intersect_scene, clear_scene
    ... )
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    >>> # Use intersect_scene within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from skypath.geometry.sphere import HitRecord, Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any sphere (1 if hit, 0 if miss).
        t: The parameter value of the closest intersection.
        point: The closest intersection point.
        normal: The unit normal at the hit, oriented against the ray.
        front_face: 1 if the outward-facing side was hit, 0 otherwise.
        material_id: The material ID of the hit sphere. NO_MATERIAL (-1) for a
            miss or for spheres added without a material.
    """

    hit: ti.i32
    t: ti.f64
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


# Maximum number of spheres supported in the scene
MAX_SPHERES = 1024

# Material id for unshaded spheres
NO_MATERIAL = -1

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f64, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f64, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all spheres from the scene.

    Resets the sphere count to zero. The field data is overwritten when new
    spheres are added.
    """
    num_spheres[None] = 0


def add_sphere(center: vec3, radius: float, material_id: int = NO_MATERIAL) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere. Negative radii invert the normals.
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
        ValueError: If the radius is zero.
    """
    if radius == 0.0:
        raise ValueError("Sphere radius must be non-zero")

    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def _hit_record_to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    """Attach a material ID to a primitive hit record."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=NO_MATERIAL,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f64,
    t_max: ti.f64,
) -> SceneHitRecord:
    """Find the nearest hit across all spheres in [t_min, t_max).

    The upper bound is tightened to the closest hit found so far, so a later
    sphere only replaces the current hit when it is strictly closer. Exact
    ties keep the sphere that was added first.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Smallest accepted t (inclusive).
        t_max: Largest accepted t (exclusive).

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, sphere_material_ids[i])

    return result
