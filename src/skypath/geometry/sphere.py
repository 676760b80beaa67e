"""Sphere primitive with analytic ray-sphere intersection.

The ray-sphere intersection is found by solving

    |origin + t * direction - center|^2 = radius^2

which, with oc = origin - center, is the quadratic

    a*t^2 + 2*half_b*t + c = 0
    a = d . d,  half_b = oc . d,  c = oc . oc - radius^2

The nearer root is always tried first so the closest valid surface point is
returned. A negative radius flips the outward normal, which turns the sphere
into a hollow shell (used to model thin glass bubbles).

Roots use the cancellation-free form and all geometry runs in f64
(ti.init(default_fp=ti.f64)). With a radius-1000 ground sphere, f32 loses
enough of c that rays leaving the surface hit it again.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Negative values invert the normals.
    """

    center: vec3
    radius: ti.f64


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the sphere.
            Only valid if hit == 1.
        normal: The unit surface normal at the intersection point, always
            oriented against the incoming ray. Only valid if hit == 1.
        front_face: Whether the ray hit the outward-facing side (1) or the
            inside (0). Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f64
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def _solve_quadratic_robust(half_b: ti.f64, a: ti.f64, c: ti.f64, sqrt_d: ti.f64):
    """Solve a*t^2 + 2*half_b*t + c = 0 without catastrophic cancellation.

    The root whose numerator would subtract two nearly equal values is taken
    as c / q instead. For a ray leaving the surface of a large sphere c is
    close to zero, and so is that root, which keeps it below t_min.

    Args:
        half_b: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of the discriminant (half_b^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_b = ti.select(half_b < 0.0, -1.0, 1.0)
    q = -(half_b + sign_b * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-30:
        # Both roots collapse onto -half_b / a
        t0 = -half_b / a
        t1 = t0
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f64,
    t_max: ti.f64,
) -> HitRecord:
    """Test for ray-sphere intersection within [t_min, t_max).

    A negative discriminant means the ray misses. Otherwise the smaller root
    is accepted if it lies in the interval; if not, the larger root is tried
    under the same test.

    The outward normal is (point - center) / radius. front_face is set when
    the ray direction opposes the outward normal, and the stored normal is
    flipped for back-face hits so it always points against the ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Smallest accepted t (inclusive).
        t_max: Largest accepted t (exclusive).

    Returns:
        A HitRecord containing intersection information. Check hit field
        to determine if intersection occurred.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    half_b = tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = half_b * half_b - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(half_b, a, c, sqrt_d)

        t = t0
        valid = t_min <= t and t < t_max

        if not valid:
            t = t1
            valid = t_min <= t and t < t_max

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction

            outward_normal = (hit_point - sphere.center) / sphere.radius

            if tm.dot(ray_direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                # Ray is inside the sphere (or hitting a hollow shell from outside)
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )

