"""Explicit random-value source for Monte Carlo sampling.

Random numbers are drawn from a 32-bit state value that is passed into every
sampling function and returned, advanced, alongside the sample. Nothing here
reads ambient generator state, so a render is reproducible from one integer
seed and every pixel can own an independent stream.

Streams are derived with a Wang integer hash of (seed, stream_a, stream_b) and
advanced with a xorshift32 step. Every function returns the new state as the
last element of its result tuple:

    u, state = random_float(state)
    p, state = random_in_unit_sphere(state)

Example:
    >>> @ti.kernel
    ... def sample(out: ti.template()):
    ...     for i in range(out.shape[0]):
    ...         state = seed_state(7, i, 0)
    ...         u, state = random_float(state)
    ...         out[i] = u
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Upper bound on rejection-sampling attempts. The acceptance rate is ~52% for
# the sphere and ~79% for the disk, so the bound is never reached in practice.
MAX_REJECTION_TRIES = 64

# 2^-24: scales a 24-bit integer into [0, 1)
_INV_2_24 = 1.0 / 16777216.0


@ti.func
def _wang_hash(x: ti.u32) -> ti.u32:
    """Wang's 32-bit integer hash, used to decorrelate stream seeds."""
    h = (x ^ ti.u32(61)) ^ ti.bit_shr(x, ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ ti.bit_shr(h, ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ ti.bit_shr(h, ti.u32(15))
    return h


@ti.func
def seed_state(seed: ti.i32, stream_a: ti.i32, stream_b: ti.i32) -> ti.u32:
    """Derive the initial state of an independent random stream.

    Args:
        seed: The render-wide seed.
        stream_a: First stream coordinate (e.g. pixel column).
        stream_b: Second stream coordinate (e.g. pixel row).

    Returns:
        A non-zero 32-bit state.
    """
    h = _wang_hash(ti.cast(seed, ti.u32))
    h = _wang_hash(h ^ ti.cast(stream_a, ti.u32))
    h = _wang_hash(h + ti.cast(stream_b, ti.u32))
    # Zero is a fixed point of xorshift
    if h == ti.u32(0):
        h = ti.u32(1)
    return h


@ti.func
def next_state(state: ti.u32) -> ti.u32:
    """Advance a state by one xorshift32 step."""
    s = state
    s = s ^ (s << ti.u32(13))
    s = s ^ ti.bit_shr(s, ti.u32(17))
    s = s ^ (s << ti.u32(5))
    return s


@ti.func
def random_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: The current stream state.

    Returns:
        A tuple (value, new_state).
    """
    s = next_state(state)
    value = ti.cast(ti.bit_shr(s, ti.u32(8)), ti.f64) * _INV_2_24
    return value, s


@ti.func
def random_range(lo: ti.f64, hi: ti.f64, state: ti.u32):
    """Draw a uniform float in [lo, hi).

    Returns:
        A tuple (value, new_state).
    """
    u, s = random_float(state)
    return lo + (hi - lo) * u, s


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a uniformly distributed point inside the unit sphere.

    Uses rejection sampling over the cube [-1, 1)^3.

    Args:
        state: The current stream state.

    Returns:
        A tuple (point, new_state) with |point| < 1.
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            x, s = random_range(-1.0, 1.0, s)
            y, s = random_range(-1.0, 1.0, s)
            z, s = random_range(-1.0, 1.0, s)
            candidate = vec3(x, y, z)
            if tm.dot(candidate, candidate) < 1.0:
                p = candidate
                found = True
    return p, s


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    This is the normalized version of random_in_unit_sphere().

    Returns:
        A tuple (unit_vector, new_state).
    """
    p, s = random_in_unit_sphere(state)
    # Rejection sampling can return the origin only if every try failed
    result = vec3(0.0, 1.0, 0.0)
    if tm.dot(p, p) > 1e-12:
        result = tm.normalize(p)
    return result, s


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for thin-lens (defocus blur) sampling.

    Returns:
        A tuple (point, new_state) with point.z == 0 and x^2 + y^2 < 1.
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            x, s = random_range(-1.0, 1.0, s)
            y, s = random_range(-1.0, 1.0, s)
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                found = True
    return p, s
