"""Path tracing integrator for Monte Carlo light transport.

This module implements the rendering kernels: a bounded path-tracing loop
with material-based scattering under a procedural sky, and the per-scanline
sampling loop that averages many jittered camera rays per pixel.

Each path ends in exactly one of these ways:
    - the bounce budget (max_depth) runs out: black
    - the ray escapes the scene: throughput * sky gradient
    - the material absorbs the ray: black

The loop carries the product of attenuations forward instead of recursing,
which is equivalent to attenuation * trace(scattered, depth - 1).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.core.integrator import setup_render_target, render_scanline
    >>> from skypath.scene.presets import create_three_spheres_scene
    >>> from skypath.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene(aspect_ratio=1.0)
    >>> setup_camera(camera)
    >>> setup_render_target(64, 64)
    >>> for row in range(63, -1, -1):
    ...     render_scanline(row, samples_per_pixel=16)
"""

from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from skypath.camera.thin_lens import get_ray
from skypath.core.rng import random_float, seed_state
from skypath.materials.dielectric import scatter_dielectric_by_id
from skypath.materials.lambertian import scatter_lambertian_by_id
from skypath.materials.metal import scatter_metal_by_id
from skypath.scene.intersection import intersect_scene
from skypath.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3


class ShadingMode(IntEnum):
    """How a camera ray is turned into a color.

    PATH runs the full path tracer. NORMALS colors the first hit by its
    surface normal, (n + 1) / 2, which needs no materials.
    """

    PATH = 0
    NORMALS = 1


# =============================================================================
# Rendering Constants
# =============================================================================

DEFAULT_MAX_DEPTH = 50

# Hits closer than this are ignored to avoid re-hitting the surface a ray
# just left ("shadow acne")
T_MIN = 1e-3
T_MAX = 1e10

SKY_WHITE = vec3(1.0, 1.0, 1.0)
SKY_BLUE = vec3(0.5, 0.7, 1.0)

# Plain ints so Taichi folds them into the kernels
_LAMBERTIAN = int(MaterialType.LAMBERTIAN)
_METAL = int(MaterialType.METAL)
_DIELECTRIC = int(MaterialType.DIELECTRIC)
_NORMALS = int(ShadingMode.NORMALS)


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel sum of sample colors; divided by the sample count only on readout
_color_sum = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Result slot for trace_single_ray
_single_ray_result = ti.Vector.field(3, dtype=ti.f64, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Sky and Material Dispatch
# =============================================================================


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Background radiance for a ray that leaves the scene.

    Blends white at the horizon-down end into sky blue straight up, using
    t = (y + 1) / 2 of the normalized direction.
    """
    unit_direction = tm.normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * SKY_WHITE + t * SKY_BLUE


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Dispatch to the scattering function of the hit material.

    Spheres without a valid material absorb the ray.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    s = state

    if mat_type == _LAMBERTIAN:
        scattered_direction, attenuation, did_scatter, s = scatter_lambertian_by_id(
            type_index, normal, s
        )

    elif mat_type == _METAL:
        scattered_direction, attenuation, did_scatter, s = scatter_metal_by_id(
            type_index, incident_direction, normal, s
        )

    elif mat_type == _DIELECTRIC:
        scattered_direction, attenuation, did_scatter, s = scatter_dielectric_by_id(
            type_index, incident_direction, normal, front_face, s
        )

    return scattered_direction, attenuation, did_scatter, s


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_ray(
    origin: vec3,
    direction: vec3,
    max_depth: ti.i32,
    mode: ti.i32,
    state: ti.u32,
):
    """Trace a single path from a ray through the scene.

    Args:
        origin: The ray origin.
        direction: The ray direction (any length).
        max_depth: Maximum number of surface interactions. 0 yields black.
        mode: A ShadingMode value.
        state: The random stream state.

    Returns:
        A tuple (radiance, state).
    """
    s = state
    ray_origin = origin
    ray_direction = direction

    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    # Taichi funcs cannot break out of loops; paths end by clearing this flag
    active = 1

    for _ in range(max_depth):
        if active == 1:
            hit_record = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if hit_record.hit == 0:
                radiance = throughput * sky_color(ray_direction)
                active = 0
            elif mode == _NORMALS:
                radiance = 0.5 * (hit_record.normal + vec3(1.0, 1.0, 1.0))
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, s = _scatter_material(
                    hit_record.material_id,
                    ray_direction,
                    hit_record.normal,
                    hit_record.front_face,
                    s,
                )

                if did_scatter == 0:
                    active = 0
                else:
                    # Element-wise: each channel attenuates independently
                    throughput = throughput * attenuation
                    ray_origin = hit_record.point
                    ray_direction = scattered_direction

    # A path still active here exhausted its bounce budget and stays black
    return radiance, s


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_scanline(
    row: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.i32,
    jitter: ti.i32,
    mode: ti.i32,
):
    """Render every pixel of one scan line.

    Pixels run in parallel; each owns a random stream seeded from
    (seed, column, row) and sums its samples serially.

    Args:
        row: Scan line index, 0 = bottom.
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Number of camera rays per pixel.
        max_depth: Bounce budget per path.
        seed: Render seed.
        jitter: 1 to jitter samples inside the pixel, 0 to use the pixel corner.
        mode: A ShadingMode value.
    """
    for i in range(width):
        state = seed_state(seed, i, row)
        s_scale = 1.0 / ti.cast(ti.max(width - 1, 1), ti.f64)
        t_scale = 1.0 / ti.cast(ti.max(height - 1, 1), ti.f64)

        total = vec3(0.0, 0.0, 0.0)
        for _ in range(samples_per_pixel):
            jx = 0.0
            jy = 0.0
            if jitter != 0:
                jx, state = random_float(state)
                jy, state = random_float(state)

            s = (ti.cast(i, ti.f64) + jx) * s_scale
            t = (ti.cast(row, ti.f64) + jy) * t_scale

            ray, state = get_ray(s, t, state)
            color, state = trace_ray(ray.origin, ray.direction, max_depth, mode, state)
            total += color

        _color_sum[i, row] += total
        _sample_count[i, row] += samples_per_pixel


@ti.kernel
def _trace_single_ray(
    ox: ti.f64,
    oy: ti.f64,
    oz: ti.f64,
    dx: ti.f64,
    dy: ti.f64,
    dz: ti.f64,
    max_depth: ti.i32,
    mode: ti.i32,
    seed: ti.i32,
):
    """Trace one path from an explicit ray into _single_ray_result."""
    # Serial outer loop keeps the bounce loop from being parallelized
    for _ in range(1):
        state = seed_state(seed, 0, 0)
        color, state = trace_ray(vec3(ox, oy, oz), vec3(dx, dy, dz), max_depth, mode, state)
        _single_ray_result[None] = color


# =============================================================================
# Public Rendering API
# =============================================================================


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = DEFAULT_MAX_DEPTH,
    mode: ShadingMode = ShadingMode.PATH,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Trace one path from Python, for testing and debugging.

    Does not need a render target or a camera.

    Args:
        origin: The ray origin.
        direction: The ray direction.
        max_depth: Bounce budget.
        mode: Shading mode.
        seed: Seed for the path's random stream.

    Returns:
        Tuple of (R, G, B) radiance.
    """
    _trace_single_ray(
        origin[0],
        origin[1],
        origin[2],
        direction[0],
        direction[1],
        direction[2],
        max_depth,
        int(mode),
        seed,
    )
    color = _single_ray_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def render_scanline(
    row: int,
    samples_per_pixel: int = 1,
    max_depth: int = DEFAULT_MAX_DEPTH,
    seed: int = 0,
    jitter: bool = True,
    mode: ShadingMode = ShadingMode.PATH,
) -> None:
    """Render one scan line into the render target.

    Args:
        row: Scan line index, 0 = bottom.
        samples_per_pixel: Number of camera rays per pixel.
        max_depth: Bounce budget per path.
        seed: Render seed.
        jitter: Whether to jitter samples within the pixel.
        mode: Shading mode.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If row is outside the image.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    if not 0 <= row < height:
        raise ValueError(f"Scan line {row} is outside the image (height {height})")

    _render_scanline(
        row,
        width,
        height,
        samples_per_pixel,
        max_depth,
        seed,
        1 if jitter else 0,
        int(mode),
    )


def get_total_samples() -> int:
    """Get the number of samples accumulated in pixel (0, 0).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def _active_region(buffer: npt.NDArray) -> npt.NDArray:
    """Crop a (MAX_W, MAX_H, ...) buffer to the image, top row first."""
    width, height = get_image_dimensions()
    image = buffer[:width, :height]
    # (width, height, ...) -> (height, width, ...)
    image = np.swapaxes(image, 0, 1)
    # Row 0 is the bottom scan line; image rows run top to bottom
    return np.flipud(image)


def get_color_sum_numpy() -> npt.NDArray[np.float64]:
    """Get the raw per-pixel sums of sample colors.

    Returns:
        Array of shape (height, width, 3), top scan line first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return np.ascontiguousarray(_active_region(_color_sum.to_numpy())).astype(np.float64)


def get_sample_counts_numpy() -> npt.NDArray[np.int32]:
    """Get the per-pixel sample counts, shape (height, width), top row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return np.ascontiguousarray(_active_region(_sample_count.to_numpy())).astype(np.int32)


def get_image_numpy() -> npt.NDArray[np.float64]:
    """Get the rendered image as linear per-pixel means.

    Pixels that have not been rendered yet are black.

    Returns:
        Array of shape (height, width, 3), top scan line first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    sums = get_color_sum_numpy()
    counts = get_sample_counts_numpy().astype(np.float64)
    means = np.zeros_like(sums)
    rendered = counts > 0
    means[rendered] = sums[rendered] / counts[rendered][:, None]
    return means
