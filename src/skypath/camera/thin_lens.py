"""Thin-lens camera model with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from look_at toward position (opposite the view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport is placed on the focus plane, focus_distance in front of the
camera. Ray origins are jittered over a lens disk of radius aperture / 2 and
every ray is aimed at the same point on the focus plane, so objects at the
focus distance stay sharp while nearer and farther objects blur. With
aperture = 0 the model reduces to a pinhole camera.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.camera.thin_lens import ThinLensCamera, setup_camera, get_ray
    >>>
    >>> camera = ThinLensCamera(
    ...     position=(13.0, 2.0, 3.0),
    ...     look_at=(0.0, 0.0, 0.0),
    ...     up=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=3.0 / 2.0,
    ...     aperture=0.1,
    ...     focus_distance=10.0,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render(out: ti.template()):
    ...     for i in range(out.shape[0]):
    ...         state = seed_state(0, i, 0)
    ...         ray, state = get_ray(0.5, 0.5, state)  # Ray through image center
    ...         out[i] = ray.direction
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from skypath.core.ray import make_ray, vec3
from skypath.core.rng import random_in_unit_disk

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (depth of field) camera.

    All fields are required.

    Attributes:
        position: Camera position in world space (x, y, z).
        look_at: Point the camera is looking at in world space (x, y, z).
        up: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_distance: Distance from the lens to the plane in perfect focus.
    """

    position: tuple[float, float, float]
    look_at: tuple[float, float, float]
    up: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float
    focus_distance: float

    def validate(self) -> None:
        """Check the configuration for values that give no usable camera.

        Raises:
            ValueError: If a parameter is out of range or the view basis is
                degenerate.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if self.focus_distance <= 0.0:
            raise ValueError(
                f"focus_distance must be positive, got {self.focus_distance}"
            )

        view = np.subtract(self.position, self.look_at)
        if np.linalg.norm(view) == 0.0:
            raise ValueError("position and look_at must differ")
        if np.linalg.norm(np.cross(self.up, view)) == 0.0:
            raise ValueError("up must not be parallel to the view direction")


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

# Camera origin (position)
_camera_origin = ti.Vector.field(3, dtype=ti.f64, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f64, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f64, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f64, shape=())  # Backward (opposite view)

# Viewport vectors on the focus plane
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f64, shape=())  # Full width
_viewport_vertical = ti.Vector.field(3, dtype=ti.f64, shape=())  # Full height
_lower_left_corner = ti.Vector.field(3, dtype=ti.f64, shape=())  # Lower-left of viewport

_lens_radius = ti.field(dtype=ti.f64, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Initialize camera state from configuration.

    Computes the orthonormal basis, the focus-plane viewport and the lens
    radius, and stores them in Taichi fields. Must be called before
    rendering.

    Args:
        camera: Camera configuration.

    Raises:
        ValueError: If the configuration is invalid (see ThinLensCamera.validate).
    """
    camera.validate()

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    position = np.array(camera.position, dtype=np.float64)
    look_at = np.array(camera.look_at, dtype=np.float64)
    up = np.array(camera.up, dtype=np.float64)

    w = position - look_at
    w = w / np.linalg.norm(w)

    u = np.cross(up, w)
    u = u / np.linalg.norm(u)

    v = np.cross(w, u)

    focus = camera.focus_distance
    horizontal = focus * viewport_width * u
    vertical = focus * viewport_height * v
    lower_left = position - horizontal / 2.0 - vertical / 2.0 - focus * w

    _camera_origin[None] = position.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f64, t: ti.f64, state: ti.u32):
    """Generate a ray through normalized image coordinates (s, t).

    - s = 0: left edge, s = 1: right edge
    - t = 0: bottom edge, t = 1: top edge

    A lens sample is drawn even for a pinhole camera so the random stream
    advances identically for every aperture.

    Args:
        s: Horizontal coordinate in [0, 1].
        t: Vertical coordinate in [0, 1].
        state: The random stream state.

    Returns:
        A tuple (ray, state). The ray direction is not normalized.
    """
    disk, new_state = random_in_unit_disk(state)
    rd = _lens_radius[None] * disk
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None]
    target = (
        _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    )
    ray = make_ray(origin + offset, target - origin - offset)
    return ray, new_state


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left and
        lens_radius.
    """

    def _triple(vector_field) -> tuple[float, float, float]:
        value = vector_field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _triple(_camera_origin),
        "u": _triple(_camera_u),
        "v": _triple(_camera_v),
        "w": _triple(_camera_w),
        "horizontal": _triple(_viewport_horizontal),
        "vertical": _triple(_viewport_vertical),
        "lower_left": _triple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
