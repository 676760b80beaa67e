"""Built-in scene configurations.

Each factory clears the current scene, fills it through a SceneManager and
returns the manager together with a ThinLensCamera framed for the scene.
The camera still has to be passed to setup_camera() before rendering.

Scenes:
    normals: A small sphere resting on a giant ground sphere, no materials.
        Meant for the NORMALS shading mode.
    three-spheres: Diffuse, hollow glass and metal spheres on a ground sphere.
    random: The classic final scene, a field of small random spheres around
        three large feature spheres, with depth of field.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.scene.presets import create_random_scene
    >>> from skypath.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_scene(aspect_ratio=3.0 / 2.0, seed=7)
    >>> setup_camera(camera)
"""

import json
from collections.abc import Callable
from dataclasses import fields
from pathlib import Path
from typing import Any

import numpy as np

from skypath.camera.thin_lens import ThinLensCamera
from skypath.scene.manager import SceneManager, as_float, as_triple

# =============================================================================
# Scene Constants
# =============================================================================

DEFAULT_ASPECT_RATIO = 16.0 / 9.0

GROUND_CENTER = (0.0, -100.5, -1.0)
GROUND_RADIUS = 100.0

# Three-spheres scene materials
THREE_SPHERES_GROUND_ALBEDO = (0.8, 0.8, 0.0)
THREE_SPHERES_CENTER_ALBEDO = (0.1, 0.2, 0.5)
THREE_SPHERES_METAL_ALBEDO = (0.8, 0.6, 0.2)
GLASS_IOR = 1.5

# Random scene layout
RANDOM_GRID_EXTENT = 11  # small spheres on integer cells in [-11, 11)
RANDOM_SMALL_RADIUS = 0.2
RANDOM_GROUND_ALBEDO = (0.5, 0.5, 0.5)
RANDOM_DIFFUSE_PROBABILITY = 0.8
RANDOM_METAL_PROBABILITY = 0.15  # remaining 5 % are glass
# Small spheres closer than this to the metal feature sphere are skipped
RANDOM_CLEARANCE = 0.9
RANDOM_CLEARANCE_POINT = np.array([4.0, 0.2, 0.0])

SceneFactory = Callable[..., tuple[SceneManager, ThinLensCamera]]


def _pinhole_at_origin(aspect_ratio: float) -> ThinLensCamera:
    """Camera at the origin looking down -z with a 90 degree field of view."""
    return ThinLensCamera(
        position=(0.0, 0.0, 0.0),
        look_at=(0.0, 0.0, -1.0),
        up=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_distance=1.0,
    )


# =============================================================================
# Scene Factories
# =============================================================================


def create_normals_scene(
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the two-sphere scene used for normal visualization.

    A sphere of radius 0.5 at (0, 0, -1) sits on a ground sphere of radius
    100 centered at (0, -100.5, -1). Neither sphere has a material, so in
    PATH mode both absorb every ray.

    Args:
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene_manager, camera).
    """
    scene = SceneManager()
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, None)
    scene.add_sphere(GROUND_CENTER, GROUND_RADIUS, None)
    return scene, _pinhole_at_origin(aspect_ratio)


def create_three_spheres_scene(
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the diffuse / hollow glass / metal sphere scene.

    The left sphere is a glass shell: an outer sphere of radius 0.5 and an
    inner one of radius -0.4 sharing a single dielectric material.

    Args:
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene_manager, camera).
    """
    scene = SceneManager()

    ground = scene.add_lambertian_material(THREE_SPHERES_GROUND_ALBEDO)
    center = scene.add_lambertian_material(THREE_SPHERES_CENTER_ALBEDO)
    glass = scene.add_dielectric_material(GLASS_IOR)
    metal = scene.add_metal_material(THREE_SPHERES_METAL_ALBEDO, fuzz=0.0)

    scene.add_sphere(GROUND_CENTER, GROUND_RADIUS, ground)
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), -0.4, glass)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, metal)

    return scene, _pinhole_at_origin(aspect_ratio)


def create_random_scene(
    aspect_ratio: float = 3.0 / 2.0,
    seed: int = 0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random sphere field.

    A grey ground sphere carries one small sphere per grid cell in
    [-11, 11) x [-11, 11), each jittered inside its cell. Small spheres are
    80 % diffuse with albedo the product of two random colors, 15 % metal
    with albedo in [0.5, 1) and fuzz in [0, 0.5), and 5 % glass. Three large
    spheres (glass, diffuse brown, polished metal) sit in the middle.

    Args:
        aspect_ratio: Image width divided by height.
        seed: Seed for the scene layout. Independent of the render seed.

    Returns:
        Tuple of (scene_manager, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, RANDOM_GROUND_ALBEDO)

    glass = None
    for a in range(-RANDOM_GRID_EXTENT, RANDOM_GRID_EXTENT):
        for b in range(-RANDOM_GRID_EXTENT, RANDOM_GRID_EXTENT):
            choose_mat = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), RANDOM_SMALL_RADIUS, b + 0.9 * rng.random()]
            )
            if np.linalg.norm(center - RANDOM_CLEARANCE_POINT) <= RANDOM_CLEARANCE:
                continue

            position = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < RANDOM_DIFFUSE_PROBABILITY:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(
                    position, RANDOM_SMALL_RADIUS, tuple(float(c) for c in albedo)
                )
            elif choose_mat < RANDOM_DIFFUSE_PROBABILITY + RANDOM_METAL_PROBABILITY:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(
                    position, RANDOM_SMALL_RADIUS, tuple(float(c) for c in albedo), fuzz
                )
            else:
                # All glass spheres share one material
                if glass is None:
                    glass = scene.add_dielectric_material(GLASS_IOR)
                scene.add_sphere(position, RANDOM_SMALL_RADIUS, glass)

    if glass is None:
        glass = scene.add_dielectric_material(GLASS_IOR)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, (0.4, 0.2, 0.1))
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), fuzz=0.0)

    camera = ThinLensCamera(
        position=(13.0, 2.0, 3.0),
        look_at=(0.0, 0.0, 0.0),
        up=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_distance=10.0,
    )
    return scene, camera


# =============================================================================
# Scene Files
# =============================================================================


def load_scene_file(
    filepath: str | Path,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Load a scene from a JSON file.

    The file holds "materials" and "spheres" lists in the SceneManager
    dictionary format, and an optional "camera" object with ThinLensCamera
    fields (aspect_ratio is always taken from the argument). Without a
    camera entry the scene is viewed from the origin down -z.

    Args:
        filepath: Path to the JSON scene file.
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene_manager, camera).

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or holds invalid scene data.
    """
    try:
        data = json.loads(Path(filepath).read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid scene file {filepath}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Scene file {filepath} must contain a JSON object")

    scene = SceneManager()
    scene.from_dict(data)

    camera = _pinhole_at_origin(aspect_ratio)
    camera_data = data.get("camera")
    if camera_data is not None:
        if not isinstance(camera_data, dict):
            raise ValueError(f"Camera entry must be an object, got {camera_data!r}")
        allowed = {f.name for f in fields(ThinLensCamera)} - {"aspect_ratio"}
        unknown = set(camera_data) - allowed
        if unknown:
            raise ValueError(f"Unknown camera fields: {sorted(unknown)}")
        params: dict[str, Any] = {
            "position": camera.position,
            "look_at": camera.look_at,
            "up": camera.up,
            "vfov": camera.vfov,
            "aperture": camera.aperture,
            "focus_distance": camera.focus_distance,
        }
        params.update(camera_data)
        for key in ("position", "look_at", "up"):
            params[key] = as_triple(params[key], key)
        for key in ("vfov", "aperture", "focus_distance"):
            params[key] = as_float(params[key], key)
        camera = ThinLensCamera(aspect_ratio=aspect_ratio, **params)

    return scene, camera


SCENES: dict[str, SceneFactory] = {
    "random": create_random_scene,
    "three-spheres": create_three_spheres_scene,
    "normals": create_normals_scene,
}


def create_scene(
    name: str,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
    seed: int = 0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a built-in scene by name.

    Raises:
        ValueError: If the name is not a key of SCENES.
    """
    if name not in SCENES:
        raise ValueError(f"Unknown scene {name!r}, expected one of {sorted(SCENES)}")
    if name == "random":
        return create_random_scene(aspect_ratio, seed=seed)
    return SCENES[name](aspect_ratio)
