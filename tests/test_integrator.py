"""Tests for the path tracing integrator.

This module tests the core path tracing functionality including:
- Render target setup and management
- Sky gradient for escaping rays
- Path termination (depth budget, absorption, missing materials)
- Material dispatch (Lambertian, Metal, Dielectric)
- Normal shading end to end on a tiny image
- Sample accumulation and reproducibility

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run, so module-level
imports of modules containing ti.field() declarations would fail.
"""

import math

import numpy as np
import pytest
import taichi as ti

SKY_BLUE = np.array([0.5, 0.7, 1.0])


def _expected_sky(direction):
    d = np.asarray(direction, dtype=np.float64)
    t = 0.5 * (d[1] / np.linalg.norm(d) + 1.0)
    return (1.0 - t) * np.ones(3) + t * SKY_BLUE


def _reference_normal_color(origin, direction, spheres):
    """Closest-hit (n + 1) / 2 shading in float64, sky on a miss."""
    origin = np.asarray(origin, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    closest = math.inf
    color = _expected_sky(direction)
    for center, radius in spheres:
        oc = origin - np.asarray(center)
        a = direction @ direction
        half_b = oc @ direction
        c = oc @ oc - radius * radius
        disc = half_b * half_b - a * c
        if disc < 0:
            continue
        for root in ((-half_b - math.sqrt(disc)) / a, (-half_b + math.sqrt(disc)) / a):
            if 0.001 <= root < closest:
                closest = root
                point = origin + root * direction
                outward = (point - np.asarray(center)) / radius
                normal = outward if direction @ outward < 0 else -outward
                color = 0.5 * (normal + 1.0)
                break
    return color


def _setup_normals_scene(width, height):
    from skypath.camera.thin_lens import setup_camera
    from skypath.core.integrator import setup_render_target
    from skypath.scene.presets import create_normals_scene

    _, camera = create_normals_scene(aspect_ratio=width / height)
    setup_camera(camera)
    setup_render_target(width, height)


def _render_all(**kwargs):
    from skypath.core.integrator import get_image_dimensions, render_scanline

    _, height = get_image_dimensions()
    for row in range(height - 1, -1, -1):
        render_scanline(row, **kwargs)


class TestRenderTargetSetup:
    """Test render target initialization and management."""

    def test_setup_render_target_sets_dimensions(self):
        from skypath.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)

    @pytest.mark.parametrize("size", [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_setup_render_target_rejects_bad_sizes(self, size):
        from skypath.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(*size)

    def test_render_before_setup_raises(self):
        from skypath.core.integrator import _render_target_initialized, render_scanline

        _render_target_initialized[None] = 0
        with pytest.raises(RuntimeError):
            render_scanline(0)

    def test_clear_render_target(self):
        from skypath.core.integrator import clear_render_target, get_total_samples

        _setup_normals_scene(8, 8)
        _render_all(samples_per_pixel=2)
        assert get_total_samples() == 2

        clear_render_target()
        assert get_total_samples() == 0

    def test_render_scanline_rejects_row_outside_image(self):
        from skypath.core.integrator import render_scanline

        _setup_normals_scene(8, 8)
        with pytest.raises(ValueError):
            render_scanline(8)


class TestSky:
    """Tests for the background gradient."""

    @pytest.mark.parametrize(
        "direction",
        [(0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (1.0, 0.0, 0.0), (0.3, 0.5, -2.0)],
    )
    def test_sky_color(self, direction):
        from skypath.core.integrator import sky_color

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sky_color(ti.math.vec3(direction[0], direction[1], direction[2]))

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), _expected_sky(direction), atol=1e-6)

    def test_empty_scene_returns_sky(self):
        from skypath.core.integrator import trace_single_ray

        color = trace_single_ray((0.0, 0.0, 0.0), (0.0, 2.0, 0.0))
        np.testing.assert_allclose(color, SKY_BLUE, atol=1e-6)


class TestPathTermination:
    """Tests for the ways a path ends."""

    def test_zero_depth_is_black(self):
        from skypath.core.integrator import trace_single_ray

        color = trace_single_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), max_depth=0)
        assert color == (0.0, 0.0, 0.0)

    def test_sphere_without_material_absorbs(self):
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0.0, 0.0, -2.0), 1.0, None)

        color = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert color == (0.0, 0.0, 0.0)

    def test_enclosed_diffuse_exhausts_depth(self):
        """Inside a closed diffuse sphere no path escapes."""
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, 0.0), 10.0, (1.0, 1.0, 1.0))

        color = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), max_depth=5)
        assert color == (0.0, 0.0, 0.0)

    def test_metal_below_surface_absorbs(self):
        """Grazing reflection off full-fuzz metal: only sky or black is possible."""
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -1000.0, 0.0), 1000.0, (1.0, 1.0, 1.0), fuzz=1.0)

        colors = np.array(
            [
                trace_single_ray((0.0, 1.0, 0.0), (1.0, -0.1, 0.0), seed=seed)
                for seed in range(32)
            ]
        )
        black = np.all(colors == 0.0, axis=1)
        assert black.any()
        # Escaped paths keep the white albedo, so blue is exactly 1
        np.testing.assert_allclose(colors[~black][:, 2], 1.0, atol=1e-5)


class TestMaterialDispatch:
    """Tests for scattering through each material kind."""

    def test_mirror_reflects_sky(self):
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5), fuzz=0.0)

        color = trace_single_ray((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))
        np.testing.assert_allclose(color, 0.5 * SKY_BLUE, atol=1e-5)

    def test_mirror_angle_symmetry(self):
        """Reflecting at 45 degrees off a flat mirror sees the sky at +45 degrees."""
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -1000.0, 0.0), 1000.0, (1.0, 1.0, 1.0), fuzz=0.0)

        color = trace_single_ray((0.0, 1.0, 0.0), (1.0, -1.0, 0.0))
        np.testing.assert_allclose(color, _expected_sky((1.0, 1.0, 0.0)), atol=1e-3)

    def test_glass_never_absorbs(self):
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -3.0), 1.0, 1.5)

        for seed in range(16):
            color = trace_single_ray((0.0, 0.0, 0.0), (0.1, 0.05, -1.0), seed=seed)
            assert abs(color[2] - 1.0) < 1e-5
            assert min(color) >= 0.5 - 1e-5

    def test_diffuse_attenuates_by_albedo(self):
        """A single diffuse bounce off a huge ground sphere picks up the albedo."""
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.25, 0.0))

        color = trace_single_ray((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), seed=9)
        # Blue albedo is zero; red is albedo times a sky channel in [0.5, 1]
        assert color[2] == 0.0
        assert 0.0 < color[0] <= 0.5 + 1e-6
        assert 0.0 < color[1] <= color[0] + 1e-6

    def test_ground_bounce_escapes_after_one_hit(self):
        """Paths off a large convex ground sphere bounce exactly once.

        A second hit would multiply in the albedo again and pull red below
        albedo * 0.5, the smallest red the sky can contribute.
        """
        from skypath.core.integrator import trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5))

        for seed in range(60):
            for x in (-6.0, -1.5, 0.0, 2.5, 8.0):
                color = trace_single_ray((x, 1.0, 2.0), (0.3, -1.0, 0.2), seed=seed)
                assert 0.25 - 1e-9 <= color[0] <= 0.5 + 1e-9


class TestNormalShading:
    """End-to-end renders in normal-shading mode."""

    def test_normals_4x4_matches_hand_computation(self):
        from skypath.core.integrator import ShadingMode, get_image_numpy

        _setup_normals_scene(4, 4)
        _render_all(samples_per_pixel=1, jitter=False, mode=ShadingMode.NORMALS)
        image = get_image_numpy()

        spheres = [((0.0, 0.0, -1.0), 0.5), ((0.0, -100.5, -1.0), 100.0)]
        for r in range(4):
            row = 3 - r  # image rows run top to bottom
            for x in range(4):
                direction = (-1.0 + 2.0 * x / 3.0, -1.0 + 2.0 * row / 3.0, -1.0)
                expected = _reference_normal_color((0.0, 0.0, 0.0), direction, spheres)
                np.testing.assert_allclose(image[r, x], expected, atol=1e-3)

    def test_normals_mode_ignores_materials(self):
        from skypath.core.integrator import ShadingMode, trace_single_ray
        from skypath.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.1, 0.1, 0.1))

        color = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), mode=ShadingMode.NORMALS)
        np.testing.assert_allclose(color, (0.5, 0.5, 1.0), atol=1e-6)


class TestAccumulation:
    """Tests for sample sums and reproducibility."""

    def test_sum_divided_by_count_is_image(self):
        from skypath.core.integrator import (
            ShadingMode,
            get_color_sum_numpy,
            get_image_numpy,
            get_sample_counts_numpy,
        )

        _setup_normals_scene(6, 4)
        _render_all(samples_per_pixel=4, mode=ShadingMode.NORMALS)

        counts = get_sample_counts_numpy()
        assert counts.shape == (4, 6)
        assert np.all(counts == 4)
        np.testing.assert_allclose(get_color_sum_numpy() / 4.0, get_image_numpy(), atol=1e-6)

    def test_unjittered_samples_repeat_single_sample(self):
        """Without jitter every sample of a normals render is identical."""
        from skypath.core.integrator import (
            ShadingMode,
            clear_render_target,
            get_color_sum_numpy,
        )

        _setup_normals_scene(4, 4)
        _render_all(samples_per_pixel=1, jitter=False, mode=ShadingMode.NORMALS)
        single = get_color_sum_numpy()

        clear_render_target()
        _render_all(samples_per_pixel=5, jitter=False, mode=ShadingMode.NORMALS)
        np.testing.assert_allclose(get_color_sum_numpy(), 5.0 * single, rtol=1e-5)

    def test_same_seed_reproduces_image(self):
        from skypath.camera.thin_lens import setup_camera
        from skypath.core.integrator import (
            clear_render_target,
            get_image_numpy,
            setup_render_target,
        )
        from skypath.scene.presets import create_three_spheres_scene

        _, camera = create_three_spheres_scene(aspect_ratio=1.0)
        setup_camera(camera)
        setup_render_target(8, 8)

        _render_all(samples_per_pixel=3, max_depth=10, seed=5)
        first = get_image_numpy()

        clear_render_target()
        _render_all(samples_per_pixel=3, max_depth=10, seed=5)
        np.testing.assert_array_equal(get_image_numpy(), first)

        clear_render_target()
        _render_all(samples_per_pixel=3, max_depth=10, seed=6)
        assert not np.array_equal(get_image_numpy(), first)

