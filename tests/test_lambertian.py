"""Unit tests for the Lambertian material module.

Tests cover:
- Scattered directions stay in the hemisphere of the normal
- Attenuation equals albedo and the path always continues
- Cosine-weighted distribution of scattered directions
- Material registry operations and albedo validation
"""

import numpy as np
import pytest
import taichi as ti

N_SAMPLES = 4096


class TestScatterLambertian:
    """Tests for the scatter function."""

    def test_scatter_stays_above_surface(self):
        from skypath.core.rng import seed_state
        from skypath.materials.lambertian import scatter_lambertian

        directions = ti.Vector.field(3, dtype=ti.f64, shape=N_SAMPLES)
        attenuations = ti.Vector.field(3, dtype=ti.f64, shape=N_SAMPLES)
        scattered = ti.field(dtype=ti.i32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(11, i, 0)
                direction, attenuation, did_scatter, state = scatter_lambertian(
                    ti.math.vec3(0.2, 0.4, 0.6), ti.math.vec3(0.0, 1.0, 0.0), state
                )
                directions[i] = direction
                attenuations[i] = attenuation
                scattered[i] = did_scatter

        test_kernel()
        d = directions.to_numpy()
        # normal + unit vector lies in the closed upper hemisphere
        assert np.all(d[:, 1] >= -1e-6)
        np.testing.assert_allclose(attenuations.to_numpy(), [[0.2, 0.4, 0.6]] * N_SAMPLES, atol=1e-6)
        assert np.all(scattered.to_numpy() == 1)

    def test_scatter_is_cosine_weighted(self):
        """E[cos theta] of a cosine-weighted hemisphere is 2/3."""
        from skypath.core.rng import seed_state
        from skypath.materials.lambertian import scatter_lambertian

        cosines = ti.field(dtype=ti.f64, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(12, i, 0)
                direction, attenuation, did_scatter, state = scatter_lambertian(
                    ti.math.vec3(1.0, 1.0, 1.0), ti.math.vec3(0.0, 0.0, 1.0), state
                )
                cosines[i] = ti.math.normalize(direction).z

        test_kernel()
        assert abs(cosines.to_numpy().mean() - 2.0 / 3.0) < 0.03

    def test_degenerate_direction_falls_back_to_normal(self):
        """An offset that cancels the normal yields the normal itself."""
        from skypath.materials.lambertian import diffuse_direction

        results = ti.Vector.field(3, dtype=ti.f64, shape=3)

        @ti.kernel
        def test_kernel():
            normal = ti.math.vec3(0.0, 0.6, 0.8)
            results[0] = diffuse_direction(normal, -normal)
            results[1] = diffuse_direction(normal, -normal + ti.math.vec3(1e-10, 0.0, 0.0))
            results[2] = diffuse_direction(normal, ti.math.vec3(1.0, 0.0, 0.0))

        test_kernel()
        np.testing.assert_allclose(results[0].to_numpy(), [0.0, 0.6, 0.8], atol=1e-12)
        np.testing.assert_allclose(results[1].to_numpy(), [0.0, 0.6, 0.8], atol=1e-12)
        # Non-degenerate sums are left alone
        np.testing.assert_allclose(results[2].to_numpy(), [1.0, 0.6, 0.8], atol=1e-12)


class TestLambertianRegistry:
    """Tests for the material registry."""

    def test_add_and_read_back(self):
        from skypath.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_albedo,
            get_lambertian_material_count,
        )

        idx0 = add_lambertian_material((0.1, 0.2, 0.3))
        idx1 = add_lambertian_material((0.5, 0.5, 0.5))
        assert (idx0, idx1) == (0, 1)
        assert get_lambertian_material_count() == 2

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = get_lambertian_albedo(0)

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [0.1, 0.2, 0.3], atol=1e-6)

    def test_scatter_by_id_uses_registry(self):
        from skypath.core.rng import seed_state
        from skypath.materials.lambertian import add_lambertian_material, scatter_lambertian_by_id

        add_lambertian_material((0.9, 0.1, 0.1))
        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                state = seed_state(0, 0, 0)
                direction, attenuation, did_scatter, state = scatter_lambertian_by_id(
                    0, ti.math.vec3(0.0, 1.0, 0.0), state
                )
                result[None] = attenuation

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [0.9, 0.1, 0.1], atol=1e-6)

    def test_albedo_out_of_range_rejected(self):
        from skypath.materials.lambertian import add_lambertian_material

        with pytest.raises(ValueError):
            add_lambertian_material((1.2, 0.5, 0.5))
        with pytest.raises(ValueError):
            add_lambertian_material((0.5, -0.1, 0.5))

    def test_clear(self):
        from skypath.materials.lambertian import (
            add_lambertian_material,
            clear_lambertian_materials,
            get_lambertian_material_count,
        )

        add_lambertian_material((0.5, 0.5, 0.5))
        clear_lambertian_materials()
        assert get_lambertian_material_count() == 0
