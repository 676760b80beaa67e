"""Unit tests for the explicit random streams.

Tests cover:
- Reproducibility from a seed
- Independence of streams for different pixels
- Ranges of floats, sphere, unit-vector and disk samples
"""

import numpy as np
import taichi as ti

N_SAMPLES = 4096


class TestStreams:
    """Tests for seeding and advancing streams."""

    def test_same_seed_same_sequence(self):
        from skypath.core.rng import random_float, seed_state

        result = ti.field(dtype=ti.f64, shape=(2, 8))

        @ti.kernel
        def test_kernel():
            for k in range(2):
                state = seed_state(123, 4, 5)
                for i in range(8):
                    u, state = random_float(state)
                    result[k, i] = u

        test_kernel()
        values = result.to_numpy()
        np.testing.assert_array_equal(values[0], values[1])

    def test_different_pixels_different_sequences(self):
        from skypath.core.rng import random_float, seed_state

        result = ti.field(dtype=ti.f64, shape=(3, 8))

        @ti.kernel
        def test_kernel():
            for k in range(3):
                state = seed_state(7, k, 0)
                if k == 2:
                    state = seed_state(8, 0, 0)
                for i in range(8):
                    u, state = random_float(state)
                    result[k, i] = u

        test_kernel()
        values = result.to_numpy()
        assert not np.array_equal(values[0], values[1])
        assert not np.array_equal(values[0], values[2])

    def test_seed_state_is_never_zero(self):
        from skypath.core.rng import seed_state

        zeros = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            for i in range(64):
                for j in range(64):
                    if seed_state(0, i, j) == ti.u32(0):
                        zeros[None] += 1

        test_kernel()
        assert zeros[None] == 0


class TestSampleRanges:
    """Tests for the ranges and distributions of samples."""

    def test_random_float_in_unit_interval(self):
        from skypath.core.rng import random_float, seed_state

        result = ti.field(dtype=ti.f64, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(1, i, 0)
                u, state = random_float(state)
                result[i] = u

        test_kernel()
        values = result.to_numpy()
        assert values.min() >= 0.0
        assert values.max() < 1.0
        assert abs(values.mean() - 0.5) < 0.03

    def test_random_range(self):
        from skypath.core.rng import random_range, seed_state

        result = ti.field(dtype=ti.f64, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(2, i, 0)
                v, state = random_range(-3.0, 5.0, state)
                result[i] = v

        test_kernel()
        values = result.to_numpy()
        assert values.min() >= -3.0
        assert values.max() < 5.0

    def test_random_in_unit_sphere(self):
        from skypath.core.rng import random_in_unit_sphere, seed_state

        result = ti.Vector.field(3, dtype=ti.f64, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(3, i, 0)
                p, state = random_in_unit_sphere(state)
                result[i] = p

        test_kernel()
        points = result.to_numpy()
        assert np.all(np.linalg.norm(points, axis=1) < 1.0)
        # All octants are covered
        assert np.all(np.abs(points.mean(axis=0)) < 0.05)
        assert (points < 0).any(axis=0).all()

    def test_random_unit_vector(self):
        from skypath.core.rng import random_unit_vector, seed_state

        result = ti.Vector.field(3, dtype=ti.f64, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(4, i, 0)
                v, state = random_unit_vector(state)
                result[i] = v

        test_kernel()
        lengths = np.linalg.norm(result.to_numpy(), axis=1)
        np.testing.assert_allclose(lengths, 1.0, atol=1e-5)

    def test_random_in_unit_disk(self):
        from skypath.core.rng import random_in_unit_disk, seed_state

        result = ti.Vector.field(3, dtype=ti.f64, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                state = seed_state(5, i, 0)
                p, state = random_in_unit_disk(state)
                result[i] = p

        test_kernel()
        points = result.to_numpy()
        assert np.all(points[:, 2] == 0.0)
        assert np.all(points[:, 0] ** 2 + points[:, 1] ** 2 < 1.0)
