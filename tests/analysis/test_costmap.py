"""Tests for cost-landscape sampling and the cost-map cache."""

from __future__ import annotations

import tempfile
from pathlib import Path

import numpy as np
import pytest

from wavenet.analysis import (
    CostMapSampler,
    cost_map_base_name,
    cost_map_paths,
    grid_axis,
    load_or_sample_cost_maps,
    step_for_extent,
)
from wavenet.errors import ShapeError
from wavenet.experiments import RunConfig
from wavenet.filters import get_filter
from wavenet.training import CostEvaluator


def _examples(count=2, shape=(8, 8), seed=0):
    return np.random.default_rng(seed).standard_normal((count, *shape)).astype(np.float32)


def test_grid_axis_is_centred():
    """Test grid offsets are centred on zero."""
    assert np.allclose(grid_axis(0.5, 5), [-1.0, -0.5, 0.0, 0.5, 1.0])
    assert np.allclose(grid_axis(0.5, 4), [-0.75, -0.25, 0.25, 0.75])
    assert np.allclose(grid_axis(1.0, 1), [0.0])


def test_step_for_extent_spans_window():
    """Test the step puts the end points at the window edges."""
    step = step_for_extent(1.2, 300)
    axis = grid_axis(step, 300)
    assert np.isclose(axis[0], -1.2, atol=1e-5)
    assert np.isclose(axis[-1], 1.2, atol=1e-5)
    assert step_for_extent(1.2, 1) == 0.0


def test_sampler_requires_two_coefficients():
    """Test cost maps need at least two coefficients."""
    with pytest.raises(ShapeError):
        CostMapSampler(CostEvaluator(), [1.0])


def test_sampler_rejects_empty_grid():
    """Test a zero-sized grid is rejected."""
    sampler = CostMapSampler(CostEvaluator(), get_filter('haar'))
    with pytest.raises(ValueError):
        sampler.sample(_examples(), 0.1, 0)


def test_maps_index_first_then_second_coefficient():
    """Test maps[i, j] offsets coefficient 1 by axis i and coefficient 2 by axis j."""
    evaluator = CostEvaluator()
    baseline = get_filter('db2')
    examples = _examples()
    maps = CostMapSampler(evaluator, baseline).sample(examples, 0.1, 3)

    assert maps.combined.shape == (3, 3)
    assert np.isclose(maps.combined[1, 1], evaluator.evaluate(baseline, examples), rtol=1e-4)

    shifted = baseline.copy()
    shifted[0] += 0.1
    shifted[1] -= 0.1
    expected = evaluator.terms(shifted, examples)
    assert np.isclose(maps.sparsity[2, 0], expected.sparsity, rtol=1e-4)
    assert np.isclose(maps.regularization[2, 0], expected.regularization, rtol=1e-3, atol=1e-6)
    assert np.isclose(maps.combined[2, 0], expected.combined, rtol=1e-4)


def test_full_resolution_map_on_two_coefficient_filter():
    """Test a 300x300 map is finite and deterministic."""
    sampler = CostMapSampler(CostEvaluator(), get_filter('haar'))
    examples = _examples(shape=(4, 4))
    step = step_for_extent(1.2, 300)

    first = sampler.sample(examples, step, 300)
    second = sampler.sample(examples, step, 300)

    for a, b in zip(first, second):
        assert a.shape == (300, 300)
        assert np.all(np.isfinite(a))
        assert np.array_equal(a, b)
    assert np.allclose(first.combined, first.sparsity + 10.0 * first.regularization, rtol=1e-4, atol=1e-5)


def test_regularization_minimum_on_unit_circle():
    """A two-coefficient filter is orthonormal exactly on the unit circle."""
    sampler = CostMapSampler(CostEvaluator(), [0.0, 0.0])
    maps = sampler.sample(_examples(shape=(4, 4)), step_for_extent(1.2, 25), 25)
    i, j = np.unravel_index(np.argmin(maps.regularization), maps.regularization.shape)
    axis = grid_axis(step_for_extent(1.2, 25), 25)
    assert np.isclose(abs(axis[i]) ** 2 + abs(axis[j]) ** 2, 1.0, atol=0.15)


def test_cost_map_file_names():
    """Test cost map cache file names."""
    assert cost_map_base_name('Run.Needle.N4') == 'Run.Needle'
    paths = cost_map_paths('maps', 'Run.Needle.N16')
    assert paths.sparsity == Path('maps') / 'costMapSparse.Run.Needle.npy'
    assert paths.combined == Path('maps') / 'costMap.Run.Needle.npy'
    assert paths.regularization == Path('maps') / 'costMapReg.Run.Needle.npy'


def test_load_or_sample_uses_cache():
    """Test cached maps are reused and resampled on a size change."""
    sampler = CostMapSampler(CostEvaluator(), get_filter('haar'))
    examples = _examples(shape=(4, 4))
    with tempfile.TemporaryDirectory() as tmpdir:
        maps = load_or_sample_cost_maps(sampler, examples, 0.1, 5, tmpdir, 'Run.Needle.N2')
        assert all(Path(p).is_file() for p in cost_map_paths(tmpdir, 'Run.Needle.N2'))

        np.save(cost_map_paths(tmpdir, 'Run.Needle.N2').combined, np.full((5, 5), 7.0))
        cached = load_or_sample_cost_maps(sampler, examples, 0.1, 5, tmpdir, 'Run.Needle.N2')
        assert np.all(cached.combined == 7.0)
        assert np.array_equal(cached.sparsity, maps.sparsity)

        resampled = load_or_sample_cost_maps(sampler, examples, 0.1, 3, tmpdir, 'Run.Needle.N2')
        assert resampled.combined.shape == (3, 3)


def test_cost_map_cache_is_shared_across_filter_sizes():
    """Test runs that differ only in filter size share one cost map cache."""
    small = RunConfig(num_coeffs=2, output_dir='out')
    large = RunConfig(num_coeffs=4, output_dir='out')
    paths = cost_map_paths(small.output_dir, small.project)
    assert paths == cost_map_paths(large.output_dir, large.project)
    assert paths.combined.parent == Path('out')
    assert small.run_dir != large.run_dir
