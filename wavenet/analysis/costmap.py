"""Cost landscape over the first two filter coefficients.

The sampler perturbs coefficients 1 and 2 of a baseline filter on a square
grid, holding the others fixed, and evaluates all three cost variants at
every grid point. Rows are evaluated with jax.lax.map over a vmapped row
kernel, so memory stays bounded by one row of filters.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np

from wavenet.errors import ShapeError
from wavenet.training.cost import CostEvaluator


class CostMaps(NamedTuple):
    """Three (grid_size, grid_size) maps sampled on the same grid."""
    sparsity: np.ndarray
    combined: np.ndarray
    regularization: np.ndarray


def grid_axis(step: float, grid_size: int) -> np.ndarray:
    """Offsets (k - (grid_size - 1) / 2) * step for k in range(grid_size) (pure function)."""
    if grid_size < 1:
        raise ValueError(f"grid_size must be >= 1, got {grid_size}")
    k = np.arange(grid_size, dtype=np.float64)
    return ((k - (grid_size - 1) / 2.0) * step).astype(np.float32)


def step_for_extent(extent: float, grid_size: int) -> float:
    """Step that spans [-extent, extent] with grid_size samples (pure function)."""
    if grid_size < 2:
        return 0.0
    return 2.0 * float(extent) / (grid_size - 1)


class CostMapSampler:
    """Samples the cost landscape around a baseline filter.

    Args:
        evaluator: Cost evaluator shared with training
        baseline_filter: Filter whose first two coefficients are offset

    Raises:
        ShapeError: If the baseline has fewer than two coefficients
    """

    def __init__(self, evaluator: CostEvaluator, baseline_filter):
        baseline = np.array(baseline_filter, dtype=np.float32).reshape(-1)
        if baseline.shape[0] < 2:
            raise ShapeError(
                f"A cost map needs at least two coefficients, got {baseline.shape[0]}"
            )
        self.evaluator = evaluator
        self.baseline = baseline
        self._sample_fn = jax.jit(self._sample_grid)

    def _sample_grid(self, baseline, batch, offsets):
        def cell(di, dj):
            filt = baseline.at[0].add(di).at[1].add(dj)
            return self.evaluator.terms_fn(filt, batch)

        def row(di):
            return jax.vmap(lambda dj: cell(di, dj))(offsets)

        return jax.lax.map(row, offsets)

    def sample(self, examples, step: float, grid_size: int) -> CostMaps:
        """Evaluate the grid; maps[i, j] is the cost at offsets (axis[i], axis[j]).

        Raises:
            ValueError: If grid_size < 1
            ShapeError: If the examples are not a valid radix-2 batch
        """
        offsets = jnp.asarray(grid_axis(step, grid_size))
        batch = self.evaluator.prepare(examples)
        terms = self._sample_fn(jnp.asarray(self.baseline), batch, offsets)
        return CostMaps(
            sparsity=np.asarray(terms.sparsity),
            combined=np.asarray(terms.combined),
            regularization=np.asarray(terms.regularization),
        )


_FILTER_COUNT = re.compile(r"\.N\d+")


def cost_map_base_name(project: str) -> str:
    """Project name without its '.N<count>' suffix, e.g. 'Run.Needle' (pure function)."""
    return _FILTER_COUNT.sub("", project)


def cost_map_paths(directory: str | Path, project: str) -> CostMaps:
    """Cache file paths for the three maps of a project (pure function)."""
    directory = Path(directory)
    base = cost_map_base_name(project)
    return CostMaps(
        sparsity=directory / f"costMapSparse.{base}.npy",
        combined=directory / f"costMap.{base}.npy",
        regularization=directory / f"costMapReg.{base}.npy",
    )


def save_cost_maps(maps: CostMaps, directory: str | Path, project: str) -> CostMaps:
    """Write the three maps as .npy files (side effect); returns their paths."""
    paths = cost_map_paths(directory, project)
    Path(directory).mkdir(parents=True, exist_ok=True)
    for cost_map, path in zip(maps, paths):
        np.save(path, np.asarray(cost_map))
    return paths


def load_cost_maps(directory: str | Path, project: str) -> CostMaps:
    """Load cached maps.

    Raises:
        FileNotFoundError: If any of the three files is missing
    """
    return CostMaps(*(np.load(path) for path in cost_map_paths(directory, project)))


def load_or_sample_cost_maps(
    sampler: CostMapSampler,
    examples,
    step: float,
    grid_size: int,
    directory: str | Path,
    project: str,
) -> CostMaps:
    """Reuse the cache when all three files exist, otherwise sample and store."""
    paths = cost_map_paths(directory, project)
    if all(Path(p).is_file() for p in paths):
        maps = load_cost_maps(directory, project)
        if all(m.shape == (grid_size, grid_size) for m in maps):
            return maps
        print(f"Cached cost maps for {project} have shape {maps.combined.shape}; resampling")
    maps = sampler.sample(examples, step, grid_size)
    save_cost_maps(maps, directory, project)
    return maps
