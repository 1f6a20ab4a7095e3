"""Run-series analysis: summaries, best-run selection and rendering inputs.

Everything here returns plain NumPy containers; drawing is left to the
caller.
"""

from __future__ import annotations

import math
from typing import Iterable, Iterator, Sequence

import numpy as np

from wavenet.checkpoint.store import SnapshotStore
from wavenet.checkpoint.types import Snapshot
from wavenet.errors import ShapeError
from wavenet.filters.basis import BasisReconstructor
from wavenet.filters.state import FilterState
from wavenet.training.metrics import filter_log_to_array
from wavenet.training.types import CostLogEntry, FilterLogEntry, RunSummary


def summarize_snapshot(snapshot: Snapshot, number: int | None = None) -> RunSummary:
    """Summary of one stored run (pure function)."""
    number = number if number is not None else snapshot.number
    return RunSummary(
        number=int(number) if number is not None else 0,
        run_id=snapshot.run_id,
        final_cost=snapshot.final_cost,
        num_iterations=len(snapshot.cost_log),
        status=str(snapshot.metadata.get('status', 'unknown')),
    )


def summarize_runs(store: SnapshotStore, start: int = 1, stop: int | None = None) -> list[RunSummary]:
    """Summaries of the contiguous snapshot sequence start, start + 1, ... (<= stop)."""
    return [
        summarize_snapshot(snapshot, number)
        for number, snapshot in enumerate(store.iterate(start, stop), start=start)
    ]


def select_best_run(summaries: Iterable[RunSummary]) -> RunSummary | None:
    """Run with the lowest finite final cost; ties go to the lowest number.

    Returns None when no run has a finite final cost.
    """
    candidates = [s for s in summaries if math.isfinite(s.final_cost)]
    if not candidates:
        return None
    return min(candidates, key=lambda s: (s.final_cost, s.number))


def cost_curve(cost_log: Sequence[CostLogEntry]) -> tuple[np.ndarray, np.ndarray]:
    """(iterations, costs) arrays of a cost log (pure function)."""
    iterations = np.array([entry.iteration for entry in cost_log], dtype=np.int64)
    costs = np.array([entry.cost for entry in cost_log], dtype=np.float64)
    return iterations, costs


def filter_trajectory(filter_log: Sequence[FilterLogEntry]) -> np.ndarray:
    """Path of the first two coefficients, shape (len(filter_log), 2).

    Raises:
        ShapeError: If the filters have fewer than two coefficients
    """
    _, filters = filter_log_to_array(filter_log)
    if not len(filter_log):
        return np.zeros((0, 2), dtype=np.float32)
    if filters.shape[1] < 2:
        raise ShapeError(f"Trajectory needs two coefficients, filters have {filters.shape[1]}")
    return filters[:, :2]


def keep_frame(index: int, total: int, keep_every: int = 4, edge: int = 100) -> bool:
    """Keep every frame near either end, and every keep_every-th in between."""
    return not (edge < index < total - edge and index % keep_every > 0)


def basis_frames(
    filter_log: Sequence[FilterLogEntry],
    shape: tuple[int, int],
    dim: int = 8,
    keep_every: int = 4,
    edge: int = 100,
) -> Iterator[tuple[int, np.ndarray]]:
    """Basis grids along an optimisation history.

    Each frame holds the basis functions at positions (i, j) with
    i < min(dim, sx) and j < min(dim, sy), evaluated with the filter logged
    at that iteration.

    Yields:
        (iteration, frame) with frame of shape (dim_x, dim_y, sx, sy)
    """
    sx, sy = shape
    dim_x, dim_y = min(dim, sx), min(dim, sy)
    if not len(filter_log):
        return
    state = FilterState(filter_log[0].filter)
    reconstructor = BasisReconstructor(state)
    total = len(filter_log)
    for index, entry in enumerate(filter_log):
        if not keep_frame(index, total, keep_every, edge):
            continue
        state.set_filter(entry.filter)
        basis = reconstructor.basis_functions(sx, sy).reshape(sx, sy, sx, sy)
        yield entry.iteration, basis[:dim_x, :dim_y]
