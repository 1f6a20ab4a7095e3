"""Cost formatting and log export (pure functions plus isolated file I/O)."""

from __future__ import annotations

import json
import os
from typing import Sequence

import numpy as np

from wavenet.training.types import CostLogEntry, CostTerms, FilterLogEntry


def format_terms(terms: CostTerms, precision: int = 4) -> str:
    """Format cost terms as string for logging (pure function)."""
    parts = [f"{k}: {v:.{precision}f}" for k, v in terms._asdict().items()]
    return " | ".join(parts)


def cost_log_to_dict(cost_log: Sequence[CostLogEntry]) -> dict[str, list]:
    """Plain-container view of a cost log (pure function)."""
    return {
        'iteration': [entry.iteration for entry in cost_log],
        'cost': [float(entry.cost) for entry in cost_log],
    }


def filter_log_to_array(filter_log: Sequence[FilterLogEntry]) -> tuple[np.ndarray, np.ndarray]:
    """Stack a filter log into (iterations, filters) arrays (pure function)."""
    if not filter_log:
        return np.zeros((0,), dtype=np.int64), np.zeros((0, 0), dtype=np.float32)
    iterations = np.array([entry.iteration for entry in filter_log], dtype=np.int64)
    filters = np.stack([np.asarray(entry.filter, dtype=np.float32) for entry in filter_log])
    return iterations, filters


def save_cost_log_json(cost_log: Sequence[CostLogEntry], path: str) -> None:
    """Save a cost log as JSON (side effect).

    Args:
        cost_log: Ordered cost log entries
        path: Output JSON file path
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, "w") as f:
        json.dump(cost_log_to_dict(cost_log), f, indent=2)


def load_cost_log_json(path: str) -> tuple[CostLogEntry, ...]:
    """Load a cost log written by `save_cost_log_json`."""
    with open(path, "r") as f:
        data = json.load(f)
    return tuple(
        CostLogEntry(iteration=int(i), cost=float(c))
        for i, c in zip(data['iteration'], data['cost'])
    )
