"""Snapshot container and its on-disk payload layout (pure functions)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np

from wavenet.errors import FormatError
from wavenet.training.metrics import filter_log_to_array
from wavenet.training.types import CostLogEntry, FilterLogEntry


FORMAT_TAG = "wavenet-snapshot"
FORMAT_VERSION = 1

_REQUIRED_KEYS = ('format', 'version', 'run_id', 'number', 'filter', 'filter_log', 'cost_log', 'metadata')


@dataclass(frozen=True, eq=False)
class Snapshot:
    """Full trainable state of one run at a checkpoint boundary.

    Immutable once written; `number` is filled in by the store on save/load.
    """
    run_id: str
    filter: np.ndarray
    filter_log: tuple[FilterLogEntry, ...]
    cost_log: tuple[CostLogEntry, ...]
    metadata: dict[str, Any] = field(default_factory=dict)
    number: int | None = None

    def with_number(self, number: int) -> "Snapshot":
        return replace(self, number=number)

    @property
    def final_cost(self) -> float:
        return self.cost_log[-1].cost if self.cost_log else float('inf')


def _plain(value: Any) -> Any:
    """Convert metadata to msgpack-native Python types."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def snapshot_to_payload(snapshot: Snapshot, number: int) -> dict[str, Any]:
    """Versioned dictionary written to disk (pure function)."""
    iterations, filters = filter_log_to_array(snapshot.filter_log)
    if not snapshot.filter_log:
        filters = np.zeros((0, snapshot.filter.shape[0]), dtype=np.float32)
    return {
        'format': FORMAT_TAG,
        'version': FORMAT_VERSION,
        'run_id': str(snapshot.run_id),
        'number': int(number),
        'filter': np.asarray(snapshot.filter, dtype=np.float32),
        'filter_log': {
            'iterations': iterations,
            'filters': filters,
        },
        'cost_log': {
            'iterations': np.array([e.iteration for e in snapshot.cost_log], dtype=np.int64),
            'costs': np.array([e.cost for e in snapshot.cost_log], dtype=np.float64),
        },
        'metadata': _plain(snapshot.metadata),
    }


def payload_to_snapshot(payload: Any, source: str = "<payload>") -> Snapshot:
    """Validate a decoded payload and rebuild the Snapshot.

    Raises:
        FormatError: If the payload violates the expected layout or version
    """
    if not isinstance(payload, dict):
        raise FormatError(f"{source}: expected a mapping, got {type(payload).__name__}")
    missing = [k for k in _REQUIRED_KEYS if k not in payload]
    if missing:
        raise FormatError(f"{source}: missing fields {missing}")
    if payload['format'] != FORMAT_TAG:
        raise FormatError(f"{source}: unknown format tag {payload['format']!r}")
    if payload['version'] != FORMAT_VERSION:
        raise FormatError(
            f"{source}: unsupported version {payload['version']} (expected {FORMAT_VERSION})"
        )

    try:
        filt = np.array(payload['filter'], dtype=np.float32).reshape(-1)
        filter_iterations = np.array(payload['filter_log']['iterations'], dtype=np.int64).reshape(-1)
        filters = np.array(payload['filter_log']['filters'], dtype=np.float32)
        cost_iterations = np.array(payload['cost_log']['iterations'], dtype=np.int64).reshape(-1)
        costs = np.array(payload['cost_log']['costs'], dtype=np.float64).reshape(-1)
        number = int(payload['number'])
    except (KeyError, TypeError, ValueError) as e:
        raise FormatError(f"{source}: malformed log arrays: {e}") from e

    if filters.ndim != 2 or filters.shape[0] != filter_iterations.shape[0]:
        raise FormatError(f"{source}: filter log has shape {filters.shape}")
    if filters.shape[0] and filters.shape[1] != filt.shape[0]:
        raise FormatError(
            f"{source}: filter log entries have {filters.shape[1]} coefficients, "
            f"filter has {filt.shape[0]}"
        )
    if costs.shape[0] != cost_iterations.shape[0]:
        raise FormatError(f"{source}: cost log iterations and values differ in length")
    if costs.shape[0] != filter_iterations.shape[0]:
        raise FormatError(
            f"{source}: cost log has {costs.shape[0]} entries, filter log has {filter_iterations.shape[0]}"
        )

    metadata = payload['metadata']
    if not isinstance(metadata, dict):
        raise FormatError(f"{source}: metadata must be a mapping")

    return Snapshot(
        run_id=str(payload['run_id']),
        filter=filt,
        filter_log=tuple(
            FilterLogEntry(iteration=int(i), filter=f.copy())
            for i, f in zip(filter_iterations, filters)
        ),
        cost_log=tuple(
            CostLogEntry(iteration=int(i), cost=float(c))
            for i, c in zip(cost_iterations, costs)
        ),
        metadata=dict(metadata),
        number=number,
    )
