"""Optimiser configuration, log entries and run summaries (pure data structures)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

import jax.numpy as jnp
import numpy as np


class OptimizerStatus(Enum):
    """Lifecycle of a single optimisation run."""
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (
            OptimizerStatus.CONVERGED,
            OptimizerStatus.MAX_ITERATIONS_REACHED,
            OptimizerStatus.FAILED,
        )


@dataclass(frozen=True)
class OptimizerConfig:
    """Immutable optimiser configuration.

    Args:
        learning_rate: Step size of the gradient transformation
        optimizer: Optax transformation name ('adam' or 'sgd')
        max_iterations: Iteration cap for one run
        tolerance: Converged once |cost_prev - cost| drops below this
        log_every: Print a cost summary every N iterations (None = silent)
    """
    learning_rate: float = 0.01
    optimizer: str = "adam"
    max_iterations: int = 500
    tolerance: float = 1.0e-7
    log_every: int | None = None


class CostTerms(NamedTuple):
    """The three cost variants from one pass over the same examples."""
    sparsity: Any
    combined: Any
    regularization: Any


@dataclass(frozen=True, eq=False)
class FilterLogEntry:
    """Filter coefficients at the start of an iteration."""
    iteration: int
    filter: np.ndarray


@dataclass(frozen=True)
class CostLogEntry:
    """Combined cost evaluated at the filter of the same iteration."""
    iteration: int
    cost: float


@dataclass(frozen=True)
class RunSummary:
    """Outcome of one completed run, used for best-run selection."""
    number: int
    run_id: str
    final_cost: float
    num_iterations: int
    status: str

    @property
    def succeeded(self) -> bool:
        return self.status != OptimizerStatus.FAILED.value and math.isfinite(self.final_cost)


def to_scalar(x: Any) -> float:
    """Convert JAX array or scalar to Python float (pure function)."""
    if isinstance(x, (int, float)):
        return float(x)
    return float(jnp.asarray(x).item())


def terms_to_floats(terms: CostTerms) -> CostTerms:
    """Host-side copy of cost terms as Python floats (pure function)."""
    return CostTerms(*(to_scalar(v) for v in terms))
