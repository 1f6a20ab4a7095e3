"""Filter optimiser: a small state machine around an optax gradient step.

Each iteration evaluates the cost and its gradient at the current filter,
records one FilterLogEntry and one CostLogEntry for that filter, applies the
update, and then checks for convergence or the iteration cap. A non-finite
cost, gradient or updated filter fails the run before anything is recorded,
so the last written checkpoint stays valid.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import jax
import jax.numpy as jnp
import numpy as np
import optax
from flax.training import train_state
from tqdm import tqdm

from wavenet.errors import NumericalInstabilityError
from wavenet.filters.state import FilterState
from wavenet.training.cost import CostEvaluator
from wavenet.training.metrics import format_terms
from wavenet.training.types import (
    CostLogEntry,
    CostTerms,
    FilterLogEntry,
    OptimizerConfig,
    OptimizerStatus,
    terms_to_floats,
)

if TYPE_CHECKING:
    from wavenet.checkpoint.types import Snapshot


CheckpointFn = Callable[["Optimizer"], None]


def create_tx(config: OptimizerConfig) -> optax.GradientTransformation:
    """Optax transformation named by the configuration."""
    if config.optimizer == "adam":
        return optax.adam(config.learning_rate)
    if config.optimizer == "sgd":
        return optax.sgd(config.learning_rate)
    raise ValueError(f"Unknown optimizer: {config.optimizer}")


def create_train_step(evaluator: CostEvaluator) -> Callable:
    """Create a JIT-compiled training step.

    Returns:
        train_step: Function(state, examples) -> (new_state, terms, grads),
            with params and grads keyed by 'filter'
    """

    @jax.jit
    def train_step(
        state: train_state.TrainState,
        examples: jnp.ndarray
    ) -> tuple[train_state.TrainState, CostTerms, dict[str, jnp.ndarray]]:
        def loss_fn(params):
            terms = state.apply_fn(params['filter'], examples)
            return terms.combined, terms

        (_, terms), grads = jax.value_and_grad(loss_fn, has_aux=True)(state.params)
        new_state = state.apply_gradients(grads=grads)
        return new_state, terms, grads

    return train_step


class Optimizer:
    """Drives one run of filter optimisation.

    States: INITIALIZED -> ITERATING -> CONVERGED | MAX_ITERATIONS_REACHED | FAILED.

    Args:
        evaluator: Cost evaluator consulted every iteration
        filter_state: Filter being optimised (updated in place after each step)
        config: Optimiser configuration
    """

    def __init__(
        self,
        evaluator: CostEvaluator,
        filter_state: FilterState,
        config: OptimizerConfig = OptimizerConfig(),
    ):
        self.evaluator = evaluator
        self.filter_state = filter_state
        self.config = config
        self._state = train_state.TrainState.create(
            apply_fn=evaluator.terms_fn,
            params={'filter': jnp.asarray(filter_state.current_filter(), dtype=jnp.float32)},
            tx=create_tx(config),
        )
        self._train_step = create_train_step(evaluator)
        self._filter_log: list[FilterLogEntry] = []
        self._cost_log: list[CostLogEntry] = []
        self._iteration = 0
        self._status = OptimizerStatus.INITIALIZED
        self._last_terms: CostTerms | None = None

    @classmethod
    def resume(
        cls,
        evaluator: CostEvaluator,
        snapshot: "Snapshot",
        config: OptimizerConfig = OptimizerConfig(),
    ) -> "Optimizer":
        """Continue a run from a loaded snapshot.

        Logs are restored and the iteration counter continues after the last
        logged iteration. Optimiser moments are not persisted and start fresh.
        """
        optimizer = cls(evaluator, FilterState(snapshot.filter), config)
        optimizer._filter_log = list(snapshot.filter_log)
        optimizer._cost_log = list(snapshot.cost_log)
        if optimizer._filter_log:
            optimizer._iteration = optimizer._filter_log[-1].iteration + 1
            optimizer._status = OptimizerStatus.ITERATING
        return optimizer

    @property
    def status(self) -> OptimizerStatus:
        return self._status

    @property
    def iteration(self) -> int:
        """Index of the next iteration to run."""
        return self._iteration

    @property
    def last_terms(self) -> CostTerms | None:
        return self._last_terms

    def filter_log(self) -> tuple[FilterLogEntry, ...]:
        return tuple(self._filter_log)

    def cost_log(self) -> tuple[CostLogEntry, ...]:
        return tuple(self._cost_log)

    def _fail(self, message: str) -> None:
        self._status = OptimizerStatus.FAILED
        raise NumericalInstabilityError(message)

    def step(self, examples) -> float:
        """Run one iteration and return the combined cost at the pre-update filter.

        Raises:
            RuntimeError: If the run already reached a terminal state
            NumericalInstabilityError: On a non-finite cost, gradient or filter
        """
        if self._status.terminal:
            raise RuntimeError(f"Optimizer is {self._status.value}; start a new run")

        batch = self.evaluator.prepare(examples)
        current = np.array(self.filter_state.current_filter(), dtype=np.float32)
        state = self._state.replace(params={'filter': jnp.asarray(current)})
        new_state, terms, grads = self._train_step(state, batch)
        terms = terms_to_floats(terms)
        new_filter = np.asarray(new_state.params['filter'], dtype=np.float32)

        if not np.all(np.isfinite(terms)):
            self._fail(f"Non-finite cost at iteration {self._iteration}: {terms}")
        if not np.all(np.isfinite(np.asarray(grads['filter']))):
            self._fail(f"Non-finite gradient at iteration {self._iteration}")
        if not np.all(np.isfinite(new_filter)):
            self._fail(f"Non-finite filter after iteration {self._iteration}")

        self._filter_log.append(FilterLogEntry(iteration=self._iteration, filter=current))
        self._cost_log.append(CostLogEntry(iteration=self._iteration, cost=terms.combined))
        self._state = new_state
        self.filter_state.set_filter(new_filter)
        self._last_terms = terms
        self._iteration += 1
        self._status = OptimizerStatus.ITERATING

        if len(self._cost_log) > 1 and abs(self._cost_log[-2].cost - terms.combined) < self.config.tolerance:
            self._status = OptimizerStatus.CONVERGED
        elif self._iteration >= self.config.max_iterations:
            self._status = OptimizerStatus.MAX_ITERATIONS_REACHED

        return terms.combined

    def run(
        self,
        examples,
        on_checkpoint: CheckpointFn | None = None,
        checkpoint_every: int | None = None,
        progress: bool = True,
    ) -> OptimizerStatus:
        """Iterate until a terminal state.

        Args:
            examples: Fixed example batch for the whole run
            on_checkpoint: Called with the optimiser every `checkpoint_every`
                iterations and once at the end (never after a failure)
            checkpoint_every: Checkpoint interval (None = only at the end)
            progress: Show a tqdm progress bar

        Returns:
            Final status

        Raises:
            NumericalInstabilityError: If an iteration produces non-finite values
        """
        batch = self.evaluator.prepare(examples)
        if not self._status.terminal and self._iteration >= self.config.max_iterations:
            self._status = OptimizerStatus.MAX_ITERATIONS_REACHED

        remaining = max(self.config.max_iterations - self._iteration, 0)
        bar = tqdm(total=remaining, desc="Optimizing", disable=not progress, leave=False)
        try:
            while not self._status.terminal:
                cost = self.step(batch)
                bar.update(1)
                bar.set_postfix(cost=f"{cost:.6f}")

                log_every = self.config.log_every
                if log_every is not None and self._iteration % log_every == 0:
                    print(
                        f"Iteration {self._iteration}/{self.config.max_iterations} | "
                        f"{format_terms(self._last_terms)}"
                    )

                if (
                    on_checkpoint is not None
                    and checkpoint_every is not None
                    and self._iteration % checkpoint_every == 0
                    and not self._status.terminal
                ):
                    on_checkpoint(self)
        finally:
            bar.close()

        if on_checkpoint is not None:
            on_checkpoint(self)
        return self._status

    def snapshot(self, run_id: str, metadata: dict[str, Any] | None = None) -> "Snapshot":
        """Package the current state for the snapshot store."""
        from wavenet.checkpoint.types import Snapshot

        info = {
            'status': self._status.value,
            'iteration': self._iteration,
            'optimizer': self.config.optimizer,
            'learning_rate': self.config.learning_rate,
            'lambda_reg': self.evaluator.lambda_reg,
        }
        info.update(metadata or {})
        return Snapshot(
            run_id=run_id,
            filter=np.array(self.filter_state.current_filter()),
            filter_log=self.filter_log(),
            cost_log=self.cost_log(),
            metadata=info,
        )
