"""Multi-run training with numbered checkpoints.

Each run starts from a random unit-norm filter and is stored under its run
number; periodic checkpoints overwrite that same number, never another one.
"""

from __future__ import annotations

import numpy as np

from wavenet.checkpoint.store import SnapshotStore
from wavenet.data.generators import create_generator, GeneratorMode
from wavenet.data.protocol import ExampleGenerator, draw_examples
from wavenet.errors import NumericalInstabilityError
from wavenet.experiments.config import RunConfig
from wavenet.filters.state import FilterState, point_on_n_sphere
from wavenet.training.cost import CostEvaluator
from wavenet.training.optimizer import Optimizer
from wavenet.training.types import OptimizerStatus, RunSummary


def run_id_for(config: RunConfig, number: int) -> str:
    return f"{config.project}.{config.hash()}.{number:06d}"


def create_evaluator(config: RunConfig) -> CostEvaluator:
    return CostEvaluator(lambda_reg=config.lambda_reg, basis_sample=config.basis_sample)


def generator_for(config: RunConfig) -> ExampleGenerator:
    """Example source named by the configuration."""
    if config.mode is GeneratorMode.FILE:
        generator = create_generator(config.mode, path=config.data_path)
        generator.set_shape(config.shape)
        return generator
    return create_generator(config.mode, shape=config.shape, seed=config.seed)


def train_run(
    config: RunConfig,
    examples,
    number: int,
    store: SnapshotStore,
    rng: np.random.Generator,
    evaluator: CostEvaluator | None = None,
    progress: bool = True,
) -> RunSummary:
    """Train one run and checkpoint it as snapshot `number`.

    A numerical failure ends the run with status FAILED; the last checkpoint
    written before the failure stays on disk untouched.

    Returns:
        Summary of the run
    """
    evaluator = evaluator if evaluator is not None else create_evaluator(config)
    run_id = run_id_for(config, number)
    filter_state = FilterState(point_on_n_sphere(config.num_coeffs, rng=rng))
    optimizer = Optimizer(evaluator, filter_state, config.optimizer)

    def checkpoint(opt: Optimizer) -> None:
        metadata = {'config_hash': config.hash(), 'project': config.project}
        store.save(number, opt.snapshot(run_id, metadata), overwrite=True)

    try:
        status = optimizer.run(
            examples,
            on_checkpoint=checkpoint,
            checkpoint_every=config.checkpoint_every,
            progress=progress,
        )
    except NumericalInstabilityError as e:
        print(f"Run {number} failed: {e}")
        status = OptimizerStatus.FAILED

    cost_log = optimizer.cost_log()
    final_cost = cost_log[-1].cost if cost_log else float('nan')
    if status is OptimizerStatus.FAILED:
        final_cost = float('nan')
    return RunSummary(
        number=number,
        run_id=run_id,
        final_cost=final_cost,
        num_iterations=len(cost_log),
        status=status.value,
    )


def train_runs(
    config: RunConfig,
    generator: ExampleGenerator | None = None,
    progress: bool = True,
) -> list[RunSummary]:
    """Train config.num_runs runs numbered from 1 on one shared example batch.

    Args:
        config: Series configuration
        generator: Example source (default: the one named by config.mode)
        progress: Show progress bars

    Returns:
        One summary per run, in run order

    Raises:
        DataExhausted: If the generator cannot supply config.num_examples
    """
    generator = generator if generator is not None else generator_for(config)
    examples = draw_examples(generator, config.num_examples)
    store = SnapshotStore(config.snapshot_pattern)
    evaluator = create_evaluator(config)
    rng = np.random.default_rng(config.seed)
    config.save()

    print(f"Project: {config.project} | config {config.hash()} | {len(examples)} examples")
    summaries = []
    for number in range(1, config.num_runs + 1):
        summary = train_run(config, examples, number, store, rng, evaluator, progress)
        print(
            f"Run {number}/{config.num_runs} | {summary.status} | "
            f"iterations: {summary.num_iterations} | cost: {summary.final_cost:.6f}"
        )
        summaries.append(summary)
    return summaries
