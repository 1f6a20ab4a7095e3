"""Example: train a series of needle runs, then analyse the best one.

Produces plain NumPy artefacts (cost maps, trajectories, basis frames) under
the project directory for an external renderer.
Run with: python examples/train_and_analyse.py
"""

from __future__ import annotations

import numpy as np

from wavenet import (
    BasisReconstructor,
    CostEvaluator,
    CostMapSampler,
    FilterState,
    GeneratorMode,
    RunConfig,
    SnapshotStore,
    basis_frames,
    draw_examples,
    load_or_sample_cost_maps,
    orthonormality_report,
    select_best_run,
    summarize_runs,
    train_runs,
)
from wavenet.analysis import filter_trajectory, step_for_extent
from wavenet.experiments import generator_for
from wavenet.training import OptimizerConfig, save_cost_log_json


def main():
    config = RunConfig(
        mode=GeneratorMode.NEEDLE,
        num_coeffs=2,
        shape=(16, 16),
        num_examples=64,
        num_runs=4,
        output_dir='output',
        optimizer=OptimizerConfig(learning_rate=0.01, max_iterations=300, log_every=50),
        checkpoint_every=100,
    )
    train_runs(config)

    store = SnapshotStore(config.snapshot_pattern)
    best = select_best_run(summarize_runs(store))
    if best is None:
        print("No run finished with a finite cost")
        return
    print(f"Best run: {best.number} | cost: {best.final_cost:.6f} | {best.status}")

    snapshot = store.load(best.number)
    save_cost_log_json(snapshot.cost_log, str(config.run_dir / 'bestCostLog.json'))
    np.save(config.run_dir / 'bestTrajectory.npy', filter_trajectory(snapshot.filter_log))

    reconstructor = BasisReconstructor(FilterState(snapshot.filter))
    report = orthonormality_report(reconstructor, config.shape)
    print(f"Orthonormality | norm error: {report.max_norm_error:.2e} | cross error: {report.max_cross_error:.2e}")

    # Cost maps over the first two coefficients, in absolute coordinates.
    # Cached beside the run directories, one set per generator mode.
    evaluator = CostEvaluator(lambda_reg=config.lambda_reg, basis_sample=config.basis_sample)
    baseline = np.zeros(config.num_coeffs, dtype=np.float32)
    baseline[2:] = snapshot.filter[2:]
    examples = draw_examples(generator_for(config), config.num_examples)
    load_or_sample_cost_maps(
        CostMapSampler(evaluator, baseline),
        examples,
        step=step_for_extent(1.2, 300),
        grid_size=300,
        directory=config.output_dir,
        project=config.project,
    )

    frames_dir = config.run_dir / 'frames'
    frames_dir.mkdir(parents=True, exist_ok=True)
    for index, (iteration, frame) in enumerate(basis_frames(snapshot.filter_log, config.shape)):
        np.save(frames_dir / f"bestBasis_{index:06d}.npy", frame)
    print(f"Artefacts written to {config.run_dir}")


if __name__ == '__main__':
    main()
