"""Tests for multi-run training with checkpoints."""

from __future__ import annotations

import tempfile

import numpy as np
import pytest

from wavenet.checkpoint import SnapshotStore
from wavenet.data import GeneratorMode, NeedleGenerator
from wavenet.errors import DataExhausted
from wavenet.experiments import RunConfig, train_run, train_runs
from wavenet.training import OptimizerConfig, OptimizerStatus


@pytest.fixture
def config():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield RunConfig(
            mode=GeneratorMode.NEEDLE,
            num_coeffs=4,
            shape=(8, 8),
            num_examples=4,
            num_runs=2,
            output_dir=tmpdir,
            optimizer=OptimizerConfig(max_iterations=3, tolerance=0.0),
            checkpoint_every=2,
        )


def test_train_runs_writes_one_snapshot_per_run(config):
    """Test each run writes exactly one numbered snapshot."""
    summaries = train_runs(config, progress=False)

    store = SnapshotStore(config.snapshot_pattern)
    assert [s.number for s in summaries] == [1, 2]
    assert store.exists(1) and store.exists(2) and not store.exists(3)
    assert (config.run_dir / 'config.json').is_file()

    for summary in summaries:
        snapshot = store.load(summary.number)
        assert summary.status == OptimizerStatus.MAX_ITERATIONS_REACHED.value
        assert summary.num_iterations == 3
        assert len(snapshot.filter_log) == 3
        assert snapshot.final_cost == pytest.approx(summary.final_cost)
        assert snapshot.metadata['config_hash'] == config.hash()


def test_runs_start_from_different_filters(config):
    """Test runs draw distinct unit-norm initial filters."""
    train_runs(config, progress=False)
    store = SnapshotStore(config.snapshot_pattern)
    first = store.load(1).filter_log[0].filter
    second = store.load(2).filter_log[0].filter
    assert not np.allclose(first, second)
    assert np.isclose(np.linalg.norm(first), 1.0, atol=1e-5)


def test_failed_run_keeps_last_checkpoint(config):
    """Test a failed run leaves the previous snapshot intact."""
    store = SnapshotStore(config.snapshot_pattern)
    examples = NeedleGenerator(shape=(8, 8), seed=0).next()[np.newaxis]
    good = train_run(config, examples, 1, store, np.random.default_rng(0), progress=False)
    before = store.load(1)

    bad = examples.copy()
    bad[0, 0, 0] = np.nan
    summary = train_run(config, bad, 1, store, np.random.default_rng(1), progress=False)

    assert good.succeeded
    assert summary.status == OptimizerStatus.FAILED.value
    assert not summary.succeeded
    after = store.load(1)
    assert after.run_id == before.run_id
    assert after.cost_log == before.cost_log


def test_train_runs_requires_enough_examples(config):
    """Test an exhausted generator aborts training."""
    generator = NeedleGenerator(shape=(8, 8), seed=0)
    generator.close()
    with pytest.raises(DataExhausted):
        train_runs(config, generator, progress=False)
