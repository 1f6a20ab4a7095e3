"""Tests for snapshot persistence and traversal."""

from __future__ import annotations

import os
import tempfile

import numpy as np
import pytest
from flax import serialization

from wavenet.checkpoint import (
    FORMAT_TAG,
    Snapshot,
    SnapshotCursor,
    SnapshotStore,
    decode_snapshot,
    snapshot_to_payload,
)
from wavenet.errors import FormatError
from wavenet.filters import FilterState
from wavenet.training import (
    CostEvaluator,
    CostLogEntry,
    FilterLogEntry,
    Optimizer,
    OptimizerConfig,
)


def _snapshot(run_id='run', cost=1.0, n=2):
    filters = [np.full(4, i, dtype=np.float32) for i in range(n)]
    return Snapshot(
        run_id=run_id,
        filter=np.array([0.1, 0.2, 0.3, 0.4], dtype=np.float32),
        filter_log=tuple(FilterLogEntry(i, f) for i, f in enumerate(filters)),
        cost_log=tuple(CostLogEntry(i, cost + i) for i in range(n)),
        metadata={'status': 'converged', 'shape': (16, 16), 'lr': np.float32(0.5)},
    )


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SnapshotStore(os.path.join(tmpdir, 'run.%06u.snap'))


def test_pattern_requires_one_placeholder():
    """Test the file pattern needs exactly one number placeholder."""
    with pytest.raises(ValueError):
        SnapshotStore('run.snap')
    with pytest.raises(ValueError):
        SnapshotStore('run.%06u.%06u.snap')
    assert SnapshotStore('run.%06d.snap').path(7).name == 'run.000007.snap'


def test_path_formatting(store):
    """Test zero-padded snapshot file names."""
    assert store.path(1).name == 'run.000001.snap'
    assert store.path(123456).name == 'run.123456.snap'


def test_save_load_roundtrip(store):
    """Test snapshot save and load."""
    saved = _snapshot()
    store.save(1, saved)
    loaded = store.load(1)

    assert loaded.number == 1
    assert loaded.run_id == 'run'
    assert np.allclose(loaded.filter, saved.filter)
    assert [e.iteration for e in loaded.filter_log] == [0, 1]
    assert np.allclose(loaded.filter_log[1].filter, 1.0)
    assert loaded.cost_log == saved.cost_log
    assert loaded.metadata['shape'] == [16, 16]
    assert loaded.metadata['lr'] == pytest.approx(0.5)
    assert loaded.final_cost == 2.0


def test_empty_logs_roundtrip(store):
    """Test snapshots with empty logs."""
    empty = Snapshot(run_id='e', filter=np.ones(2, dtype=np.float32), filter_log=(), cost_log=())
    store.save(1, empty)
    loaded = store.load(1)
    assert loaded.filter_log == () and loaded.cost_log == ()
    assert loaded.final_cost == float('inf')


def test_save_refuses_overwrite(store):
    """Test save refuses to overwrite unless asked."""
    store.save(1, _snapshot(cost=1.0))
    with pytest.raises(FileExistsError):
        store.save(1, _snapshot(cost=5.0))
    store.save(1, _snapshot(cost=5.0), overwrite=True)
    assert store.load(1).cost_log[0].cost == 5.0


def test_save_leaves_no_temporary_files(store):
    """Test atomic save leaves only the snapshot file."""
    path = store.save(3, _snapshot())
    assert sorted(os.listdir(path.parent)) == ['run.000003.snap']


def test_load_missing_raises_file_not_found(store):
    """Test loading a missing snapshot raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        store.load(1)
    with pytest.raises(IOError):
        store.load(1)


def test_corrupt_file_raises_format_error(store):
    """Test unreadable files raise FormatError."""
    store.path(1).parent.mkdir(parents=True, exist_ok=True)
    store.path(1).write_bytes(b'\xc1\xc1 definitely not a snapshot')
    with pytest.raises(FormatError):
        store.load(1)


def test_wrong_format_tag_raises():
    """Test foreign payloads are rejected."""
    payload = snapshot_to_payload(_snapshot(), 1)
    payload['format'] = 'something-else'
    with pytest.raises(FormatError, match="format tag"):
        decode_snapshot(serialization.msgpack_serialize(payload))


def test_wrong_version_raises():
    """Test unknown payload versions are rejected."""
    payload = snapshot_to_payload(_snapshot(), 1)
    payload['version'] = 99
    with pytest.raises(FormatError, match="version"):
        decode_snapshot(serialization.msgpack_serialize(payload))


def test_missing_field_raises():
    """Test payloads missing a field are rejected."""
    payload = snapshot_to_payload(_snapshot(), 1)
    del payload['cost_log']
    with pytest.raises(FormatError, match="missing"):
        decode_snapshot(serialization.msgpack_serialize(payload))


def test_log_length_mismatch_raises():
    """Test mismatched log columns are rejected."""
    payload = snapshot_to_payload(_snapshot(n=3), 1)
    payload['cost_log']['iterations'] = payload['cost_log']['iterations'][:2]
    payload['cost_log']['costs'] = payload['cost_log']['costs'][:2]
    with pytest.raises(FormatError):
        decode_snapshot(serialization.msgpack_serialize(payload))


def test_payload_carries_format_tag():
    """Test payloads carry the format tag."""
    assert snapshot_to_payload(_snapshot(), 4)['format'] == FORMAT_TAG


def test_iterate_stops_at_first_gap(store):
    """Test iteration stops at the first missing number."""
    for number in (1, 2, 4):
        store.save(number, _snapshot(run_id=f'r{number}'))
    assert [s.run_id for s in store.iterate()] == ['r1', 'r2']
    assert [s.run_id for s in store.iterate(stop=1)] == ['r1']
    assert [s.run_id for s in store.iterate(start=4)] == ['r4']
    assert store.latest_number() == 2
    assert store.next_number() == 3


def test_empty_series(store):
    """Test an empty directory has no snapshots."""
    assert list(store.iterate()) == []
    assert store.latest_number() == 0
    assert store.next_number() == 1


def test_cursor_reloads_on_each_move(store):
    """Test cursor movement and reload."""
    store.save(1, _snapshot(run_id='a'))
    store.save(2, _snapshot(run_id='b'))

    cursor = SnapshotCursor(store)
    assert cursor.exists() and cursor.snapshot.run_id == 'a'
    assert cursor.advance().snapshot.run_id == 'b'
    cursor.advance()
    assert not cursor.exists()
    assert cursor.snapshot is None
    assert cursor.path.name == 'run.000003.snap'
    assert cursor.jump(1).snapshot.run_id == 'a'


def test_optimizer_scenario_single_iteration(store):
    """4-coefficient filter, 16x16 examples, one iteration, one checkpoint."""
    examples = np.random.default_rng(0).standard_normal((3, 16, 16)).astype(np.float32)
    optimizer = Optimizer(
        CostEvaluator(),
        FilterState([0.5, 0.5, 0.5, 0.5]),
        OptimizerConfig(max_iterations=1),
    )
    optimizer.run(
        examples,
        on_checkpoint=lambda opt: store.save(1, opt.snapshot('scenario'), overwrite=True),
        progress=False,
    )

    assert store.exists(1)
    assert not store.exists(2)
    loaded = store.load(1)
    assert len(loaded.filter_log) == 1 and len(loaded.cost_log) == 1
    assert loaded.filter_log[0].iteration == 0
    assert np.allclose(loaded.filter_log[0].filter, 0.5)
