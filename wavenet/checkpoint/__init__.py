"""Snapshot persistence for optimisation runs.

Key features:
- One msgpack file per sequence number, written atomically
- Versioned payload validated on load
- Sequential traversal that stops at the first missing number
"""

from .types import (
    FORMAT_TAG,
    FORMAT_VERSION,
    Snapshot,
    snapshot_to_payload,
    payload_to_snapshot,
)
from .store import (
    SnapshotStore,
    SnapshotCursor,
    decode_snapshot,
)

__all__ = [
    'FORMAT_TAG',
    'FORMAT_VERSION',
    'Snapshot',
    'snapshot_to_payload',
    'payload_to_snapshot',
    'SnapshotStore',
    'SnapshotCursor',
    'decode_snapshot',
]
