"""Numbered snapshot files for one run series (side effects isolated here).

A series is identified by a filename pattern holding a single six-digit
placeholder, e.g. ``output/Run.Needle.N4/snapshots/Run.Needle.N4.%06u.snap``.
Each file is a msgpack-encoded, versioned payload written atomically.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Iterator

from flax import serialization

from wavenet.checkpoint.types import Snapshot, payload_to_snapshot, snapshot_to_payload
from wavenet.errors import FormatError


_PLACEHOLDER = re.compile(r"%06[ud]")


class SnapshotStore:
    """Save, load and traverse the checkpoint files of one series.

    Args:
        pattern: Path pattern with exactly one ``%06u`` (or ``%06d``) placeholder
    """

    def __init__(self, pattern: str | Path):
        pattern = str(pattern)
        if len(_PLACEHOLDER.findall(pattern)) != 1:
            raise ValueError(
                f"Snapshot pattern must contain exactly one %06u placeholder: {pattern}"
            )
        self.pattern = pattern

    def path(self, number: int) -> Path:
        if number < 0:
            raise ValueError(f"Snapshot numbers are non-negative, got {number}")
        return Path(_PLACEHOLDER.sub(f"{number:06d}", self.pattern))

    def exists(self, number: int) -> bool:
        return self.path(number).is_file()

    def save(self, number: int, snapshot: Snapshot, overwrite: bool = False) -> Path:
        """Write a snapshot atomically (temporary file, then rename).

        Args:
            number: Sequence number to write
            snapshot: State to persist
            overwrite: Replace an existing file with the same number

        Returns:
            Path of the written file

        Raises:
            FileExistsError: If the number is taken and overwrite is False
        """
        path = self.path(number)
        if path.exists() and not overwrite:
            raise FileExistsError(f"Snapshot {number} already exists: {path}")

        data = serialization.msgpack_serialize(snapshot_to_payload(snapshot, number))
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return path

    def load(self, number: int) -> Snapshot:
        """Load one snapshot.

        Raises:
            FileNotFoundError: If no file exists for this number
            IOError: If the file cannot be read
            FormatError: If the file does not decode as a valid snapshot
        """
        path = self.path(number)
        with open(path, "rb") as f:
            data = f.read()
        return decode_snapshot(data, source=str(path))

    def iterate(self, start: int = 1, stop: int | None = None) -> Iterator[Snapshot]:
        """Yield snapshots start, start + 1, ... while they exist and number <= stop.

        A missing file ends the sequence; it is not an error.
        """
        number = start
        while (stop is None or number <= stop) and self.exists(number):
            yield self.load(number)
            number += 1

    def latest_number(self, start: int = 1) -> int:
        """Highest number of the contiguous sequence beginning at start (start - 1 if empty)."""
        number = start - 1
        while self.exists(number + 1):
            number += 1
        return number

    def next_number(self, start: int = 1) -> int:
        return self.latest_number(start) + 1


def decode_snapshot(data: bytes, source: str = "<bytes>") -> Snapshot:
    """Decode msgpack bytes into a Snapshot.

    Raises:
        FormatError: If the bytes are not a valid snapshot payload
    """
    try:
        payload = serialization.msgpack_restore(data)
    # msgpack documents that corrupt input may raise outside UnpackException
    except Exception as e:
        raise FormatError(f"{source} is not a valid snapshot: {e}") from e
    return payload_to_snapshot(payload, source=source)


class SnapshotCursor:
    """Position in a snapshot series that reloads the state on every move.

    Example:
        >>> cursor = SnapshotCursor(store)
        >>> while cursor.exists() and cursor.number <= 5:
        ...     print(cursor.number, cursor.snapshot.final_cost)
        ...     cursor.advance()
    """

    def __init__(self, store: SnapshotStore, number: int = 1):
        self._store = store
        self._number = number
        self._snapshot: Snapshot | None = None
        self._reload()

    def _reload(self) -> None:
        self._snapshot = self._store.load(self._number) if self._store.exists(self._number) else None

    @property
    def number(self) -> int:
        return self._number

    @property
    def path(self) -> Path:
        return self._store.path(self._number)

    @property
    def snapshot(self) -> Snapshot | None:
        """State at the current number (None past the end of the series)."""
        return self._snapshot

    def exists(self) -> bool:
        return self._snapshot is not None

    def advance(self) -> "SnapshotCursor":
        self._number += 1
        self._reload()
        return self

    def jump(self, number: int) -> "SnapshotCursor":
        self._number = number
        self._reload()
        return self
