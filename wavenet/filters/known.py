"""Reference orthonormal low-pass filters (starting points and test fixtures)."""

from __future__ import annotations

import numpy as np


HAAR = np.array([0.7071067811865476, 0.7071067811865476], dtype=np.float32)

# Daubechies 2 (db2) decomposition low-pass
DB2 = np.array([
    -0.1294095226, 0.2241438680, 0.8365163037, 0.4829629131
], dtype=np.float32)

# Daubechies 4 (db4) decomposition low-pass
DB4 = np.array([
    -0.0105974018, 0.0328830117, 0.0308413818, -0.1870348117,
    -0.0279837694, 0.6308807679, 0.7148465706, 0.2303778133
], dtype=np.float32)


KNOWN_FILTERS = {
    'haar': HAAR,
    'db2': DB2,
    'db4': DB4,
}


def get_filter(name: str) -> np.ndarray:
    """Copy of a known low-pass filter.

    Raises:
        ValueError: If the filter name is not supported
    """
    if name not in KNOWN_FILTERS:
        raise ValueError(
            f"Filter '{name}' not supported. "
            f"Available: {list(KNOWN_FILTERS.keys())}"
        )
    return KNOWN_FILTERS[name].copy()
