"""Minimal example-source protocol.

The ExampleGenerator protocol defines the minimal interface the optimiser and
the analysis need. Any object implementing it can feed training.
"""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np

from wavenet.errors import DataExhausted


class ExampleGenerator(Protocol):
    """Minimal protocol for example production.

    Example implementations:
        - File-backed stacks of patches
        - Synthetic distributions (uniform noise, needles, Gaussian blobs)
    """

    def set_shape(self, shape: tuple[int, int] | list[int]) -> None:
        """Fix the (radix-2) shape of every example produced from now on."""
        ...

    @property
    def shape(self) -> tuple[int, int]:
        ...

    def next(self) -> np.ndarray:
        """Produce one example; raises DataExhausted when none is available."""
        ...

    def good(self) -> bool:
        """True while the generator can produce examples."""
        ...

    def close(self) -> None:
        ...


# Helper function to validate a generator
def validate_generator(generator: Any) -> bool:
    """Check if an object implements the ExampleGenerator protocol.

    Args:
        generator: Object to validate

    Returns:
        is_valid: True if object exposes the full capability set
    """
    return all(
        callable(getattr(generator, name, None))
        for name in ('set_shape', 'next', 'good', 'close')
    )


def draw_examples(generator: ExampleGenerator, count: int) -> np.ndarray:
    """Collect a fixed batch of examples, shape (count, sx, sy).

    Raises:
        DataExhausted: If the generator runs dry before count examples
    """
    examples = []
    for i in range(count):
        if not generator.good():
            raise DataExhausted(f"Generator exhausted after {i} of {count} examples")
        examples.append(np.asarray(generator.next(), dtype=np.float32))
    return np.stack(examples) if examples else np.zeros((0, *generator.shape), dtype=np.float32)
