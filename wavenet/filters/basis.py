"""Basis function reconstruction via the cascade algorithm."""

from __future__ import annotations

import jax.numpy as jnp
import numpy as np

from wavenet.errors import ShapeError
from wavenet.filters.state import FilterState, check_radix2
from wavenet.filters.transform import batch_inverse, impulses, inverse


class BasisReconstructor:
    """Synthesises 2D basis images from the current filter of a FilterState.

    The basis function at grid position (i, j) is the cascade synthesis of a
    unit impulse placed at coefficient (i, j): the impulse is upsampled and
    convolved through every resolution level up to size_x x size_y. Position
    (0, 0) is the coarsest scaling function; positions further from the
    origin are progressively finer, shifted wavelets.

    The reconstructor only reads the filter state; it is a pure function of
    the current coefficients.
    """

    def __init__(self, filter_state: FilterState):
        self._filter_state = filter_state

    def _filter(self) -> jnp.ndarray:
        return jnp.asarray(self._filter_state.current_filter())

    def basis_function(self, size_x: int, size_y: int, i: int, j: int) -> np.ndarray:
        """Basis image of shape (size_x, size_y) at grid position (i, j).

        Raises:
            ShapeError: If a size is not a power of two or (i, j) is off-grid
        """
        check_radix2(size_x, size_y)
        if not (0 <= i < size_x and 0 <= j < size_y):
            raise ShapeError(
                f"Position ({i}, {j}) outside the {size_x} x {size_y} grid"
            )
        seed = impulses(size_x, size_y, np.array([i * size_y + j]))[0]
        return np.asarray(inverse(self._filter(), seed))

    def basis_functions(self, size_x: int, size_y: int) -> np.ndarray:
        """All basis images, shape (size_x * size_y, size_x, size_y).

        Entry p holds the basis function at (p // size_y, p % size_y).
        """
        check_radix2(size_x, size_y)
        return np.asarray(batch_inverse(self._filter(), impulses(size_x, size_y)))
