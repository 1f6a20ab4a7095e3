"""Filter coefficient container and shared numerics (host side)."""

from __future__ import annotations

import numpy as np

from wavenet.errors import ShapeError


EPS = 1.0e-12


def is_radix2(x: int) -> bool:
    """True iff x is a positive integer power of two (1 included)."""
    x = int(x)
    return x > 0 and (x & (x - 1)) == 0


def check_radix2(*sizes: int) -> None:
    """Raise ShapeError unless every size is radix 2."""
    for size in sizes:
        if not is_radix2(size):
            raise ShapeError(f"Size {size} is not a power of two")


def point_on_n_sphere(
    n: int,
    rho: float = 0.0,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Uniformly random point on the unit (n-1)-sphere.

    Args:
        n: Dimension (number of filter coefficients)
        rho: Relative radial jitter; the radius is drawn from
            [1 - rho, 1 + rho] (0 = exactly unit norm)
        rng: NumPy generator (fresh default_rng() if None)

    Returns:
        Array of shape (n,)
    """
    if n < 1:
        raise ShapeError(f"Cannot draw a point on a sphere of dimension {n}")
    rng = rng if rng is not None else np.random.default_rng()
    v = rng.standard_normal(n)
    while np.linalg.norm(v) < EPS:
        v = rng.standard_normal(n)
    radius = 1.0 + (rng.uniform(-rho, rho) if rho > 0 else 0.0)
    return radius * v / np.linalg.norm(v)


class FilterState:
    """Holds the filter vector being optimised.

    The length is fixed at construction; replacing the coefficients with a
    vector of different length raises ShapeError.
    """

    def __init__(self, filt):
        vector = np.array(filt, dtype=np.float32).reshape(-1)
        if vector.size == 0:
            raise ShapeError("Filter must have at least one coefficient")
        self._filter = vector

    @property
    def size(self) -> int:
        return self._filter.shape[0]

    def set_filter(self, vector) -> None:
        vector = np.array(vector, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.size:
            raise ShapeError(
                f"Filter length changed from {self.size} to {vector.shape[0]}; "
                "start a new run to change the number of coefficients"
            )
        self._filter = vector

    def current_filter(self) -> np.ndarray:
        """Read-only view of the current coefficients."""
        view = self._filter.view()
        view.flags.writeable = False
        return view

    def __repr__(self) -> str:
        coeffs = ", ".join(f"{c:.4f}" for c in self._filter)
        return f"FilterState([{coeffs}])"
