"""Periodic 2D fast wavelet transform with a learnable filter (pure JAX).

Unlike fixed-filter preprocessing, these transforms keep gradients with
respect to the filter coefficients so they can sit inside a cost function.

Layout: at each level the current top-left (sx, sy) block is replaced by
A_sx @ block @ A_sy.T, where A_s stacks s/2 low-pass rows over s/2 high-pass
rows (stride 2, indices wrapped modulo s). Both extents then halve until the
block is 1 x 1, so the coarsest approximation ends up at [0, 0].

Example:
    >>> import jax.numpy as jnp
    >>> from wavenet.filters import forward, inverse
    >>>
    >>> haar = jnp.array([0.7071068, 0.7071068])
    >>> coeffs = forward(haar, jnp.ones((16, 16)))
    >>> coeffs.shape
    (16, 16)
"""

from __future__ import annotations

from functools import lru_cache

import jax
import jax.numpy as jnp
import numpy as np

from wavenet.filters.state import check_radix2


PRECISION = jax.lax.Precision.HIGHEST


@lru_cache(maxsize=None)
def _level_indices(size: int, num_coeffs: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Static (row, column, tap) scatter indices of one analysis level."""
    half = size // 2
    n, k = np.meshgrid(np.arange(half), np.arange(num_coeffs), indexing="ij")
    cols = (2 * n + k) % size
    rows = np.concatenate([n.ravel(), half + n.ravel()])
    cols = np.concatenate([cols.ravel(), cols.ravel()])
    taps = np.concatenate([k.ravel(), num_coeffs + k.ravel()])
    return rows, cols, taps


def highpass(filt: jnp.ndarray) -> jnp.ndarray:
    """Quadrature mirror high-pass, b[k] = (-1)^(k+1) * a[N-1-k] (pure)."""
    signs = jnp.where(jnp.arange(filt.shape[0]) % 2 == 0, -1.0, 1.0).astype(filt.dtype)
    return signs * jnp.flip(filt)


def level_matrix(filt: jnp.ndarray, size: int) -> jnp.ndarray:
    """Single-level analysis matrix of shape (size, size) (pure).

    Args:
        filt: Low-pass filter coefficients of shape (N,)
        size: Radix-2 signal length; size 1 gives the identity

    Returns:
        Matrix whose first size/2 rows are low-pass and last size/2 rows are
        high-pass responses. Taps that wrap onto the same column accumulate.
    """
    if size == 1:
        return jnp.eye(1, dtype=filt.dtype)
    rows, cols, taps = _level_indices(size, filt.shape[0])
    values = jnp.concatenate([filt, highpass(filt)])[taps]
    return jnp.zeros((size, size), dtype=filt.dtype).at[rows, cols].add(values)


def level_sizes(size_x: int, size_y: int) -> list[tuple[int, int]]:
    """Block extents visited by the pyramid, finest first."""
    check_radix2(size_x, size_y)
    sizes = []
    while size_x > 1 or size_y > 1:
        sizes.append((size_x, size_y))
        size_x, size_y = max(size_x // 2, 1), max(size_y // 2, 1)
    return sizes


@jax.jit
def forward(filt: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
    """Full 2D wavelet decomposition of a single (sx, sy) matrix (pure).

    Raises:
        ShapeError: If either side of x is not a power of two
    """
    y = x.astype(filt.dtype)
    for sx, sy in level_sizes(*x.shape):
        ax = level_matrix(filt, sx)
        ay = level_matrix(filt, sy)
        block = jnp.matmul(jnp.matmul(ax, y[:sx, :sy], precision=PRECISION), ay.T, precision=PRECISION)
        y = y.at[:sx, :sy].set(block)
    return y


@jax.jit
def inverse(filt: jnp.ndarray, c: jnp.ndarray) -> jnp.ndarray:
    """Cascade synthesis, the adjoint of `forward` (pure).

    Starts at the coarsest level and upsamples/convolves through every
    resolution level. For an orthonormal filter this is the exact inverse.
    """
    y = c.astype(filt.dtype)
    for sx, sy in reversed(level_sizes(*c.shape)):
        ax = level_matrix(filt, sx)
        ay = level_matrix(filt, sy)
        block = jnp.matmul(jnp.matmul(ax.T, y[:sx, :sy], precision=PRECISION), ay, precision=PRECISION)
        y = y.at[:sx, :sy].set(block)
    return y


batch_forward = jax.jit(jax.vmap(forward, in_axes=(None, 0)))
batch_inverse = jax.jit(jax.vmap(inverse, in_axes=(None, 0)))


def impulses(size_x: int, size_y: int, positions: np.ndarray | None = None) -> jnp.ndarray:
    """Unit impulses at flattened grid positions, shape (k, size_x, size_y).

    Position p corresponds to grid index (p // size_y, p % size_y).
    """
    n = size_x * size_y
    positions = np.arange(n) if positions is None else np.asarray(positions)
    eye = np.zeros((positions.shape[0], n), dtype=np.float32)
    eye[np.arange(positions.shape[0]), positions] = 1.0
    return jnp.asarray(eye.reshape(-1, size_x, size_y))
