"""Sparsity and orthonormality cost of a filter over a batch of examples.

All three variants (sparsity-only, combined, regularisation-only) come out of
a single traced function so the cost-map sampler can vectorise it without
recomputation.
"""

from __future__ import annotations

from typing import Sequence

import jax
import jax.numpy as jnp
import numpy as np

from wavenet.errors import ShapeError
from wavenet.filters.state import EPS, check_radix2
from wavenet.filters.transform import batch_forward, batch_inverse, impulses
from wavenet.training.types import CostTerms, terms_to_floats


def basis_sample_indices(num_basis: int, sample: int | None) -> np.ndarray:
    """Evenly strided, deterministic subset of flattened basis positions."""
    if sample is None or sample >= num_basis:
        return np.arange(num_basis)
    if sample < 1:
        raise ValueError(f"basis_sample must be positive, got {sample}")
    return np.unique(np.round(np.linspace(0, num_basis - 1, sample)).astype(np.int64))


def sparsity_cost(filt: jnp.ndarray, examples: jnp.ndarray) -> jnp.ndarray:
    """Mean L1/L2 ratio of the wavelet coefficients, scaled into [1/sqrt(n), 1] (pure)."""
    coeffs = batch_forward(filt, examples)
    flat = coeffs.reshape(coeffs.shape[0], -1)
    l1 = jnp.sum(jnp.abs(flat), axis=1)
    l2 = jnp.sqrt(jnp.sum(flat ** 2, axis=1) + EPS)
    return jnp.mean(l1 / l2) / jnp.sqrt(flat.shape[1])


def regularization_cost(
    filt: jnp.ndarray,
    shape: tuple[int, int],
    positions: np.ndarray,
) -> jnp.ndarray:
    """Squared deviation of basis inner products from the Kronecker delta (pure).

    G[p, q] = trace(F_p . F_q^T) over the sampled positions; the penalty is
    sum((G - I)^2) / k for k sampled basis functions.
    """
    basis = batch_inverse(filt, impulses(shape[0], shape[1], positions))
    flat = basis.reshape(basis.shape[0], -1)
    gram = jnp.matmul(flat, flat.T, precision=jax.lax.Precision.HIGHEST)
    deviation = gram - jnp.eye(flat.shape[0], dtype=gram.dtype)
    return jnp.sum(deviation ** 2) / flat.shape[0]


class CostEvaluator:
    """Cost = sparsity + lambda_reg * regularisation.

    Deterministic given the filter and the examples; the regularisation uses a
    fixed, evenly strided sample of basis positions (all of them by default).

    Args:
        lambda_reg: Weight of the orthonormality penalty
        basis_sample: Number of basis functions entering the Gram matrix
            (None = every position of the example grid)
    """

    def __init__(self, lambda_reg: float = 10.0, basis_sample: int | None = None):
        self.lambda_reg = float(lambda_reg)
        self.basis_sample = basis_sample
        self._terms = jax.jit(self.terms_fn)
        self._value_and_grad = jax.jit(jax.value_and_grad(self._combined_with_terms, has_aux=True))

    def terms_fn(self, filt: jnp.ndarray, examples: jnp.ndarray) -> CostTerms:
        """Traceable cost terms for a (B, sx, sy) example batch (pure)."""
        shape = examples.shape[1:]
        positions = basis_sample_indices(shape[0] * shape[1], self.basis_sample)
        sparsity = sparsity_cost(filt, examples)
        regularization = regularization_cost(filt, shape, positions)
        return CostTerms(
            sparsity=sparsity,
            combined=sparsity + self.lambda_reg * regularization,
            regularization=regularization,
        )

    def _combined_with_terms(self, filt, examples):
        terms = self.terms_fn(filt, examples)
        return terms.combined, terms

    @staticmethod
    def prepare(examples: Sequence[np.ndarray] | np.ndarray) -> jnp.ndarray:
        """Stack examples into a (B, sx, sy) float32 batch.

        Raises:
            ShapeError: If the batch is empty, shapes differ, or a side is not
                a power of two
        """
        if isinstance(examples, (np.ndarray, jax.Array)):
            batch = np.asarray(examples, dtype=np.float32)
        else:
            try:
                batch = np.stack([np.asarray(x, dtype=np.float32) for x in examples])
            except ValueError as e:
                raise ShapeError(f"Examples do not share one shape: {e}") from e
        if batch.ndim == 2:
            batch = batch[np.newaxis]
        if batch.ndim != 3 or batch.shape[0] == 0:
            raise ShapeError(f"Expected a non-empty (B, sx, sy) batch, got shape {batch.shape}")
        check_radix2(*batch.shape[1:])
        return jnp.asarray(batch)

    def terms(self, filt, examples) -> CostTerms:
        """All three cost variants as Python floats."""
        return terms_to_floats(self._terms(jnp.asarray(filt, dtype=jnp.float32), self.prepare(examples)))

    def evaluate(self, filt, examples) -> float:
        """Combined cost as a Python float."""
        return self.terms(filt, examples).combined

    def value_and_grad(self, filt, examples) -> tuple[CostTerms, jnp.ndarray]:
        """Cost terms and gradient of the combined cost w.r.t. the filter."""
        (_, terms), grad = self._value_and_grad(
            jnp.asarray(filt, dtype=jnp.float32), self.prepare(examples)
        )
        return terms, grad
