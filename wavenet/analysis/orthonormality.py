"""Orthonormality diagnostics for reconstructed basis functions.

Inner products are trace(F_p . F_q^T), i.e. the Frobenius product of two
basis images. Values are clamped into [-0.5, 1.5) for display.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np

from wavenet.filters.basis import BasisReconstructor

Position = tuple[int, int]


def clamp_norm(value: float) -> float:
    """Clamp an inner product into [-0.5, 1.5) (pure function)."""
    if value < -0.5:
        return -0.499
    if value > 1.5:
        return 1.499
    return float(value)


def gram_matrix(basis: np.ndarray) -> np.ndarray:
    """Unclamped Gram matrix of a (k, sx, sy) stack of basis images (pure function)."""
    flat = np.asarray(basis, dtype=np.float64).reshape(basis.shape[0], -1)
    return flat @ flat.T


def self_norms(reconstructor: BasisReconstructor, shape: tuple[int, int]) -> np.ndarray:
    """Clamped trace(F F^T) for every grid position, shape (sx, sy)."""
    sx, sy = shape
    basis = reconstructor.basis_functions(sx, sy).astype(np.float64)
    norms = np.sum(basis.reshape(basis.shape[0], -1) ** 2, axis=1)
    return np.array([clamp_norm(v) for v in norms]).reshape(sx, sy)


def cross_norms(
    reconstructor: BasisReconstructor,
    shape: tuple[int, int],
    pairs: Sequence[tuple[Position, Position]],
) -> np.ndarray:
    """Clamped trace(F_p F_q^T) for each pair of distinct positions.

    Raises:
        ValueError: If a pair names the same position twice
    """
    sx, sy = shape
    values = []
    for p, q in pairs:
        if tuple(p) == tuple(q):
            raise ValueError(f"Cross norm needs distinct positions, got {p} twice")
        fp = reconstructor.basis_function(sx, sy, *p).astype(np.float64)
        fq = reconstructor.basis_function(sx, sy, *q).astype(np.float64)
        values.append(clamp_norm(np.trace(fp @ fq.T)))
    return np.array(values)


class OrthonormalityReport(NamedTuple):
    """Worst deviations from an orthonormal basis."""
    max_norm_error: float
    max_cross_error: float
    gram: np.ndarray

    def is_orthonormal(self, tolerance: float = 1e-4) -> bool:
        return self.max_norm_error < tolerance and self.max_cross_error < tolerance


def orthonormality_report(
    reconstructor: BasisReconstructor,
    shape: tuple[int, int],
) -> OrthonormalityReport:
    """Compare the full Gram matrix of the basis against the identity."""
    basis = reconstructor.basis_functions(*shape)
    gram = gram_matrix(basis)
    diagonal = np.diag(gram)
    off_diagonal = gram - np.diag(diagonal)
    return OrthonormalityReport(
        max_norm_error=float(np.max(np.abs(diagonal - 1.0))),
        max_cross_error=float(np.max(np.abs(off_diagonal))) if gram.shape[0] > 1 else 0.0,
        gram=gram,
    )
