"""Tests for wavenet.training.cost."""

from __future__ import annotations

import numpy as np
import pytest

from wavenet.errors import ShapeError
from wavenet.filters import get_filter
from wavenet.training import CostEvaluator, CostTerms, basis_sample_indices


def _examples(count=4, shape=(8, 8), seed=0):
    return np.random.default_rng(seed).standard_normal((count, *shape)).astype(np.float32)


@pytest.mark.parametrize('name', ['haar', 'db2'])
def test_orthonormal_filter_has_no_regularization(name):
    """Test that orthonormal filters pay no regularisation."""
    terms = CostEvaluator().terms(get_filter(name), _examples())
    assert terms.regularization < 1e-5
    assert np.isclose(terms.combined, terms.sparsity, atol=1e-4)


def test_terms_are_consistent():
    """Test combined = sparsity + lambda * regularization."""
    evaluator = CostEvaluator(lambda_reg=3.0)
    terms = evaluator.terms([0.3, 0.9, 0.1, -0.2], _examples())
    assert isinstance(terms, CostTerms)
    assert np.isclose(terms.combined, terms.sparsity + 3.0 * terms.regularization, rtol=1e-5)
    assert evaluator.evaluate([0.3, 0.9, 0.1, -0.2], _examples()) == terms.combined


def test_sparsity_bounds():
    """Test sparsity stays within [1/sqrt(n), 1]."""
    n = 64
    terms = CostEvaluator().terms(get_filter('haar'), _examples())
    assert 1.0 / np.sqrt(n) - 1e-6 <= terms.sparsity <= 1.0 + 1e-6


def test_constant_image_is_maximally_sparse_under_haar():
    """Test a constant image reaches the lower sparsity bound."""
    example = np.ones((8, 8), dtype=np.float32)
    terms = CostEvaluator().terms(get_filter('haar'), [example])
    assert np.isclose(terms.sparsity, 1.0 / 8.0, atol=1e-5)


def test_evaluation_is_deterministic():
    """Test repeated evaluation gives identical terms."""
    evaluator = CostEvaluator()
    filt = [0.2, 0.4, 0.6, 0.8]
    assert evaluator.terms(filt, _examples()) == evaluator.terms(filt, _examples())


def test_gradient_step_lowers_cost():
    """Test a small step against the gradient lowers the cost."""
    evaluator = CostEvaluator()
    filt = np.array([0.9, -0.3, 0.2, 0.5], dtype=np.float32)
    examples = _examples()
    terms, grad = evaluator.value_and_grad(filt, examples)
    grad = np.asarray(grad)
    assert grad.shape == (4,)
    assert np.all(np.isfinite(grad))
    stepped = filt - 1e-3 * grad / np.linalg.norm(grad)
    assert evaluator.evaluate(stepped, examples) < float(terms.combined)


def test_basis_sample_matches_full_at_orthonormal_filter():
    """Test sampled regularisation vanishes for db2."""
    sampled = CostEvaluator(basis_sample=8).terms(get_filter('db2'), _examples())
    assert sampled.regularization < 1e-5


def test_basis_sample_indices():
    """Test evenly strided basis subsets."""
    assert np.array_equal(basis_sample_indices(64, None), np.arange(64))
    assert np.array_equal(basis_sample_indices(64, 100), np.arange(64))
    assert np.array_equal(basis_sample_indices(64, 4), [0, 21, 42, 63])
    with pytest.raises(ValueError):
        basis_sample_indices(64, 0)


def test_prepare_accepts_single_example():
    """Test a single 2D example becomes a batch of one."""
    batch = CostEvaluator.prepare(np.ones((4, 4)))
    assert batch.shape == (1, 4, 4)
    assert batch.dtype == np.float32


@pytest.mark.parametrize('examples', [
    [],
    [np.ones((8, 8)), np.ones((4, 4))],
    [np.ones((12, 8))],
])
def test_prepare_rejects_bad_batches(examples):
    """Test empty, ragged and non radix-2 batches raise ShapeError."""
    with pytest.raises(ShapeError):
        CostEvaluator.prepare(examples)
