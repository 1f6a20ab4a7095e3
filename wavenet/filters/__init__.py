"""Learnable wavelet filters: state, transform and basis reconstruction.

All transforms are periodic and differentiable in the filter coefficients.

Example:
    >>> from wavenet.filters import FilterState, BasisReconstructor
    >>>
    >>> state = FilterState([0.7071068, 0.7071068])
    >>> basis = BasisReconstructor(state).basis_function(16, 16, 0, 0)
    >>> basis.shape
    (16, 16)
"""

from wavenet.filters.state import (
    EPS,
    FilterState,
    is_radix2,
    check_radix2,
    point_on_n_sphere,
)
from wavenet.filters.transform import (
    highpass,
    forward,
    inverse,
    batch_forward,
    batch_inverse,
    level_matrix,
    level_sizes,
    impulses,
)
from wavenet.filters.basis import BasisReconstructor
from wavenet.filters.known import KNOWN_FILTERS, get_filter

__all__ = [
    'EPS',
    'FilterState',
    'is_radix2',
    'check_radix2',
    'highpass',
    'point_on_n_sphere',
    'forward',
    'inverse',
    'batch_forward',
    'batch_inverse',
    'level_matrix',
    'level_sizes',
    'impulses',
    'BasisReconstructor',
    'KNOWN_FILTERS',
    'get_filter',
]
