"""Analysis of trained filters and stored run series.

Key features:
- Cost landscapes over the first two coefficients, cached as .npy
- Orthonormality diagnostics of the reconstructed basis
- Snapshot traversal summaries and best-run selection
"""

from .costmap import (
    CostMaps,
    CostMapSampler,
    grid_axis,
    step_for_extent,
    cost_map_base_name,
    cost_map_paths,
    save_cost_maps,
    load_cost_maps,
    load_or_sample_cost_maps,
)
from .orthonormality import (
    clamp_norm,
    gram_matrix,
    self_norms,
    cross_norms,
    OrthonormalityReport,
    orthonormality_report,
)
from .runs import (
    summarize_snapshot,
    summarize_runs,
    select_best_run,
    cost_curve,
    filter_trajectory,
    keep_frame,
    basis_frames,
)

__all__ = [
    # Cost maps
    'CostMaps',
    'CostMapSampler',
    'grid_axis',
    'step_for_extent',
    'cost_map_base_name',
    'cost_map_paths',
    'save_cost_maps',
    'load_cost_maps',
    'load_or_sample_cost_maps',
    # Orthonormality
    'clamp_norm',
    'gram_matrix',
    'self_norms',
    'cross_norms',
    'OrthonormalityReport',
    'orthonormality_report',
    # Run series
    'summarize_snapshot',
    'summarize_runs',
    'select_best_run',
    'cost_curve',
    'filter_trajectory',
    'keep_frame',
    'basis_frames',
]
