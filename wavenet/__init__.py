"""wavenet: learned sparse 2D wavelet filters in JAX.

Public API exports for filter state, cost evaluation, optimisation,
snapshot persistence and analysis.
"""

from wavenet.errors import (
    WavenetError,
    ShapeError,
    NumericalInstabilityError,
    FormatError,
    DataExhausted,
)

from wavenet.filters import (
    FilterState,
    BasisReconstructor,
    get_filter,
)

from wavenet.training import (
    CostEvaluator,
    CostTerms,
    Optimizer,
    OptimizerConfig,
    OptimizerStatus,
    FilterLogEntry,
    CostLogEntry,
    RunSummary,
)

from wavenet.checkpoint import (
    Snapshot,
    SnapshotStore,
    SnapshotCursor,
)

from wavenet.data import (
    GeneratorMode,
    create_generator,
    draw_examples,
)

from wavenet.experiments import (
    RunConfig,
    train_run,
    train_runs,
)

from wavenet.analysis import (
    CostMaps,
    CostMapSampler,
    load_or_sample_cost_maps,
    orthonormality_report,
    summarize_runs,
    select_best_run,
    basis_frames,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "WavenetError",
    "ShapeError",
    "NumericalInstabilityError",
    "FormatError",
    "DataExhausted",

    # Filters
    "FilterState",
    "BasisReconstructor",
    "get_filter",

    # Training
    "CostEvaluator",
    "CostTerms",
    "Optimizer",
    "OptimizerConfig",
    "OptimizerStatus",
    "FilterLogEntry",
    "CostLogEntry",
    "RunSummary",

    # Snapshots
    "Snapshot",
    "SnapshotStore",
    "SnapshotCursor",

    # Examples and runs
    "GeneratorMode",
    "create_generator",
    "draw_examples",
    "RunConfig",
    "train_run",
    "train_runs",

    # Analysis
    "CostMaps",
    "CostMapSampler",
    "load_or_sample_cost_maps",
    "orthonormality_report",
    "summarize_runs",
    "select_best_run",
    "basis_frames",
]
