"""Filter training for wavenet.

Functional training library with:
- Immutable optimiser configuration and log entries
- A pure, traceable cost shared by training and analysis
- An optax-driven optimiser state machine with filter and cost logs
"""

from wavenet.training.types import (
    OptimizerStatus,
    OptimizerConfig,
    CostTerms,
    FilterLogEntry,
    CostLogEntry,
    RunSummary,
    to_scalar,
    terms_to_floats,
)

from wavenet.training.metrics import (
    format_terms,
    cost_log_to_dict,
    filter_log_to_array,
    save_cost_log_json,
    load_cost_log_json,
)

from wavenet.training.cost import (
    CostEvaluator,
    basis_sample_indices,
    sparsity_cost,
    regularization_cost,
)

from wavenet.training.optimizer import (
    Optimizer,
    create_tx,
    create_train_step,
)

__all__ = [
    # Types
    "OptimizerStatus",
    "OptimizerConfig",
    "CostTerms",
    "FilterLogEntry",
    "CostLogEntry",
    "RunSummary",
    "to_scalar",
    "terms_to_floats",
    # Metrics
    "format_terms",
    "cost_log_to_dict",
    "filter_log_to_array",
    "save_cost_log_json",
    "load_cost_log_json",
    # Cost
    "CostEvaluator",
    "basis_sample_indices",
    "sparsity_cost",
    "regularization_cost",
    # Optimiser
    "Optimizer",
    "create_tx",
    "create_train_step",
]
