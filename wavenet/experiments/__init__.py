"""Run configuration and multi-run orchestration."""

from .config import (
    RunConfig,
    config_to_dict,
    config_hash,
)
from .runs import (
    run_id_for,
    create_evaluator,
    generator_for,
    train_run,
    train_runs,
)

__all__ = [
    'RunConfig',
    'config_to_dict',
    'config_hash',
    'run_id_for',
    'create_evaluator',
    'generator_for',
    'train_run',
    'train_runs',
]
