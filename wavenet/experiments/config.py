"""Type-safe run configuration with hashing and serialization."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from wavenet.data.generators import GeneratorMode
from wavenet.filters.state import check_radix2
from wavenet.training.types import OptimizerConfig


def config_to_dict(config: Any) -> dict:
    """
    Convert a dataclass config to a dictionary, handling nested configs.

    Enum members are stored by value and tuples as lists so the result is
    plain JSON.

    Args:
        config: Dataclass instance

    Returns:
        Dictionary representation
    """
    if hasattr(config, '__dataclass_fields__'):
        result = {}
        for f in fields(config):
            result[f.name] = config_to_dict(getattr(config, f.name))
        return result
    if isinstance(config, Enum):
        return config.value
    if isinstance(config, tuple):
        return list(config)
    return config


def config_hash(config: Any) -> str:
    """
    Compute deterministic hash of a configuration.

    Uses SHA256 hash of the sorted JSON representation for reproducibility.

    Returns:
        8-character hex hash
    """
    json_str = json.dumps(config_to_dict(config), sort_keys=True, default=str)
    return hashlib.sha256(json_str.encode()).hexdigest()[:8]


@dataclass(frozen=True)
class RunConfig:
    """
    Everything needed to reproduce a series of optimisation runs.

    Args:
        mode: Example source
        num_coeffs: Filter length (even)
        shape: Radix-2 example shape (sx, sy)
        num_examples: Examples drawn once and shared by every run
        num_runs: Runs per series, numbered from 1
        output_dir: Root directory of all projects
        lambda_reg: Weight of the orthonormality penalty
        basis_sample: Basis functions entering the penalty (None = all)
        optimizer: Optimiser settings for each run
        checkpoint_every: Periodic checkpoint interval (None = end of run only)
        seed: Seed for examples and initial filters
        data_path: .npy example stack, required by the File mode
    """
    mode: GeneratorMode = GeneratorMode.NEEDLE
    num_coeffs: int = 4
    shape: tuple[int, int] = (16, 16)
    num_examples: int = 32
    num_runs: int = 1
    output_dir: str = 'output'
    lambda_reg: float = 10.0
    basis_sample: int | None = None
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    checkpoint_every: int | None = None
    seed: int = 42
    data_path: str | None = None

    def __post_init__(self):
        if isinstance(self.mode, str):
            object.__setattr__(self, 'mode', GeneratorMode(self.mode))
        if isinstance(self.optimizer, dict):
            object.__setattr__(self, 'optimizer', OptimizerConfig(**self.optimizer))
        object.__setattr__(self, 'shape', tuple(int(s) for s in self.shape))
        check_radix2(*self.shape)
        if self.num_coeffs < 2 or self.num_coeffs % 2:
            raise ValueError(f"num_coeffs must be even and >= 2, got {self.num_coeffs}")
        if self.num_runs < 1 or self.num_examples < 1:
            raise ValueError("num_runs and num_examples must be positive")
        if self.mode is GeneratorMode.FILE and self.data_path is None:
            raise ValueError("File mode requires data_path")

    @property
    def project(self) -> str:
        """Series name, e.g. 'Run.Needle.N4'."""
        return f"Run.{self.mode.value}.N{self.num_coeffs}"

    @property
    def run_dir(self) -> Path:
        return Path(self.output_dir) / self.project

    @property
    def snapshot_pattern(self) -> str:
        return str(self.run_dir / 'snapshots' / f"{self.project}.%06u.snap")

    def hash(self) -> str:
        """Get deterministic hash of this configuration."""
        return config_hash(self)

    def to_dict(self) -> dict:
        return config_to_dict(self)

    def save(self, path: str | Path | None = None) -> Path:
        """Save configuration to JSON (default: <run_dir>/config.json)."""
        path = Path(path) if path is not None else self.run_dir / 'config.json'
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        return path

    @classmethod
    def from_dict(cls, config_dict: dict) -> "RunConfig":
        return cls(**config_dict)

    @classmethod
    def load(cls, path: str | Path) -> "RunConfig":
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))
