"""Example sources for wavenet.

Minimal protocol-based production that works with any data source.
"""

from .protocol import (
    ExampleGenerator,
    validate_generator,
    draw_examples,
)
from .generators import (
    GeneratorMode,
    GeneratorBase,
    UniformGenerator,
    NeedleGenerator,
    GaussianGenerator,
    ArrayFileGenerator,
    create_generator,
)

__all__ = [
    'ExampleGenerator',
    'validate_generator',
    'draw_examples',
    'GeneratorMode',
    'GeneratorBase',
    'UniformGenerator',
    'NeedleGenerator',
    'GaussianGenerator',
    'ArrayFileGenerator',
    'create_generator',
]
