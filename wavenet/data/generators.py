"""Closed set of example generators selected by GeneratorMode.

Synthetic generators draw from numpy.random.default_rng(seed) and return
unit-norm examples, so a fixed seed reproduces the same batch.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import numpy as np

from wavenet.errors import DataExhausted, ShapeError
from wavenet.filters.state import EPS, check_radix2


class GeneratorMode(Enum):
    """Example source; the value appears in project names (Run.<value>.N<k>)."""
    FILE = "File"
    UNIFORM = "Uniform"
    NEEDLE = "Needle"
    GAUSSIAN = "Gaussian"


def _normalize(x: np.ndarray) -> np.ndarray:
    return (x / max(np.linalg.norm(x), EPS)).astype(np.float32)


class GeneratorBase:
    """Shared shape handling and open/closed bookkeeping."""

    def __init__(self, shape: tuple[int, int] = (16, 16)):
        self._shape = (0, 0)
        self._closed = False
        self.set_shape(shape)

    def set_shape(self, shape) -> None:
        shape = tuple(int(s) for s in shape)
        if len(shape) != 2:
            raise ShapeError(f"Examples are 2D, got shape {shape}")
        check_radix2(*shape)
        self._shape = shape

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    def good(self) -> bool:
        return not self._closed

    def close(self) -> None:
        self._closed = True

    def next(self) -> np.ndarray:
        if not self.good():
            raise DataExhausted(f"{type(self).__name__} cannot produce more examples")
        return self._generate()

    def _generate(self) -> np.ndarray:
        raise NotImplementedError


class _RandomGenerator(GeneratorBase):
    def __init__(self, shape: tuple[int, int] = (16, 16), seed: int | None = None):
        super().__init__(shape)
        self._rng = np.random.default_rng(seed)


class UniformGenerator(_RandomGenerator):
    """Independent uniform pixels in [0, 1)."""

    def _generate(self) -> np.ndarray:
        return _normalize(self._rng.uniform(0.0, 1.0, self._shape))


class NeedleGenerator(_RandomGenerator):
    """A straight line segment with random centre, angle and length."""

    def _generate(self) -> np.ndarray:
        sx, sy = self._shape
        image = np.zeros(self._shape)
        centre = self._rng.uniform(0.0, 1.0, 2) * np.array([sx, sy])
        angle = self._rng.uniform(0.0, np.pi)
        half_length = self._rng.uniform(0.25, 0.5) * max(sx, sy)

        t = np.linspace(-half_length, half_length, 4 * max(sx, sy))
        xs = np.floor(centre[0] + t * np.cos(angle)).astype(int)
        ys = np.floor(centre[1] + t * np.sin(angle)).astype(int)
        inside = (xs >= 0) & (xs < sx) & (ys >= 0) & (ys < sy)
        image[xs[inside], ys[inside]] = 1.0
        if not inside.any():
            image[int(centre[0]) % sx, int(centre[1]) % sy] = 1.0
        return _normalize(image)


class GaussianGenerator(_RandomGenerator):
    """An isotropic Gaussian blob with random centre and width."""

    def _generate(self) -> np.ndarray:
        sx, sy = self._shape
        centre = self._rng.uniform(0.0, 1.0, 2) * np.array([sx, sy])
        sigma = self._rng.uniform(0.5, max(max(sx, sy) / 4.0, 0.5))
        x, y = np.meshgrid(np.arange(sx) + 0.5, np.arange(sy) + 0.5, indexing="ij")
        r2 = (x - centre[0]) ** 2 + (y - centre[1]) ** 2
        return _normalize(np.exp(-0.5 * r2 / sigma ** 2))


class ArrayFileGenerator(GeneratorBase):
    """Serves a (K, sx, sy) stack saved with numpy.save, in order.

    A missing file leaves the generator not good() instead of raising, so
    callers can check availability up front.
    """

    def __init__(self, path: str | Path):
        self._closed = False
        self._index = 0
        self._data = None
        self.path = Path(path)
        if self.path.is_file():
            data = np.load(self.path)
            if data.ndim != 3:
                raise ShapeError(f"{self.path}: expected a (K, sx, sy) stack, got shape {data.shape}")
            check_radix2(*data.shape[1:])
            self._data = data.astype(np.float32)
            self._shape = tuple(data.shape[1:])
        else:
            self._shape = (0, 0)

    def set_shape(self, shape) -> None:
        shape = tuple(int(s) for s in shape)
        check_radix2(*shape)
        if self._data is not None and shape != self._shape:
            raise ShapeError(f"{self.path} holds {self._shape} examples, requested {shape}")
        self._shape = shape

    def good(self) -> bool:
        return (
            not self._closed
            and self._data is not None
            and self._index < self._data.shape[0]
        )

    def _generate(self) -> np.ndarray:
        example = self._data[self._index].copy()
        self._index += 1
        return example


_GENERATORS = {
    GeneratorMode.UNIFORM: UniformGenerator,
    GeneratorMode.NEEDLE: NeedleGenerator,
    GeneratorMode.GAUSSIAN: GaussianGenerator,
    GeneratorMode.FILE: ArrayFileGenerator,
}


def create_generator(mode: GeneratorMode | str, **kwargs) -> GeneratorBase:
    """Instantiate the generator for a mode.

    Args:
        mode: GeneratorMode or its value ('File', 'Uniform', 'Needle', 'Gaussian')
        **kwargs: Constructor arguments (`path` for File; `shape`, `seed` otherwise)

    Raises:
        ValueError: If the mode is unknown
    """
    mode = GeneratorMode(mode) if isinstance(mode, str) else mode
    return _GENERATORS[mode](**kwargs)
