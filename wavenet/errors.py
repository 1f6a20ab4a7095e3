"""Error taxonomy shared by the filter, training and checkpoint modules.

Unreadable or unwritable files surface as the builtin ``IOError`` (``OSError``).
"""

from __future__ import annotations


class WavenetError(Exception):
    """Base class for all wavenet errors."""


class ShapeError(WavenetError, ValueError):
    """Non radix-2 size, filter length mismatch or inconsistent example shapes."""


class NumericalInstabilityError(WavenetError, ArithmeticError):
    """Non-finite cost or filter value during optimisation."""


class FormatError(WavenetError, ValueError):
    """Snapshot file exists but violates the expected layout or version."""


class DataExhausted(WavenetError, LookupError):
    """Example generator cannot produce the requested example."""
