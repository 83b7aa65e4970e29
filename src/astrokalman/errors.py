"""Exception types raised by the estimation engine.

Malformed input (empty measurement lists, wrong shapes, invalid
configuration values) raises the built-in :class:`ValueError`.  The types
below cover failures detected while the filter is running; all of them
derive from :class:`EstimationError` so a caller can catch a filter-level
failure with a single ``except`` clause.
"""

from __future__ import annotations

from collections.abc import Sequence


class EstimationError(Exception):
    """Base class for failures of the estimation engine."""


class DimensionMismatchError(EstimationError, ValueError):
    """A matrix dimension disagrees with the registered parameter columns.

    Args:
        expected: Number of registered columns.
        actual: Dimension of the offending matrix.
        names: Names of the registered parameters, in column order.
    """

    def __init__(self, expected: int, actual: int, names: Sequence[str]) -> None:
        self.expected = expected
        self.actual = actual
        self.names = list(names)
        super().__init__(
            f"Dimension mismatch: matrix has dimension {actual} but {expected} "
            f"parameters are estimated: {', '.join(self.names)}"
        )


class NumericalError(EstimationError, ArithmeticError):
    """Singular matrix, non-finite value or non-convergent iteration."""
