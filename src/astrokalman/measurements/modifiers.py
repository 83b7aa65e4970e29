"""Measurement modifiers.

Modifiers form a small tagged variant: every modifier carries a
:class:`ModifierKind` in its ``kind`` attribute, and the estimation
engine dispatches on that tag.

- :class:`Bias` adds estimated constant offsets to the theoretical value.
  Each component has its own parameter driver.
- :class:`OutlierFilter` rejects a measurement whose residual exceeds
  ``max_sigma`` times the theoretical standard deviation.
- :class:`DynamicOutlierFilter` does the same against a standard
  deviation installed by the filter just before the test and cleared
  right after it.  While unset it never rejects.

Outlier filters only act once the measurement number exceeds their
``warmup`` count.
"""

from __future__ import annotations

import dataclasses
import enum
import math
from collections.abc import Mapping, Sequence
from typing import Union

import jax.numpy as jnp
from jax import Array

from astrokalman.drivers import ParameterDriver
from astrokalman.measurements._types import EstimatedMeasurement, MeasurementStatus


class ModifierKind(enum.Enum):
    """Tag identifying the variant of a measurement modifier."""

    BIAS = "bias"
    OUTLIER = "outlier"
    DYNAMIC_OUTLIER = "dynamic outlier"


class Bias:
    """Additive measurement bias, one driver per measurement component.

    Args:
        names: Driver name of each component. Measurements sharing a
            name share the estimated bias.
        values: Initial (reference) bias of each component.
        scales: Normalization scale of each component.
        min_values: Optional lower bounds.
        max_values: Optional upper bounds.

    Examples:
        ```python
        from astrokalman.measurements import Bias
        bias = Bias(["range bias"], [0.0], [1.0])
        bias.parameter_drivers[0].selected = True
        ```
    """

    kind = ModifierKind.BIAS

    def __init__(
        self,
        names: Sequence[str],
        values: Sequence[float],
        scales: Sequence[float],
        min_values: Sequence[float] | None = None,
        max_values: Sequence[float] | None = None,
    ) -> None:
        n = len(names)
        if len(values) != n or len(scales) != n:
            raise ValueError(
                f"Bias needs one value and one scale per name, got {n} names, "
                f"{len(values)} values and {len(scales)} scales"
            )
        min_values = min_values if min_values is not None else [-math.inf] * n
        max_values = max_values if max_values is not None else [math.inf] * n
        self._drivers = [
            ParameterDriver(name, value, scale, lo, hi)
            for name, value, scale, lo, hi in zip(names, values, scales, min_values, max_values)
        ]

    @property
    def parameter_drivers(self) -> list[ParameterDriver]:
        return list(self._drivers)

    def apply(self, value: Array, params: Mapping[str, Array]) -> Array:
        """Add the bias taken from ``params`` (keyed by driver name)."""
        if value.shape[0] != len(self._drivers):
            raise ValueError(
                f"Bias has {len(self._drivers)} components but the measurement "
                f"has dimension {value.shape[0]}"
            )
        return value + jnp.stack([params[d.name] for d in self._drivers])


class OutlierFilter:
    """Reject measurements with residuals beyond ``max_sigma`` standard deviations.

    Args:
        warmup: Number of measurements processed before rejection starts.
        max_sigma: Rejection threshold in standard deviations.
    """

    kind = ModifierKind.OUTLIER

    def __init__(self, warmup: int, max_sigma: float) -> None:
        if warmup < 0:
            raise ValueError(f"warmup must be non-negative, got {warmup}")
        if max_sigma <= 0.0:
            raise ValueError(f"max_sigma must be positive, got {max_sigma}")
        self.warmup = warmup
        self.max_sigma = max_sigma

    def _reject(self, estimated: EstimatedMeasurement, sigma: Array) -> EstimatedMeasurement:
        if estimated.iteration <= self.warmup:
            return estimated
        excess = jnp.abs(estimated.residual) > self.max_sigma * jnp.asarray(sigma)
        if bool(jnp.any(excess)):
            return dataclasses.replace(estimated, status=MeasurementStatus.REJECTED)
        return estimated

    def apply(self, estimated: EstimatedMeasurement) -> EstimatedMeasurement:
        return self._reject(estimated, estimated.observed.sigma)


class DynamicOutlierFilter(OutlierFilter):
    """Outlier filter against an externally installed standard deviation.

    The ``sigma`` slot is ``None`` when unset; in that state :meth:`apply`
    returns the estimate unchanged.
    """

    kind = ModifierKind.DYNAMIC_OUTLIER

    def __init__(self, warmup: int, max_sigma: float) -> None:
        super().__init__(warmup, max_sigma)
        self.sigma: Array | None = None

    def apply(self, estimated: EstimatedMeasurement) -> EstimatedMeasurement:
        if self.sigma is None:
            return estimated
        return self._reject(estimated, self.sigma)


Modifier = Union[Bias, OutlierFilter, DynamicOutlierFilter]
