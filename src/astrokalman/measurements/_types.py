"""Type definitions for measurement evaluation.

- :class:`MeasurementStatus`: whether a measurement is used by the
  filter or rejected by an outlier filter.
- :class:`EstimatedMeasurement`: theoretical value of an observation at
  a candidate state together with its partial derivatives.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jax import Array

if TYPE_CHECKING:
    from astrokalman.measurements.models import ObservedMeasurement


class MeasurementStatus(enum.Enum):
    """Outcome of the outlier filters for one measurement."""

    PROCESSED = "processed"
    REJECTED = "rejected"


@dataclass(frozen=True, eq=False)
class EstimatedMeasurement:
    """Theoretical value of an observed measurement.

    Instances are immutable; outlier filters return a copy with an updated
    ``status`` (see :func:`dataclasses.replace`).

    Attributes:
        observed: The measurement this estimate belongs to.
        iteration: Number of the measurement in the processing pass.
        value: Estimated measurement vector, shape ``(n,)``.
        cartesian_state: Inertial state the estimate was computed at.
        state_derivatives: Jacobian of ``value`` with respect to the
            Cartesian state, shape ``(n, 6)``.
        parameter_derivatives: Jacobian of ``value`` with respect to each
            measurement parameter, keyed by driver name, each of shape
            ``(n,)``.
        status: Outlier filter outcome.
    """

    observed: ObservedMeasurement
    iteration: int
    value: Array
    cartesian_state: Array
    state_derivatives: Array
    parameter_derivatives: dict[str, Array] = field(default_factory=dict)
    status: MeasurementStatus = MeasurementStatus.PROCESSED

    @property
    def residual(self) -> Array:
        """Observed minus estimated value."""
        return self.observed.observed - self.value
