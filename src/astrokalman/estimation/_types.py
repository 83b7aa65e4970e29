"""Type definitions for the Kalman estimation engine.

- :class:`ProcessEstimate`: normalized state and covariance at a given
  time, plus the matrices that produced them.
- :class:`NonLinearEvolution`: output of the process model prediction
  for one measurement.
- :class:`MeasurementDecorator`: a measurement as seen by the filter
  core (scalar time, observed value, normalized noise).

All types are :class:`~typing.NamedTuple` instances, which JAX treats as
pytrees automatically.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array

from astrokalman.measurements import ObservedMeasurement


class ProcessEstimate(NamedTuple):
    """Normalized estimate of the filter at one time.

    Attributes:
        time: Seconds since the initial epoch of the filter.
        state: Normalized state vector of shape ``(m,)``.
        covariance: Normalized covariance of shape ``(m, m)``.
        state_transition_matrix: Normalized STM used to reach this
            estimate, if any.
        measurement_jacobian: Normalized measurement matrix ``H`` of
            shape ``(n, m)``, if any.
        innovation_covariance: Normalized innovation covariance ``S`` of
            shape ``(n, n)``, if any.
        kalman_gain: Normalized Kalman gain ``K`` of shape ``(m, n)``.
            ``None`` when the measurement was rejected.
    """

    time: float
    state: Array
    covariance: Array
    state_transition_matrix: Array | None = None
    measurement_jacobian: Array | None = None
    innovation_covariance: Array | None = None
    kalman_gain: Array | None = None


class NonLinearEvolution(NamedTuple):
    """Prediction of the process model for one measurement.

    Attributes:
        time: Seconds since the initial epoch.
        current_state: Predicted normalized state.
        state_transition_matrix: Normalized STM from the previous time.
        process_noise: Normalized process noise covariance.
        measurement_jacobian: Normalized measurement matrix.
    """

    time: float
    current_state: Array
    state_transition_matrix: Array
    process_noise: Array
    measurement_jacobian: Array


class MeasurementDecorator(NamedTuple):
    """Measurement wrapped for the filter core.

    Attributes:
        measurement: The observed measurement.
        time: Seconds between the filter initial epoch and the
            measurement date.
        noise: Normalized measurement noise, the correlation matrix of
            the measurement components.
    """

    measurement: ObservedMeasurement
    time: float
    noise: Array
