"""Extended Kalman Filter core.

The recursion is generic: everything specific to the semi-analytical
formulation sits behind the :class:`NonLinearProcess` protocol.  The
process model is stateless; its per-run state is an immutable snapshot
that the filter threads through the calls and keeps between
measurements.

The covariance update uses the Joseph form for guaranteed symmetry and
positive semi-definiteness.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.errors import NumericalError
from astrokalman.estimation._types import (
    MeasurementDecorator,
    NonLinearEvolution,
    ProcessEstimate,
)

logger = logging.getLogger(__name__)


class NonLinearProcess(Protocol):
    """Process model driven by :class:`ExtendedKalmanFilter`."""

    def get_evolution(
        self,
        snapshot: Any,
        previous_time: float,
        previous_state: Array,
        measurement: MeasurementDecorator,
    ) -> tuple[NonLinearEvolution, Any]:
        """Predict the state at the measurement time."""
        ...

    def get_innovation(
        self,
        snapshot: Any,
        measurement: MeasurementDecorator,
        evolution: NonLinearEvolution,
        innovation_covariance: Array,
    ) -> tuple[Array | None, Any]:
        """Normalized innovation, or ``None`` if the measurement is rejected."""
        ...

    def finalize_estimation(
        self,
        snapshot: Any,
        measurement: MeasurementDecorator,
        estimate: ProcessEstimate,
    ) -> Any:
        """Commit the corrected estimate."""
        ...


def ekf_predict(
    time: float,
    state: ArrayLike,
    covariance: ArrayLike,
    stm: ArrayLike,
    process_noise: ArrayLike,
) -> ProcessEstimate:
    """Propagate the covariance with the state transition matrix.

    The predicted state is supplied by the process model; only the
    covariance is propagated here, ``P = Phi P Phi^T + Q``.

    Args:
        time: Time of the prediction.
        state: Predicted state.
        covariance: Covariance at the previous time.
        stm: State transition matrix from the previous time.
        process_noise: Process noise covariance ``Q``.

    Returns:
        ProcessEstimate: Predicted estimate, carrying ``stm``.

    Examples:
        ```python
        import jax.numpy as jnp
        from astrokalman.estimation import ekf_predict

        pred = ekf_predict(1.0, jnp.zeros(2), jnp.eye(2), jnp.eye(2), 1e-6 * jnp.eye(2))
        ```
    """
    dtype = get_dtype()
    state = jnp.asarray(state, dtype=dtype)
    P = jnp.asarray(covariance, dtype=dtype)
    Phi = jnp.asarray(stm, dtype=dtype)
    Q = jnp.asarray(process_noise, dtype=dtype)
    return ProcessEstimate(
        time=time,
        state=state,
        covariance=Phi @ P @ Phi.T + Q,
        state_transition_matrix=Phi,
    )


def ekf_correct(
    predicted: ProcessEstimate,
    measurement_jacobian: ArrayLike,
    noise: ArrayLike,
    innovation: ArrayLike,
    innovation_covariance: ArrayLike,
) -> ProcessEstimate:
    """Incorporate a measurement into a predicted estimate.

    Args:
        predicted: Output of :func:`ekf_predict`.
        measurement_jacobian: Measurement matrix ``H`` of shape ``(n, m)``.
        noise: Measurement noise covariance ``R`` of shape ``(n, n)``.
        innovation: Measurement residual of shape ``(n,)``.
        innovation_covariance: ``S = H P H^T + R``.

    Returns:
        ProcessEstimate: Corrected estimate with ``H``, ``S`` and the
        Kalman gain ``K``.
    """
    dtype = get_dtype()
    x = predicted.state
    P = predicted.covariance
    H = jnp.asarray(measurement_jacobian, dtype=dtype)
    R = jnp.asarray(noise, dtype=dtype)
    innovation = jnp.asarray(innovation, dtype=dtype)
    S = jnp.asarray(innovation_covariance, dtype=dtype)

    # K^T = S^{-1} (H P) since P is symmetric
    K = jnp.linalg.solve(S, H @ P).T

    x_upd = x + K @ innovation

    # Joseph form: P = (I-KH) P (I-KH)^T + K R K^T
    IKH = jnp.eye(x.shape[0], dtype=dtype) - K @ H
    P_upd = IKH @ P @ IKH.T + K @ R @ K.T

    return ProcessEstimate(
        time=predicted.time,
        state=x_upd,
        covariance=P_upd,
        state_transition_matrix=predicted.state_transition_matrix,
        measurement_jacobian=H,
        innovation_covariance=S,
        kalman_gain=K,
    )


def _check_finite(estimate: ProcessEstimate) -> None:
    for name in ("state", "covariance", "kalman_gain"):
        value = getattr(estimate, name)
        if value is not None and not bool(jnp.all(jnp.isfinite(value))):
            raise NumericalError(f"Non-finite {name} at time {estimate.time}")


class ExtendedKalmanFilter:
    """Sequential EKF over a :class:`NonLinearProcess`.

    Args:
        process: Process model.
        initial_estimate: Normalized estimate at time 0.
        snapshot: Initial process model snapshot.
    """

    def __init__(
        self,
        process: NonLinearProcess,
        initial_estimate: ProcessEstimate,
        snapshot: Any,
    ) -> None:
        self._process = process
        self._predicted: ProcessEstimate | None = None
        self._corrected = initial_estimate
        self._snapshot = snapshot

    @property
    def predicted(self) -> ProcessEstimate | None:
        return self._predicted

    @property
    def corrected(self) -> ProcessEstimate:
        return self._corrected

    @property
    def snapshot(self) -> Any:
        return self._snapshot

    def estimation_step(self, measurement: MeasurementDecorator) -> ProcessEstimate:
        """Predict, correct (unless rejected) and commit one measurement.

        Raises:
            NumericalError: If the corrected estimate is not finite.
        """
        evolution, snapshot = self._process.get_evolution(
            self._snapshot, self._corrected.time, self._corrected.state, measurement
        )
        predicted = ekf_predict(
            evolution.time,
            evolution.current_state,
            self._corrected.covariance,
            evolution.state_transition_matrix,
            evolution.process_noise,
        )

        H = evolution.measurement_jacobian
        R = measurement.noise
        S = H @ predicted.covariance @ H.T + R

        innovation, snapshot = self._process.get_innovation(snapshot, measurement, evolution, S)
        if innovation is None:
            corrected = predicted._replace(measurement_jacobian=H, innovation_covariance=S)
        else:
            corrected = ekf_correct(predicted, H, R, innovation, S)
        _check_finite(corrected)

        self._snapshot = self._process.finalize_estimation(snapshot, measurement, corrected)
        self._predicted = predicted
        self._corrected = corrected
        return corrected
