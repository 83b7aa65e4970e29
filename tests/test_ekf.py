"""Tests for the generic extended Kalman filter core."""

from types import SimpleNamespace

import jax.numpy as jnp
import pytest

from astrokalman.errors import NumericalError
from astrokalman.estimation import (
    ExtendedKalmanFilter,
    MeasurementDecorator,
    NonLinearEvolution,
    ProcessEstimate,
    ekf_correct,
    ekf_predict,
)


class _ScalarRandomWalk:
    """Two-state process observing the first component.

    The snapshot counts the committed measurements.  A measurement whose
    ``reject`` attribute is set gets no innovation.
    """

    def __init__(self, noise=0.0, state_override=None):
        self.noise = noise
        self.state_override = state_override

    def get_evolution(self, snapshot, previous_time, previous_state, measurement):
        state = previous_state if self.state_override is None else self.state_override
        evolution = NonLinearEvolution(
            time=measurement.time,
            current_state=state,
            state_transition_matrix=jnp.array([[1.0, 1.0], [0.0, 1.0]]),
            process_noise=self.noise * jnp.eye(2),
            measurement_jacobian=jnp.array([[1.0, 0.0]]),
        )
        return evolution, snapshot

    def get_innovation(self, snapshot, measurement, evolution, innovation_covariance):
        if measurement.measurement.reject:
            return None, snapshot
        predicted = evolution.measurement_jacobian @ evolution.current_state
        return measurement.measurement.observed - predicted, snapshot

    def finalize_estimation(self, snapshot, measurement, estimate):
        return snapshot + 1


def _decorated(time, observed, reject=False):
    measurement = SimpleNamespace(observed=jnp.array([observed]), reject=reject)
    return MeasurementDecorator(measurement=measurement, time=time, noise=jnp.eye(1))


class TestPredictCorrect:
    def test_predict_covariance(self):
        Phi = jnp.array([[1.0, 2.0], [0.0, 1.0]])
        P = jnp.diag(jnp.array([1.0, 4.0]))
        pred = ekf_predict(1.0, jnp.zeros(2), P, Phi, 0.5 * jnp.eye(2))
        assert jnp.allclose(pred.covariance, Phi @ P @ Phi.T + 0.5 * jnp.eye(2))
        assert jnp.array_equal(pred.state_transition_matrix, Phi)
        assert pred.kalman_gain is None

    def test_scalar_correction(self):
        pred = ProcessEstimate(time=1.0, state=jnp.array([0.0]), covariance=jnp.array([[1.0]]))
        H = jnp.array([[1.0]])
        R = jnp.array([[1.0]])
        corr = ekf_correct(pred, H, R, jnp.array([2.0]), H @ pred.covariance @ H.T + R)
        assert float(corr.kalman_gain[0, 0]) == pytest.approx(0.5)
        assert float(corr.state[0]) == pytest.approx(1.0)
        assert float(corr.covariance[0, 0]) == pytest.approx(0.5)
        assert float(corr.innovation_covariance[0, 0]) == pytest.approx(2.0)

    def test_joseph_form_symmetric(self):
        P = jnp.array([[2.0, 0.3, 0.1], [0.3, 1.0, 0.2], [0.1, 0.2, 0.5]])
        pred = ProcessEstimate(time=0.0, state=jnp.zeros(3), covariance=P)
        H = jnp.array([[1.0, 0.5, 0.0], [0.0, 1.0, 2.0]])
        R = 0.1 * jnp.eye(2)
        corr = ekf_correct(pred, H, R, jnp.array([0.1, -0.2]), H @ P @ H.T + R)
        assert jnp.allclose(corr.covariance, corr.covariance.T, atol=1e-14)
        assert jnp.all(jnp.linalg.eigvalsh(corr.covariance) > 0.0)
        assert jnp.trace(corr.covariance) < jnp.trace(P)


class TestExtendedKalmanFilter:
    def _filter(self, process=None):
        initial = ProcessEstimate(time=0.0, state=jnp.zeros(2), covariance=jnp.eye(2))
        return ExtendedKalmanFilter(process or _ScalarRandomWalk(), initial, 0)

    def test_step_updates_state(self):
        kf = self._filter()
        corrected = kf.estimation_step(_decorated(1.0, 2.0))
        assert corrected.time == 1.0
        assert corrected.kalman_gain is not None
        assert float(corrected.state[0]) > 0.0
        assert kf.corrected is corrected
        assert kf.predicted.time == 1.0
        assert kf.snapshot == 1

    def test_rejected_measurement_skips_correction(self):
        kf = self._filter()
        corrected = kf.estimation_step(_decorated(1.0, 100.0, reject=True))
        predicted = kf.predicted
        assert jnp.array_equal(corrected.state, predicted.state)
        assert jnp.array_equal(corrected.covariance, predicted.covariance)
        assert corrected.kalman_gain is None
        assert corrected.measurement_jacobian is not None
        assert corrected.innovation_covariance is not None
        assert kf.snapshot == 1

    def test_continues_after_rejection(self):
        kf = self._filter()
        kf.estimation_step(_decorated(1.0, 100.0, reject=True))
        corrected = kf.estimation_step(_decorated(2.0, 0.5))
        assert corrected.kalman_gain is not None
        assert kf.snapshot == 2

    def test_covariance_shrinks_with_measurements(self):
        kf = self._filter()
        for k in range(1, 6):
            kf.estimation_step(_decorated(float(k), 0.0))
        assert float(kf.corrected.covariance[0, 0]) < 1.0

    def test_non_finite_raises(self):
        kf = self._filter(_ScalarRandomWalk(state_override=jnp.array([jnp.nan, 0.0])))
        with pytest.raises(NumericalError, match="Non-finite"):
            kf.estimation_step(_decorated(1.0, 0.0))
