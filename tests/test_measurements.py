"""Tests for the astrokalman.measurements module.

Tests cover:
- Position, PV and Range theoretical values and Jacobians
- Bias modifiers and their parameter derivatives
- Static and dynamic outlier filters with warm-up
"""

import jax.numpy as jnp
import pytest

from astrokalman.epoch import Epoch
from astrokalman.measurements import (
    PV,
    Bias,
    DynamicOutlierFilter,
    EstimatedMeasurement,
    MeasurementStatus,
    ModifierKind,
    OutlierFilter,
    Position,
    Range,
)

T0 = Epoch(2024, 1, 1)
STATE = jnp.array([6878e3, 10e3, -5e3, 10.0, 7600.0, 1.0])


# ──────────────────────────────────────────────
# Observation models
# ──────────────────────────────────────────────


class TestPosition:
    def test_value(self):
        estimated = Position(T0, STATE[:3], 1.0).estimate(1, STATE)
        assert isinstance(estimated, EstimatedMeasurement)
        assert jnp.allclose(estimated.value, STATE[:3])
        assert jnp.allclose(estimated.residual, jnp.zeros(3))

    def test_state_derivatives(self):
        estimated = Position(T0, STATE[:3], 1.0).estimate(1, STATE)
        expected = jnp.hstack([jnp.eye(3), jnp.zeros((3, 3))])
        assert jnp.allclose(estimated.state_derivatives, expected)
        assert estimated.parameter_derivatives == {}

    def test_sigma_broadcast(self):
        assert jnp.allclose(Position(T0, STATE[:3], 2.0).sigma, jnp.full(3, 2.0))

    def test_default_correlation(self):
        assert jnp.array_equal(Position(T0, STATE[:3], 1.0).correlation, jnp.eye(3))

    def test_wrong_shape_raises(self):
        with pytest.raises(ValueError, match="observed components"):
            Position(T0, [1.0, 2.0], 1.0)

    def test_non_positive_sigma_raises(self):
        with pytest.raises(ValueError, match="sigma"):
            Position(T0, STATE[:3], [1.0, 0.0, 1.0])

    def test_bad_correlation_shape_raises(self):
        with pytest.raises(ValueError, match="correlation"):
            Position(T0, STATE[:3], 1.0, correlation=jnp.eye(2))


class TestPV:
    def test_identity_jacobian(self):
        estimated = PV(T0, STATE, [1.0, 1.0, 1.0, 0.01, 0.01, 0.01]).estimate(1, STATE)
        assert jnp.allclose(estimated.value, STATE)
        assert jnp.allclose(estimated.state_derivatives, jnp.eye(6))


class TestRange:
    def test_value_and_gradient(self):
        observer = jnp.array([6378e3, 0.0, 0.0])
        rho = float(jnp.linalg.norm(STATE[:3] - observer))
        estimated = Range(T0, rho, 5.0, observer).estimate(1, STATE)
        assert float(estimated.value[0]) == pytest.approx(rho)
        unit = (STATE[:3] - observer) / rho
        assert jnp.allclose(estimated.state_derivatives[0, :3], unit)
        assert jnp.allclose(estimated.state_derivatives[0, 3:], jnp.zeros(3))

    def test_observer_shape(self):
        with pytest.raises(ValueError, match="observer"):
            Range(T0, 1.0, 1.0, [0.0, 0.0])


# ──────────────────────────────────────────────
# Modifiers
# ──────────────────────────────────────────────


class TestBias:
    def test_kind(self):
        assert Bias(["b"], [0.0], [1.0]).kind is ModifierKind.BIAS

    def test_bias_added(self):
        bias = Bias(["bx", "by", "bz"], [1.0, 2.0, 3.0], [1.0, 1.0, 1.0])
        estimated = Position(T0, STATE[:3], 1.0, modifiers=[bias]).estimate(1, STATE)
        assert jnp.allclose(estimated.value, STATE[:3] + jnp.array([1.0, 2.0, 3.0]))

    def test_parameter_override(self):
        bias = Bias(["range bias"], [0.0], [1.0])
        observer = jnp.zeros(3)
        estimated = Range(T0, 1.0, 1.0, observer, modifiers=[bias]).estimate(
            1, STATE, {"range bias": 7.5}
        )
        assert float(estimated.value[0]) == pytest.approx(float(jnp.linalg.norm(STATE[:3])) + 7.5)

    def test_parameter_derivatives(self):
        bias = Bias(["bx", "by", "bz"], [0.0] * 3, [1.0] * 3)
        estimated = Position(T0, STATE[:3], 1.0, modifiers=[bias]).estimate(1, STATE)
        assert jnp.allclose(estimated.parameter_derivatives["by"], jnp.array([0.0, 1.0, 0.0]))

    def test_measurement_drivers(self):
        bias = Bias(["bx", "by", "bz"], [0.0] * 3, [1.0] * 3)
        measurement = Position(T0, STATE[:3], 1.0, modifiers=[OutlierFilter(0, 3.0), bias])
        assert [d.name for d in measurement.parameter_drivers] == ["bx", "by", "bz"]

    def test_dimension_mismatch_raises(self):
        bias = Bias(["b"], [0.0], [1.0])
        with pytest.raises(ValueError, match="components"):
            Position(T0, STATE[:3], 1.0, modifiers=[bias]).estimate(1, STATE)

    def test_inconsistent_lengths_raise(self):
        with pytest.raises(ValueError, match="one value and one scale"):
            Bias(["a", "b"], [0.0], [1.0, 1.0])


class TestOutlierFilter:
    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="warmup"):
            OutlierFilter(-1, 3.0)
        with pytest.raises(ValueError, match="max_sigma"):
            OutlierFilter(0, 0.0)

    def test_rejects_large_residual(self):
        observed = STATE[:3] + jnp.array([0.0, 50.0, 0.0])
        measurement = Position(T0, observed, 1.0, modifiers=[OutlierFilter(0, 3.0)])
        assert measurement.estimate(1, STATE).status is MeasurementStatus.REJECTED

    def test_keeps_small_residual(self):
        observed = STATE[:3] + jnp.array([0.0, 2.0, 0.0])
        measurement = Position(T0, observed, 1.0, modifiers=[OutlierFilter(0, 3.0)])
        assert measurement.estimate(1, STATE).status is MeasurementStatus.PROCESSED

    def test_warmup(self):
        observed = STATE[:3] + jnp.array([0.0, 50.0, 0.0])
        measurement = Position(T0, observed, 1.0, modifiers=[OutlierFilter(5, 3.0)])
        assert measurement.estimate(5, STATE).status is MeasurementStatus.PROCESSED
        assert measurement.estimate(6, STATE).status is MeasurementStatus.REJECTED

    def test_added_modifier(self):
        observed = STATE[:3] + jnp.array([0.0, 50.0, 0.0])
        measurement = Position(T0, observed, 1.0)
        measurement.add_modifier(OutlierFilter(0, 3.0))
        assert measurement.estimate(1, STATE).status is MeasurementStatus.REJECTED


class TestDynamicOutlierFilter:
    def test_kind(self):
        assert DynamicOutlierFilter(0, 3.0).kind is ModifierKind.DYNAMIC_OUTLIER

    def test_unset_sigma_never_rejects(self):
        observed = STATE[:3] + 1e6
        measurement = Position(T0, observed, 1.0, modifiers=[DynamicOutlierFilter(0, 3.0)])
        assert measurement.estimate(1, STATE).status is MeasurementStatus.PROCESSED

    def test_installed_sigma(self):
        outlier = DynamicOutlierFilter(0, 3.0)
        observed = STATE[:3] + jnp.array([0.0, 50.0, 0.0])
        measurement = Position(T0, observed, 1.0, modifiers=[outlier])
        outlier.sigma = jnp.full(3, 100.0)
        assert measurement.estimate(1, STATE).status is MeasurementStatus.PROCESSED
        outlier.sigma = jnp.full(3, 10.0)
        assert measurement.estimate(1, STATE).status is MeasurementStatus.REJECTED
