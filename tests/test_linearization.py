"""Tests for the normalized measurement matrix."""

import jax.numpy as jnp

from astrokalman.drivers import ParameterDriver
from astrokalman.epoch import Epoch
from astrokalman.estimation import ParameterRegistry, measurement_matrix
from astrokalman.measurements import Bias, Position, Range
from astrokalman.orbits import EQUINOCTIAL_ELEMENT_NAMES

T0 = Epoch(2024, 1, 1)
STATE = jnp.array([6878e3, 10e3, -5e3, 10.0, 7600.0, 1.0])
SCALES = jnp.array([20.0, 3e-6, 3e-6, 1e-6, 1e-6, 3e-6])
DCDY = jnp.arange(36.0).reshape(6, 6) / 36.0 + jnp.eye(6)


def _registry(selected=(True,) * 6, propagation=(), measurement=()):
    orbital = [
        ParameterDriver(name, 0.0, float(scale), selected=sel)
        for name, scale, sel in zip(EQUINOCTIAL_ELEMENT_NAMES, SCALES, selected)
    ]
    return ParameterRegistry.build(orbital, list(propagation), list(measurement), T0)


class TestMeasurementMatrix:
    def test_orbital_block(self):
        registry = _registry()
        estimated = Position(T0, STATE[:3], 2.0).estimate(1, STATE)
        b1 = 1e-3 * jnp.ones((6, 6))
        H = measurement_matrix(registry, estimated, DCDY, b1, jnp.zeros((6, 0)))
        physical = estimated.state_derivatives @ DCDY @ (jnp.eye(6) + b1)
        assert H.shape == (3, 6)
        assert jnp.allclose(H, physical * SCALES[None, :] / 2.0)

    def test_no_short_period(self):
        registry = _registry()
        estimated = Position(T0, STATE[:3], 1.0).estimate(1, STATE)
        H = measurement_matrix(registry, estimated, jnp.eye(6), jnp.zeros((6, 6)), jnp.zeros((6, 0)))
        assert jnp.allclose(H, jnp.hstack([jnp.diag(SCALES[:3]), jnp.zeros((3, 3))]))

    def test_unselected_orbital_column_is_zero(self):
        registry = _registry(selected=(True, True, False, True, True, True))
        estimated = Position(T0, STATE[:3], 1.0).estimate(1, STATE)
        H = measurement_matrix(registry, estimated, DCDY, jnp.zeros((6, 6)), jnp.zeros((6, 0)))
        assert jnp.array_equal(H[:, 2], jnp.zeros(3))
        assert not jnp.allclose(H[:, 1], 0.0)

    def test_propagation_block(self):
        drag = ParameterDriver("drag coefficient", 2.2, 0.125, selected=True)
        registry = _registry(propagation=[drag])
        estimated = Position(T0, STATE[:3], 1.0).estimate(1, STATE)
        b4 = jnp.linspace(1.0, 2.0, 6).reshape(6, 1)
        H = measurement_matrix(registry, estimated, DCDY, jnp.zeros((6, 6)), b4)
        expected = estimated.state_derivatives @ DCDY @ b4 * 0.125
        assert jnp.allclose(H[:, 6:], expected)

    def test_bias_column(self):
        bias = Bias(["range bias"], [0.0], [2.0])
        bias.parameter_drivers[0].selected = True
        measurement = Range(T0, 1.0, 4.0, jnp.zeros(3), modifiers=[bias])
        registry = _registry(measurement=measurement.parameter_drivers)
        estimated = measurement.estimate(1, STATE)
        H = measurement_matrix(registry, estimated, DCDY, jnp.zeros((6, 6)), jnp.zeros((6, 0)))
        assert H.shape == (1, 7)
        # dM/dbias = 1, times scale 2 over sigma 4
        assert float(H[0, 6]) == 0.5

    def test_unselected_bias_has_no_column(self):
        bias = Bias(["range bias"], [0.0], [2.0])
        measurement = Range(T0, 1.0, 4.0, jnp.zeros(3), modifiers=[bias])
        registry = _registry(measurement=measurement.parameter_drivers)
        estimated = measurement.estimate(1, STATE)
        H = measurement_matrix(registry, estimated, DCDY, jnp.zeros((6, 6)), jnp.zeros((6, 0)))
        assert H.shape == (1, 6)
