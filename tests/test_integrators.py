"""Tests for the astrokalman.integrators module.

Tests cover:
- Polynomial exactness (RK4 is exact for degree <= 3 polynomials)
- Exponential decay with known solution
- Multi-step integration, backward and zero-length intervals
- Differentiability of ``integrate`` with ``jax.jacfwd``
"""

import jax
import jax.numpy as jnp
import pytest

from astrokalman.integrators import StepResult, integrate, rk4_step


def _exponential_decay(t, x):
    """dx/dt = -x. Solution: x(t) = x0 * exp(-t)."""
    return -x


def _cubic(t, x):
    """dx/dt = 3 t^2. Solution: x(t) = x0 + t^3."""
    return jnp.full_like(x, 3.0 * t**2)


def _harmonic_oscillator(t, x):
    return jnp.array([x[1], -x[0]])


class TestRK4Step:
    def test_returns_step_result(self):
        result = rk4_step(_exponential_decay, 0.0, jnp.array([1.0]), 0.1)
        assert isinstance(result, StepResult)
        assert float(result.dt_used) == pytest.approx(0.1)
        assert float(result.dt_next) == pytest.approx(0.1)
        assert float(result.error_estimate) == 0.0

    def test_cubic_exact(self):
        result = rk4_step(_cubic, 1.0, jnp.array([0.0]), 2.0)
        assert float(result.state[0]) == pytest.approx(3.0**3 - 1.0**3, rel=1e-12)

    def test_exponential_decay(self):
        result = rk4_step(_exponential_decay, 0.0, jnp.array([1.0]), 0.01)
        assert float(result.state[0]) == pytest.approx(float(jnp.exp(-0.01)), rel=1e-10)

    def test_backward_step(self):
        result = rk4_step(_exponential_decay, 0.0, jnp.array([1.0]), -0.01)
        assert float(result.state[0]) == pytest.approx(float(jnp.exp(0.01)), rel=1e-10)


class TestIntegrate:
    def test_exponential_decay(self):
        x = integrate(_exponential_decay, jnp.array([2.0]), 1.0, 100)
        assert float(x[0]) == pytest.approx(2.0 * float(jnp.exp(-1.0)), rel=1e-9)

    def test_time_argument_advances(self):
        x = integrate(_cubic, jnp.array([0.0]), 2.0, 4)
        assert float(x[0]) == pytest.approx(8.0, rel=1e-12)

    def test_harmonic_oscillator(self):
        x = integrate(_harmonic_oscillator, jnp.array([1.0, 0.0]), jnp.pi, 200)
        assert jnp.allclose(x, jnp.array([-1.0, 0.0]), atol=1e-7)

    def test_zero_duration(self):
        x0 = jnp.array([1.0, 2.0])
        assert jnp.array_equal(integrate(_harmonic_oscillator, x0, 0.0, 3), x0)

    def test_backward(self):
        x = integrate(_exponential_decay, jnp.array([1.0]), -1.0, 100)
        assert float(x[0]) == pytest.approx(float(jnp.exp(1.0)), rel=1e-9)

    def test_invalid_step_count_raises(self):
        with pytest.raises(ValueError, match="n_steps"):
            integrate(_exponential_decay, jnp.array([1.0]), 1.0, 0)

    def test_jacfwd(self):
        jac = jax.jacfwd(integrate, argnums=1)(_exponential_decay, jnp.array([1.0, 3.0]), 1.0, 50)
        assert jnp.allclose(jac, jnp.eye(2) * jnp.exp(-1.0), rtol=1e-8)

    def test_jit_with_traced_duration(self):
        f = jax.jit(lambda d: integrate(_exponential_decay, jnp.array([1.0]), d, 20))
        assert float(f(0.5)[0]) == pytest.approx(float(jnp.exp(-0.5)), rel=1e-8)
