"""Classic 4th-order Runge-Kutta integration of the mean-element rates.

The semi-analytical propagator integrates slowly varying mean elements,
so a fixed-step RK4 with a generous step (minutes) is sufficient.  Both
:func:`rk4_step` and :func:`integrate` are written with ``jax.numpy`` and
``jax.lax`` primitives only; ``jax.jacfwd`` of :func:`integrate` yields
the mean-element state transition matrix used by the filter.
"""

from __future__ import annotations

from collections.abc import Callable

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.integrators._types import StepResult


def rk4_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
) -> StepResult:
    """Perform a single RK4 integration step.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Timestep to take. May be negative for backward integration.

    Returns:
        StepResult: State at ``t + dt``; ``dt_used`` and ``dt_next`` equal
        ``dt`` and ``error_estimate`` is 0.0.

    Examples:
        ```python
        import jax.numpy as jnp
        from astrokalman.integrators import rk4_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        result = rk4_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.01)
        ```
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    k1 = dynamics(t, state)
    k2 = dynamics(t + 0.5 * dt, state + 0.5 * dt * k1)
    k3 = dynamics(t + 0.5 * dt, state + 0.5 * dt * k2)
    k4 = dynamics(t + dt, state + dt * k3)

    return StepResult(
        state=state + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4),
        dt_used=dt,
        error_estimate=jnp.asarray(0.0, dtype=dtype),
        dt_next=dt,
    )


def integrate(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    state: ArrayLike,
    duration: ArrayLike,
    n_steps: int,
) -> Array:
    """Integrate over ``[0, duration]`` with ``n_steps`` equal RK4 substeps.

    ``n_steps`` must be a concrete Python integer; ``duration`` may be a
    traced value and may be negative or zero (zero returns ``state``).

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        state: Initial state vector.
        duration: Total integration time.
        n_steps: Number of equal substeps, at least 1.

    Returns:
        State at ``t = duration``.
    """
    if n_steps < 1:
        raise ValueError(f"n_steps must be at least 1, got {n_steps}")
    dtype = get_dtype()
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(duration, dtype=dtype) / n_steps

    def body(k, x):
        return rk4_step(dynamics, k * dt, x, dt).state

    return jax.lax.fori_loop(0, n_steps, body, state)
