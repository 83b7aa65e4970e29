"""Numerical ODE integrators for mean-element propagation.

- :func:`rk4_step` -- Classic 4th-order Runge-Kutta (fixed step)
- :func:`integrate` -- fixed-substep RK4 over an interval

Step functions share the interface::

    result = rk4_step(dynamics, t, state, dt)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side, and the
result is a :class:`StepResult` named tuple.
"""

from astrokalman.integrators._types import StepResult
from astrokalman.integrators.rk4 import integrate, rk4_step

__all__ = [
    "StepResult",
    "rk4_step",
    "integrate",
]
