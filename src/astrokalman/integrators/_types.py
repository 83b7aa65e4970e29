"""Type definitions for the numerical integrators.

:class:`StepResult` is a :class:`~typing.NamedTuple`, which JAX treats as
a pytree, so step results can be carried through ``jax.lax`` loops and
differentiated with ``jax.jacfwd``.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single fixed integrator step.

    Attributes:
        state: State vector at time ``t + dt_used``.
        dt_used: Timestep taken. Equals the requested ``dt``.
        error_estimate: Always 0.0 for fixed-step methods.
        dt_next: Suggested next timestep. Equals ``dt_used``.
    """

    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array
