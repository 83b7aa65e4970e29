"""Semi-analytical mean-element propagator.

The propagator integrates the secular rates of the mean equinoctial
elements with RK4 and reconstructs osculating elements by adding the
short-period terms of the force models.  Alongside the mean elements it
carries the cumulative Jacobians with respect to the initial mean state
and to every propagation parameter, obtained with ``jax.jacfwd`` through
the integrator.  The short-period terms come with their own Jacobians:

- ``b1``: derivative of the short-period terms with respect to the mean
  elements;
- ``b4``: derivative of the short-period terms with respect to the
  propagation parameters.

Both kernels are compiled once per propagator with ``jax.jit``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import NamedTuple

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.drivers import ParameterDriversList
from astrokalman.epoch import Epoch
from astrokalman.errors import NumericalError
from astrokalman.integrators import integrate
from astrokalman.orbits.elements import state_eqn_to_eci
from astrokalman.propagation.config import PropagatorConfig
from astrokalman.propagation.force_models import ForceModel

logger = logging.getLogger(__name__)


class MeanState(NamedTuple):
    """Mean orbital state with its cumulative partial derivatives.

    Attributes:
        epoch: Date of the state.
        elements: Mean equinoctial elements ``[a, ex, ey, hx, hy, lM]``.
        state_jacobian: ``dY/dY0``, Jacobian of ``elements`` with respect
            to the initial mean elements, shape ``(6, 6)``.
        parameter_jacobian: ``dY/dP``, Jacobian of ``elements`` with
            respect to every propagation parameter, shape ``(6, nP)``,
            columns in the propagator's parameter order.
    """

    epoch: Epoch
    elements: Array
    state_jacobian: Array
    parameter_jacobian: Array


class ShortPeriodTerms(NamedTuple):
    """Short-period terms at a mean state and their Jacobians.

    Attributes:
        values: Osculating minus mean equinoctial elements, shape ``(6,)``.
        b1: Jacobian of ``values`` with respect to the mean elements,
            shape ``(6, 6)``.
        b4: Jacobian of ``values`` with respect to the propagation
            parameters, shape ``(6, nP)``.
    """

    values: Array
    b1: Array
    b4: Array


class SemiAnalyticalPropagator:
    """Propagate mean equinoctial elements under a set of force models.

    Args:
        epoch: Initial date.
        mean_elements: Initial mean equinoctial elements.
        force_models: Force models contributing mean rates and
            short-period terms.
        parameter_drivers: Drivers of the force model parameters; their
            current values are frozen into the propagator.
        config: Numerical settings.

    Examples:
        ```python
        from astrokalman.epoch import Epoch
        from astrokalman.propagation import SemiAnalyticalPropagatorBuilder, J2Gravity

        builder = SemiAnalyticalPropagatorBuilder(
            Epoch(2024, 1, 1), mean_elements, [J2Gravity()]
        )
        propagator = builder.build_propagator()
        state = propagator.propagate(Epoch(2024, 1, 1, 1, 0, 0))
        ```
    """

    def __init__(
        self,
        epoch: Epoch,
        mean_elements: ArrayLike,
        force_models: Sequence[ForceModel],
        parameter_drivers: ParameterDriversList,
        config: PropagatorConfig | None = None,
    ) -> None:
        dtype = get_dtype()
        elements = jnp.asarray(mean_elements, dtype=dtype)
        if elements.shape != (6,):
            raise ValueError(f"mean_elements must have shape (6,), got {elements.shape}")
        self._config = config if config is not None else PropagatorConfig()
        self._force_models = tuple(force_models)
        self._drivers = parameter_drivers
        self._names = tuple(parameter_drivers.names)
        self._values = jnp.array([d.value for d in parameter_drivers], dtype=dtype)
        self._initial_state = MeanState(
            epoch=epoch,
            elements=elements,
            state_jacobian=jnp.eye(6, dtype=dtype),
            parameter_jacobian=jnp.zeros((6, len(self._names)), dtype=dtype),
        )
        self._step = jax.jit(self._step_kernel, static_argnames=("n_steps",))
        self._short_period = jax.jit(self._short_period_kernel)

    @property
    def initial_state(self) -> MeanState:
        return self._initial_state

    @property
    def config(self) -> PropagatorConfig:
        return self._config

    @property
    def parameter_names(self) -> tuple[str, ...]:
        """Propagation parameter names, in the column order of ``dY/dP``."""
        return self._names

    @property
    def parameter_values(self) -> Array:
        return self._values

    @property
    def parameter_drivers(self) -> ParameterDriversList:
        return self._drivers

    # Kernels

    def _params(self, values: Array) -> dict[str, Array]:
        return {name: values[k] for k, name in enumerate(self._names)}

    def _rates(self, elements: Array, values: Array) -> Array:
        mu = self._config.mu
        params = self._params(values)
        rates = jnp.zeros(6, dtype=elements.dtype).at[5].set(jnp.sqrt(mu / elements[0] ** 3))
        for model in self._force_models:
            rates = rates + model.mean_rates(elements, params, mu)
        return rates

    def _flow(self, elements: Array, values: Array, duration: Array, n_steps: int) -> Array:
        return integrate(lambda t, y: self._rates(y, values), elements, duration, n_steps)

    def _step_kernel(self, elements, values, duration, n_steps):
        new = self._flow(elements, values, duration, n_steps)
        jac_y = jax.jacfwd(self._flow, argnums=0)(elements, values, duration, n_steps)
        if values.shape[0] == 0:
            jac_p = jnp.zeros((6, 0), dtype=elements.dtype)
        else:
            jac_p = jax.jacfwd(self._flow, argnums=1)(elements, values, duration, n_steps)
        return new, jac_y, jac_p

    def _short_period_values(self, elements: Array, values: Array) -> Array:
        mu = self._config.mu
        params = self._params(values)
        eta = jnp.zeros(6, dtype=elements.dtype)
        for model in self._force_models:
            eta = eta + model.short_period(elements, params, mu)
        return eta

    def _short_period_kernel(self, elements, values):
        eta = self._short_period_values(elements, values)
        b1 = jax.jacfwd(self._short_period_values, argnums=0)(elements, values)
        if values.shape[0] == 0:
            b4 = jnp.zeros((6, 0), dtype=elements.dtype)
        else:
            b4 = jax.jacfwd(self._short_period_values, argnums=1)(elements, values)
        return ShortPeriodTerms(values=eta, b1=b1, b4=b4)

    # Propagation

    def propagate_from(self, state: MeanState, target: Epoch) -> MeanState:
        """Propagate ``state`` to ``target``, accumulating its Jacobians.

        The returned Jacobians are relative to the state the Jacobians of
        ``state`` refer to (normally the initial state), so repeated calls
        chain into cumulative partial derivatives.
        """
        duration = target - state.epoch
        n_steps = max(1, math.ceil(abs(duration) / self._config.max_step))
        new, jac_y, jac_p = self._step(state.elements, self._values, duration, n_steps=n_steps)
        return MeanState(
            epoch=target,
            elements=new,
            state_jacobian=jac_y @ state.state_jacobian,
            parameter_jacobian=jac_y @ state.parameter_jacobian + jac_p,
        )

    def propagate(self, target: Epoch) -> MeanState:
        """Propagate the initial state to ``target``."""
        return self.propagate_from(self._initial_state, target)

    # Osculating reconstruction

    def short_period_terms(self, elements: ArrayLike) -> ShortPeriodTerms:
        """Short-period terms and their ``b1``/``b4`` Jacobians at ``elements``."""
        return self._short_period(jnp.asarray(elements, dtype=get_dtype()), self._values)

    def osculating_elements(self, elements: ArrayLike) -> Array:
        """Osculating equinoctial elements for mean ``elements``."""
        return jnp.asarray(elements, dtype=get_dtype()) + self.short_period_terms(elements).values

    def cartesian_state(self, elements: ArrayLike) -> Array:
        """Osculating inertial position and velocity for mean ``elements``."""
        return state_eqn_to_eci(self.osculating_elements(elements), self._config.mu)

    def compute_mean_state(self, osculating: ArrayLike) -> Array:
        """Mean equinoctial elements whose osculating counterpart is ``osculating``.

        Solves ``mean = osculating - eta(mean)`` by fixed-point iteration.

        Raises:
            NumericalError: If the iteration does not converge within
                ``config.mean_state_max_iterations`` iterations.
        """
        osculating = jnp.asarray(osculating, dtype=get_dtype())
        tol = self._config.mean_state_tolerance
        mean = osculating
        for iteration in range(self._config.mean_state_max_iterations):
            updated = osculating - self.short_period_terms(mean).values
            delta = jnp.abs(updated - mean)
            mean = updated
            if float(delta[0]) <= tol * float(osculating[0]) and float(jnp.max(delta[1:])) <= tol:
                logger.debug("Mean state converged after %d iterations", iteration + 1)
                return mean
        logger.warning(
            "Osculating to mean conversion did not converge after %d iterations",
            self._config.mean_state_max_iterations,
        )
        raise NumericalError(
            f"Mean state computation did not converge after "
            f"{self._config.mean_state_max_iterations} iterations"
        )
