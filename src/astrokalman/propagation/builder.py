"""Builder of semi-analytical propagators from parameter drivers.

The builder owns two driver lists:

- one *orbital* driver per mean equinoctial element, named after
  :data:`~astrokalman.orbits.EQUINOCTIAL_ELEMENT_NAMES`, all selected by
  default;
- the *propagation* drivers of the force models, merged by name.

Estimation works by adjusting these drivers; :meth:`build_propagator`
then produces a propagator reflecting their current values.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.drivers import ParameterDriver, ParameterDriversList
from astrokalman.epoch import Epoch
from astrokalman.orbits.elements import (
    EQUINOCTIAL_ELEMENT_NAMES,
    state_eci_to_eqn,
    state_eqn_to_eci,
)
from astrokalman.propagation.config import PropagatorConfig
from astrokalman.propagation.force_models import ForceModel
from astrokalman.propagation.propagator import MeanState, SemiAnalyticalPropagator

logger = logging.getLogger(__name__)

_STATE_TYPES = ("mean", "osculating")


def orbital_scales(elements: ArrayLike, position_scale: float, mu: float) -> Array:
    """Normalization scales of the equinoctial elements.

    The scale of each element is the change produced by a position
    error of ``position_scale`` meters along the most sensitive axis,
    ``position_scale * max_k |d element / d r_k|``.

    Args:
        elements: Equinoctial elements the scales are evaluated at.
        position_scale: Position error used as unit. Units: *m*
        mu: Gravitational parameter. Units: *m^3/s^2*

    Returns:
        Scale vector of shape ``(6,)``.
    """
    cart = state_eqn_to_eci(elements, mu)
    jac = jax.jacfwd(state_eci_to_eqn)(cart, mu)
    scales = position_scale * jnp.max(jnp.abs(jac[:, :3]), axis=1)
    return jnp.where(scales > 0.0, scales, position_scale)


class SemiAnalyticalPropagatorBuilder:
    """Build :class:`SemiAnalyticalPropagator` instances from drivers.

    Args:
        epoch: Date of the initial orbit.
        elements: Initial equinoctial elements ``[a, ex, ey, hx, hy, lM]``.
        force_models: Force models of the propagator.
        config: Numerical settings of the propagators.
        position_scale: Position error used to derive the orbital driver
            scales. Units: *m*
        state_type: ``"mean"`` if ``elements`` are mean elements,
            ``"osculating"`` to convert them to mean elements first.
    """

    def __init__(
        self,
        epoch: Epoch,
        elements: ArrayLike,
        force_models: Sequence[ForceModel],
        config: PropagatorConfig | None = None,
        position_scale: float = 10.0,
        state_type: str = "mean",
    ) -> None:
        if state_type not in _STATE_TYPES:
            raise ValueError(
                f"state_type must be 'mean' or 'osculating', got '{state_type}'"
            )
        if position_scale <= 0.0:
            raise ValueError(f"position_scale must be positive, got {position_scale}")
        elements = jnp.asarray(elements, dtype=get_dtype())
        if elements.shape != (6,):
            raise ValueError(f"elements must have shape (6,), got {elements.shape}")

        self._config = config if config is not None else PropagatorConfig()
        self._force_models = tuple(force_models)
        self._position_scale = position_scale
        self._epoch = epoch

        self._propagation_drivers = ParameterDriversList(
            driver for model in self._force_models for driver in model.parameter_drivers()
        )

        if state_type == "osculating":
            elements = SemiAnalyticalPropagator(
                epoch, elements, self._force_models, self._propagation_drivers, self._config
            ).compute_mean_state(elements)
            logger.debug("Converted initial osculating elements to mean elements")

        scales = orbital_scales(elements, position_scale, self._config.mu)
        self._orbital_drivers = ParameterDriversList(
            ParameterDriver(name, float(value), float(scale), selected=True, reference_date=epoch)
            for name, value, scale in zip(EQUINOCTIAL_ELEMENT_NAMES, elements, scales)
        )

    @property
    def initial_epoch(self) -> Epoch:
        return self._epoch

    @property
    def config(self) -> PropagatorConfig:
        return self._config

    @property
    def force_models(self) -> tuple[ForceModel, ...]:
        return self._force_models

    @property
    def orbital_drivers(self) -> ParameterDriversList:
        """Drivers of the six mean equinoctial elements."""
        return self._orbital_drivers

    @property
    def propagation_drivers(self) -> ParameterDriversList:
        """Force model drivers, merged by name."""
        return self._propagation_drivers

    def mean_elements(self) -> Array:
        """Current values of the orbital drivers."""
        return jnp.array([d.value for d in self._orbital_drivers], dtype=get_dtype())

    def build_propagator(self) -> SemiAnalyticalPropagator:
        """Propagator reflecting the current driver values."""
        return SemiAnalyticalPropagator(
            self._epoch,
            self.mean_elements(),
            self._force_models,
            self._propagation_drivers,
            self._config,
        )

    def reset_orbit(self, state: MeanState) -> None:
        """Move the initial orbit to ``state``.

        Each orbital driver gets the new element as value and reference
        value, so its normalized value restarts from zero.
        """
        self._epoch = state.epoch
        for driver, value in zip(self._orbital_drivers, state.elements):
            driver.reference_value = float(value)
            driver.value = float(value)
            driver.reference_date = state.epoch
        logger.debug("Builder orbit reset to %s", state.epoch)
