"""Normalized measurement matrix of the semi-analytical filter.

The measurement model is differentiated with respect to the Cartesian
state (``dM/dC``) and chained through the Cartesian-from-osculating
Jacobian (``dC/dY``) and the short-period blocks: a mean-element
correction ``dY`` moves the osculating elements by ``(I + B1) dY`` and a
propagation parameter correction ``dP`` by ``B4 dP``.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array

from astrokalman.estimation.normalization import normalize_measurement_jacobian
from astrokalman.estimation.registry import ParameterRegistry
from astrokalman.measurements import EstimatedMeasurement


def measurement_matrix(
    registry: ParameterRegistry,
    estimated: EstimatedMeasurement,
    dcdy: Array,
    b1: Array,
    b4: Array,
) -> Array:
    """Normalized measurement matrix ``H`` of shape ``(n, m)``.

    Args:
        registry: Column registry of the run.
        estimated: Predicted measurement with its derivatives.
        dcdy: Jacobian of the Cartesian state with respect to the
            osculating equinoctial elements, ``(6, 6)``.
        b1: Short-period Jacobian with respect to the mean elements.
        b4: Short-period Jacobian with respect to the estimated
            propagation parameters, in column order, ``(6, nProp)``.

    Returns:
        ``H`` with rows divided by the measurement sigma and columns
        multiplied by the parameter scales.
    """
    n_orb = registry.n_orbital
    n_prop = registry.n_propagation
    n = estimated.value.shape[0]
    dtype = estimated.value.dtype

    dmdy = estimated.state_derivatives @ dcdy
    orbital = dmdy @ (jnp.eye(n_orb, dtype=dtype) + b1)

    H = jnp.zeros((n, registry.n_columns), dtype=dtype)
    H = H.at[:, :n_orb].set(jnp.where(registry.orbital_mask()[None, :], orbital, 0.0))
    if n_prop > 0:
        H = H.at[:, n_orb:n_orb + n_prop].set(dmdy @ b4)

    for name, derivative in estimated.parameter_derivatives.items():
        column = registry.measurement_columns.get(name)
        if column is not None:
            H = H.at[:, column].set(derivative)

    return normalize_measurement_jacobian(H, registry.scale, estimated.observed.sigma)
