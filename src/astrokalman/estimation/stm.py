"""Error-state transition matrix of the semi-analytical filter.

The propagator provides Jacobians of the current mean elements with
respect to the *initial* mean elements (``dY/dY0``) and to the
propagation parameters (``dY/dP``).  The transition between two
consecutive measurements is recovered from these cumulative Jacobians
and the ones stored at the previous measurement::

    Phi = dY/dY0(t_k) . inverse(dY/dY0(t_k-1))
    Psi = dY/dP(t_k) - Phi . dY/dP(t_k-1)

``Phi`` fills the orbital block of the STM and ``Psi`` the orbital x
propagation block; parameter blocks stay identity because parameters
are constant between measurements.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp
import jax.scipy.linalg as jsl
from jax import Array

from astrokalman.errors import NumericalError
from astrokalman.estimation.normalization import normalize_stm
from astrokalman.estimation.registry import ParameterRegistry

# Relative threshold on the diagonal of R below which a matrix is singular
_SINGULARITY_THRESHOLD = 1e-11


class TransitionResult(NamedTuple):
    """Output of :func:`compose_transition_matrix`.

    Attributes:
        stm: Normalized error-state transition matrix, shape ``(m, m)``.
        phi_s_inverse: Inverse of the current ``dY/dY0``, to be stored
            for the next measurement.
        psi_s: Current ``dY/dP`` restricted to the estimated propagation
            parameters, or ``None`` when none are estimated.
    """

    stm: Array
    phi_s_inverse: Array
    psi_s: Array | None


def qr_inverse(matrix: Array) -> Array:
    """Invert a square matrix through its QR decomposition.

    Raises:
        NumericalError: If the matrix is singular.
    """
    q, r = jnp.linalg.qr(matrix)
    diag = jnp.abs(jnp.diag(r))
    if not bool(jnp.all(jnp.isfinite(r))) or bool(
        jnp.any(diag <= _SINGULARITY_THRESHOLD * jnp.max(diag))
    ):
        raise NumericalError("Singular matrix in QR inversion of the state Jacobian")
    return jsl.solve_triangular(r, q.T, lower=False)


def compose_transition_matrix(
    registry: ParameterRegistry,
    dydy0: Array,
    dydp: Array,
    phi_s_inverse: Array,
    psi_s: Array | None,
) -> TransitionResult:
    """Build the normalized STM between the previous and current measurement.

    Args:
        registry: Column registry of the run.
        dydy0: Cumulative ``dY/dY0`` at the current measurement, ``(6, 6)``.
        dydp: Cumulative ``dY/dP`` at the current measurement, restricted
            to the estimated propagation parameters in column order,
            ``(6, nProp)``.
        phi_s_inverse: Inverse of ``dY/dY0`` at the previous measurement
            (identity at the first one).
        psi_s: ``dY/dP`` at the previous measurement (zeros at the first
            one), ``None`` when no propagation parameter is estimated.

    Returns:
        The normalized STM with the updated ``phi_s_inverse`` and ``psi_s``.
    """
    m = registry.n_columns
    n_orb = registry.n_orbital
    n_prop = registry.n_propagation
    dtype = dydy0.dtype

    stm = jnp.eye(m, dtype=dtype)

    # Orbital block, unselected rows and columns keep the identity
    phi = dydy0 @ phi_s_inverse
    mask = registry.orbital_mask()
    both = mask[:, None] & mask[None, :]
    stm = stm.at[:n_orb, :n_orb].set(jnp.where(both, phi, jnp.eye(n_orb, dtype=dtype)))

    next_phi_s_inverse = qr_inverse(dydy0)

    next_psi_s = None
    if n_prop > 0:
        previous = psi_s if psi_s is not None else jnp.zeros((n_orb, n_prop), dtype=dtype)
        psi = dydp - phi @ previous
        psi = jnp.where(mask[:, None], psi, 0.0)
        stm = stm.at[:n_orb, n_orb:n_orb + n_prop].set(psi)
        next_psi_s = dydp

    return TransitionResult(
        stm=normalize_stm(stm, registry.scale),
        phi_s_inverse=next_phi_s_inverse,
        psi_s=next_psi_s,
    )
