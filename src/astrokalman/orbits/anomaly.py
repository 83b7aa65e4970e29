"""Kepler's equation and anomaly conversions.

Only the radian forms needed by the element conversions are provided.
Every function is built from ``jax.numpy`` operations so that the
element conversions built on top of them can be differentiated with
``jax.jacfwd``; the Kepler solver uses a fixed number of Newton-Raphson
iterations inside ``jax.lax.fori_loop`` for the same reason.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.constants import GM_EARTH

# Newton-Raphson iterations used by the Kepler solver.  Ten iterations
# reach machine precision for e < 0.9 from the starting guesses below.
_KEPLER_ITERATIONS = 10


def mean_motion(a: ArrayLike, mu: float = GM_EARTH) -> Array:
    """Keplerian mean motion ``sqrt(mu / a^3)``.

    Args:
        a: Semi-major axis. Units: *m*
        mu: Gravitational parameter. Units: *m^3/s^2*

    Returns:
        Mean motion. Units: *rad/s*
    """
    a = jnp.asarray(a, dtype=get_dtype())
    return jnp.sqrt(mu / a**3)


def anomaly_eccentric_to_mean(anm_ecc: ArrayLike, e: ArrayLike) -> Array:
    """Convert eccentric anomaly to mean anomaly (``M = E - e sin E``).

    References:
        O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
        Applications*, 2012. Eq. 2.65.
    """
    E = jnp.asarray(anm_ecc, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())
    return E - e * jnp.sin(E)


def anomaly_mean_to_eccentric(anm_mean: ArrayLike, e: ArrayLike) -> Array:
    """Convert mean anomaly to eccentric anomaly.

    Solves Kepler's equation ``M = E - e * sin(E)`` for ``E`` with
    Newton-Raphson iterations.  The result is in ``[0, 2pi)`` up to the
    solver tolerance.

    Args:
        anm_mean: Mean anomaly. Units: *rad*
        e: Eccentricity. Dimensionless.

    Returns:
        Eccentric anomaly. Units: *rad*
    """
    M = jnp.asarray(anm_mean, dtype=get_dtype()) % (2.0 * jnp.pi)
    e = jnp.asarray(e, dtype=get_dtype())

    def newton_step(_, E):
        return E - (E - e * jnp.sin(E) - M) / (1.0 - e * jnp.cos(E))

    E0 = jnp.where(e < 0.8, M, jnp.pi)
    return jax.lax.fori_loop(0, _KEPLER_ITERATIONS, newton_step, E0)


def anomaly_eccentric_to_true(anm_ecc: ArrayLike, e: ArrayLike) -> Array:
    """Convert eccentric anomaly to true anomaly.

    References:
        D. Vallado, *Fundamentals of Astrodynamics and Applications
        (4th Ed.)*, pp. 47, eq. 2-9, 2010.
    """
    E = jnp.asarray(anm_ecc, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())
    return jnp.arctan2(jnp.sin(E) * jnp.sqrt(1.0 - e * e), jnp.cos(E) - e)


def anomaly_true_to_eccentric(anm_true: ArrayLike, e: ArrayLike) -> Array:
    """Convert true anomaly to eccentric anomaly."""
    nu = jnp.asarray(anm_true, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())
    return jnp.arctan2(jnp.sin(nu) * jnp.sqrt(1.0 - e * e), jnp.cos(nu) + e)


def anomaly_mean_to_true(anm_mean: ArrayLike, e: ArrayLike) -> Array:
    """Convert mean anomaly to true anomaly (mean -> eccentric -> true)."""
    return anomaly_eccentric_to_true(anomaly_mean_to_eccentric(anm_mean, e), e)
