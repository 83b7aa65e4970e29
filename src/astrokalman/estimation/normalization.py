"""Conversion between physical and normalized filter quantities.

With ``s`` the parameter scale vector and ``sigma`` the theoretical
standard deviation of the measurement components, the normalized forms
are:

| Quantity                 | Normalized element                    |
|--------------------------|---------------------------------------|
| state correction         | ``x[i] / s[i]``                       |
| covariance ``P``         | ``P[i, j] / (s[i] * s[j])``           |
| state transition ``Phi`` | ``Phi[i, j] * s[j] / s[i]``           |
| measurement matrix ``H`` | ``H[i, j] * s[j] / sigma[i]``         |
| innovation cov. ``S``    | ``S[i, j] / (sigma[i] * sigma[j])``   |
| Kalman gain ``K``        | ``K[i, j] * sigma[j] / s[i]``         |

Every ``normalize_*`` function has an exact ``unnormalize_*`` inverse.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike


def normalize_state(x: ArrayLike, scale: ArrayLike) -> Array:
    return jnp.asarray(x) / jnp.asarray(scale)


def unnormalize_state(x: ArrayLike, scale: ArrayLike) -> Array:
    return jnp.asarray(x) * jnp.asarray(scale)


def normalize_covariance(P: ArrayLike, scale: ArrayLike) -> Array:
    """Normalize a covariance-like matrix."""
    s = jnp.asarray(scale)
    return jnp.asarray(P) / jnp.outer(s, s)


def unnormalize_covariance(P: ArrayLike, scale: ArrayLike) -> Array:
    s = jnp.asarray(scale)
    return jnp.asarray(P) * jnp.outer(s, s)


def normalize_stm(stm: ArrayLike, scale: ArrayLike) -> Array:
    """Normalize a state transition matrix."""
    s = jnp.asarray(scale)
    return jnp.asarray(stm) * s[None, :] / s[:, None]


def unnormalize_stm(stm: ArrayLike, scale: ArrayLike) -> Array:
    s = jnp.asarray(scale)
    return jnp.asarray(stm) * s[:, None] / s[None, :]


def normalize_measurement_jacobian(H: ArrayLike, scale: ArrayLike, sigma: ArrayLike) -> Array:
    """Normalize a measurement matrix of shape ``(n, m)``."""
    return jnp.asarray(H) * jnp.asarray(scale)[None, :] / jnp.asarray(sigma)[:, None]


def unnormalize_measurement_jacobian(H: ArrayLike, scale: ArrayLike, sigma: ArrayLike) -> Array:
    return jnp.asarray(H) * jnp.asarray(sigma)[:, None] / jnp.asarray(scale)[None, :]


def normalize_innovation_covariance(S: ArrayLike, sigma: ArrayLike) -> Array:
    sigma = jnp.asarray(sigma)
    return jnp.asarray(S) / jnp.outer(sigma, sigma)


def unnormalize_innovation_covariance(S: ArrayLike, sigma: ArrayLike) -> Array:
    sigma = jnp.asarray(sigma)
    return jnp.asarray(S) * jnp.outer(sigma, sigma)


def normalize_kalman_gain(K: ArrayLike, scale: ArrayLike, sigma: ArrayLike) -> Array:
    """Normalize a Kalman gain of shape ``(m, n)``."""
    return jnp.asarray(K) * jnp.asarray(sigma)[None, :] / jnp.asarray(scale)[:, None]


def unnormalize_kalman_gain(K: ArrayLike, scale: ArrayLike, sigma: ArrayLike) -> Array:
    return jnp.asarray(K) * jnp.asarray(scale)[:, None] / jnp.asarray(sigma)[None, :]
