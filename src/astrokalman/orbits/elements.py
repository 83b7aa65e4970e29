"""Conversions between Keplerian, equinoctial and Cartesian orbit states.

The estimation engine works in mean *equinoctial* elements, which stay
regular for the near-circular orbits typical of low Earth orbit:

| Index | Element                                   | Units         |
|-------|-------------------------------------------|---------------|
| 0     | *a*  semi-major axis                      | m             |
| 1     | *ex* = e cos(omega + Omega)               | dimensionless |
| 2     | *ey* = e sin(omega + Omega)               | dimensionless |
| 3     | *hx* = tan(i/2) cos(Omega)                | dimensionless |
| 4     | *hy* = tan(i/2) sin(Omega)                | dimensionless |
| 5     | *lM* = M + omega + Omega (mean longitude) | rad           |

Keplerian elements follow the ``[a, e, i, Omega, omega, M]`` ordering.
Cartesian states are inertial ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.

The equatorial singularity (``i = 0``) of the equinoctial set is not
handled; the filter is intended for inclined orbits.

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, Springer, 2012, Sec. 2.2.
    2. R. A. Broucke and P. J. Cefola, "On the equinoctial orbit
       elements", *Celestial Mechanics* 5, 1972.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.constants import GM_EARTH
from astrokalman.orbits.anomaly import (
    anomaly_eccentric_to_mean,
    anomaly_mean_to_eccentric,
)

_TWO_PI = 2.0 * jnp.pi

EQUINOCTIAL_ELEMENT_NAMES = ("a", "ex", "ey", "hx", "hy", "lM")


def wrap_to_pi(angle: ArrayLike) -> Array:
    """Wrap an angle into ``[-pi, pi)``."""
    return jnp.mod(jnp.asarray(angle) + jnp.pi, _TWO_PI) - jnp.pi


def state_koe_to_eqn(x_oe: ArrayLike) -> Array:
    """Convert Keplerian elements to equinoctial elements.

    Args:
        x_oe: ``[a, e, i, Omega, omega, M]`` in *m* and *rad*.

    Returns:
        ``[a, ex, ey, hx, hy, lM]`` with ``lM`` in ``[0, 2pi)``.
    """
    x_oe = jnp.asarray(x_oe, dtype=get_dtype())
    a, e, i, raan, argp, m_anom = x_oe
    lon_peri = argp + raan
    tan_half_i = jnp.tan(i / 2.0)
    return jnp.array([
        a,
        e * jnp.cos(lon_peri),
        e * jnp.sin(lon_peri),
        tan_half_i * jnp.cos(raan),
        tan_half_i * jnp.sin(raan),
        jnp.mod(m_anom + lon_peri, _TWO_PI),
    ])


def state_eqn_to_koe(x_eq: ArrayLike) -> Array:
    """Convert equinoctial elements to Keplerian elements.

    Args:
        x_eq: ``[a, ex, ey, hx, hy, lM]``.

    Returns:
        ``[a, e, i, Omega, omega, M]`` with angles in ``[0, 2pi)``.
    """
    x_eq = jnp.asarray(x_eq, dtype=get_dtype())
    a, ex, ey, hx, hy, lon_mean = x_eq
    e = jnp.sqrt(ex * ex + ey * ey)
    lon_peri = jnp.arctan2(ey, ex)
    i = 2.0 * jnp.arctan(jnp.sqrt(hx * hx + hy * hy))
    raan = jnp.arctan2(hy, hx)
    return jnp.array([
        a,
        e,
        i,
        jnp.mod(raan, _TWO_PI),
        jnp.mod(lon_peri - raan, _TWO_PI),
        jnp.mod(lon_mean - lon_peri, _TWO_PI),
    ])


def state_koe_to_eci(x_oe: ArrayLike, mu: float = GM_EARTH) -> Array:
    """Convert Keplerian elements to an inertial Cartesian state.

    Solves Kepler's equation, then builds position and velocity from the
    perifocal P and Q unit vectors (Montenbruck & Gill Eq. 2.43-2.44).

    Args:
        x_oe: ``[a, e, i, Omega, omega, M]`` in *m* and *rad*.
        mu: Gravitational parameter. Units: *m^3/s^2*

    Returns:
        ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.
    """
    x_oe = jnp.asarray(x_oe, dtype=get_dtype())
    a, e, i, raan, argp, m_anom = x_oe

    E = anomaly_mean_to_eccentric(m_anom, e)

    cos_w, sin_w = jnp.cos(argp), jnp.sin(argp)
    cos_o, sin_o = jnp.cos(raan), jnp.sin(raan)
    cos_i, sin_i = jnp.cos(i), jnp.sin(i)

    p_hat = jnp.array([
        cos_w * cos_o - sin_w * cos_i * sin_o,
        cos_w * sin_o + sin_w * cos_i * cos_o,
        sin_w * sin_i,
    ])
    q_hat = jnp.array([
        -sin_w * cos_o - cos_w * cos_i * sin_o,
        -sin_w * sin_o + cos_w * cos_i * cos_o,
        cos_w * sin_i,
    ])

    eta = jnp.sqrt(1.0 - e * e)
    cos_E, sin_E = jnp.cos(E), jnp.sin(E)
    r_vec = a * (cos_E - e) * p_hat + a * eta * sin_E * q_hat
    r_mag = a * (1.0 - e * cos_E)
    v_vec = (jnp.sqrt(mu * a) / r_mag) * (-sin_E * p_hat + eta * cos_E * q_hat)

    return jnp.concatenate([r_vec, v_vec])


def state_eci_to_koe(x_cart: ArrayLike, mu: float = GM_EARTH) -> Array:
    """Convert an inertial Cartesian state to Keplerian elements.

    Uses angular momentum, vis-viva and the eccentric anomaly
    (Montenbruck & Gill Eq. 2.56-2.68).

    Args:
        x_cart: ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.
        mu: Gravitational parameter. Units: *m^3/s^2*

    Returns:
        ``[a, e, i, Omega, omega, M]`` with angles in ``[0, 2pi)``.
    """
    x_cart = jnp.asarray(x_cart, dtype=get_dtype())
    r = x_cart[:3]
    v = x_cart[3:6]
    r_mag = jnp.linalg.norm(r)
    v_mag = jnp.linalg.norm(v)

    h = jnp.cross(r, v)
    w_hat = h / jnp.linalg.norm(h)

    i = jnp.arctan2(jnp.sqrt(w_hat[0] ** 2 + w_hat[1] ** 2), w_hat[2])
    raan = jnp.arctan2(w_hat[0], -w_hat[1])

    p = jnp.dot(h, h) / mu
    a = 1.0 / (2.0 / r_mag - v_mag * v_mag / mu)
    n = jnp.sqrt(mu / jnp.abs(a) ** 3)
    # 1 - p/a can dip below zero by round-off for circular orbits
    e = jnp.sqrt(jnp.maximum(1.0 - p / a, 0.0))

    E = jnp.arctan2(jnp.dot(r, v) / (n * a * a), 1.0 - r_mag / a)
    m_anom = anomaly_eccentric_to_mean(E, e)

    u = jnp.arctan2(r[2], -r[0] * w_hat[1] + r[1] * w_hat[0])
    nu = jnp.arctan2(jnp.sqrt(1.0 - e * e) * jnp.sin(E), jnp.cos(E) - e)

    return jnp.array([
        a,
        e,
        i,
        jnp.mod(raan, _TWO_PI),
        jnp.mod(u - nu, _TWO_PI),
        jnp.mod(m_anom, _TWO_PI),
    ])


def state_eqn_to_eci(x_eq: ArrayLike, mu: float = GM_EARTH) -> Array:
    """Convert equinoctial elements to an inertial Cartesian state."""
    return state_koe_to_eci(state_eqn_to_koe(x_eq), mu)


def state_eci_to_eqn(x_cart: ArrayLike, mu: float = GM_EARTH) -> Array:
    """Convert an inertial Cartesian state to equinoctial elements."""
    return state_koe_to_eqn(state_eci_to_koe(x_cart, mu))
