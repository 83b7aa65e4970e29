"""First-order J2 mapping between mean and osculating elements.

Implements the Brouwer-Lyddane first-order mapping as given by Schaub
and Junkins, *Analytical Mechanics of Space Systems*, Appendix F.  The
same expressions serve both directions: the sign of the perturbation
parameter ``gamma_2`` selects mean-to-osculating (``+1``) or
osculating-to-mean (``-1``).

The J2 coefficient is an explicit argument rather than a module
constant because the estimation engine differentiates the short-period
terms with respect to it (the ``B4`` block of the filter).

Functions work on Keplerian elements ``[a, e, i, Omega, omega, M]``
(radians); :func:`short_period_terms` wraps them for the equinoctial
elements used by the filter.  Everything is traceable by ``jax.jit`` and
differentiable by ``jax.jacfwd``.  The mapping is singular at the
critical inclination (``1 - 5 cos^2 i = 0``) and for ``e = 0`` exactly.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.constants import J2_EARTH, R_EARTH
from astrokalman.orbits.anomaly import (
    anomaly_eccentric_to_true,
    anomaly_mean_to_eccentric,
)
from astrokalman.orbits.elements import (
    state_eqn_to_koe,
    state_koe_to_eqn,
    wrap_to_pi,
)

_TWO_PI = 2.0 * jnp.pi


def _brouwer_lyddane(oe: Array, sign: float, j2: ArrayLike, radius: float) -> Array:
    """Apply the first-order Brouwer-Lyddane transformation (F.1-F.22)."""
    a, e, i, raan, argp, m_anom = oe

    # (F.1-F.3) perturbation parameters
    gamma2 = sign * (j2 / 2.0) * (radius / a) ** 2
    eta = jnp.sqrt(1.0 - e * e)
    eta2 = eta * eta
    eta3 = eta2 * eta
    eta6 = eta3 * eta3
    gamma2p = gamma2 / (eta2 * eta2)

    # (F.4-F.6) anomalies and radius ratio
    f = anomaly_eccentric_to_true(anomaly_mean_to_eccentric(m_anom, e), e)
    cos_f, sin_f = jnp.cos(f), jnp.sin(f)
    a_r = (1.0 + e * cos_f) / eta2
    a_r3 = a_r ** 3
    a_eta_r2 = (a_r * eta) ** 2
    center = f - m_anom + e * sin_f

    c2 = jnp.cos(i) ** 2
    c4 = c2 * c2
    k = 1.0 - 5.0 * c2
    s2 = 1.0 - c2

    w2 = 2.0 * argp
    cos_w2f1, sin_w2f1 = jnp.cos(w2 + f), jnp.sin(w2 + f)
    cos_w2f2, sin_w2f2 = jnp.cos(w2 + 2.0 * f), jnp.sin(w2 + 2.0 * f)
    cos_w2f3, sin_w2f3 = jnp.cos(w2 + 3.0 * f), jnp.sin(w2 + 3.0 * f)

    # Secular-like bracket shared by (F.8), (F.11) and (F.12)
    bracket = 1.0 - 11.0 * c2 - 40.0 * c4 / k

    # (F.7) semi-major axis
    a_osc = a + a * gamma2 * (
        (3.0 * c2 - 1.0) * (a_r3 - 1.0 / eta3)
        + 3.0 * s2 * a_r3 * cos_w2f2
    )

    # (F.8-F.9) eccentricity
    de1 = (gamma2p / 8.0) * e * eta2 * bracket * jnp.cos(w2)
    cubic = 3.0 * cos_f + 3.0 * e * cos_f ** 2 + e * e * cos_f ** 3
    de = de1 + (eta2 / 2.0) * (
        gamma2 * (
            (3.0 * c2 - 1.0) / eta6 * (e * eta + e / (1.0 + eta) + cubic)
            + 3.0 * s2 / eta6 * (e + cubic) * cos_w2f2
        )
        - gamma2p * s2 * (3.0 * cos_w2f1 + cos_w2f3)
    )

    # (F.10) inclination
    di = (
        -e * de1 / (eta2 * jnp.tan(i))
        + (gamma2p / 2.0) * jnp.cos(i) * jnp.sqrt(s2)
        * (3.0 * cos_w2f2 + 3.0 * e * cos_w2f1 + e * cos_w2f3)
    )

    # (F.13) node; it also closes the (F.11) sum
    sin_harmonics = 3.0 * sin_w2f2 + 3.0 * e * sin_w2f1 + e * sin_w2f3
    draan = (
        -(gamma2p / 8.0) * e * e * jnp.cos(i)
        * (11.0 + 80.0 * c2 / k + 200.0 * c4 / k ** 2)
        - (gamma2p / 2.0) * jnp.cos(i) * (6.0 * center - sin_harmonics)
    )

    # (F.11) M + omega + Omega
    lon_sum = (
        m_anom + argp + raan
        + (gamma2p / 8.0) * eta3 * bracket
        - (gamma2p / 16.0) * (
            2.0 + e * e
            - 11.0 * (2.0 + 3.0 * e * e) * c2
            - 40.0 * (2.0 + 5.0 * e * e) * c4 / k
            - 400.0 * e * e * c4 * c2 / k ** 2
        )
        + (gamma2p / 4.0) * (-6.0 * k * center + (3.0 - 5.0 * c2) * sin_harmonics)
        + draan
    )

    # (F.12) e * delta M
    e_dm = (gamma2p / 8.0) * e * eta3 * bracket - (gamma2p / 4.0) * eta3 * (
        2.0 * (3.0 * c2 - 1.0) * (a_eta_r2 + a_r + 1.0) * sin_f
        + 3.0 * s2 * (
            (-a_eta_r2 - a_r + 1.0) * sin_w2f1
            + (a_eta_r2 + a_r + 1.0 / 3.0) * sin_w2f3
        )
    )

    # (F.14-F.17) eccentricity and mean anomaly recovery
    d1 = (e + de) * jnp.sin(m_anom) + e_dm * jnp.cos(m_anom)
    d2 = (e + de) * jnp.cos(m_anom) - e_dm * jnp.sin(m_anom)
    m_osc = jnp.arctan2(d1, d2)
    e_osc = jnp.sqrt(d1 * d1 + d2 * d2)

    # (F.18-F.21) inclination and node recovery
    sin_hi, cos_hi = jnp.sin(i / 2.0), jnp.cos(i / 2.0)
    d3 = (sin_hi + cos_hi * di / 2.0) * jnp.sin(raan) + sin_hi * draan * jnp.cos(raan)
    d4 = (sin_hi + cos_hi * di / 2.0) * jnp.cos(raan) - sin_hi * draan * jnp.sin(raan)
    raan_osc = jnp.arctan2(d3, d4)
    i_osc = 2.0 * jnp.arcsin(jnp.sqrt(d3 * d3 + d4 * d4))

    # (F.22) argument of perigee
    argp_osc = lon_sum - m_osc - raan_osc

    return jnp.array([
        a_osc,
        e_osc,
        i_osc,
        jnp.mod(raan_osc, _TWO_PI),
        jnp.mod(argp_osc, _TWO_PI),
        jnp.mod(m_osc, _TWO_PI),
    ])


def state_koe_mean_to_osc(
    oe: ArrayLike,
    j2: ArrayLike = J2_EARTH,
    radius: float = R_EARTH,
) -> Array:
    """Convert mean Keplerian elements to osculating Keplerian elements.

    Args:
        oe: Mean elements ``[a, e, i, Omega, omega, M]`` (m, rad).
        j2: Second zonal harmonic of the central body.
        radius: Equatorial radius of the central body. Units: *m*

    Returns:
        Osculating Keplerian elements.

    Examples:
        ```python
        import jax.numpy as jnp
        from astrokalman.constants import R_EARTH
        from astrokalman.orbits import state_koe_mean_to_osc

        mean = jnp.array([R_EARTH + 500e3, 0.01, 0.9, 0.1, 0.2, 0.3])
        osc = state_koe_mean_to_osc(mean)
        ```
    """
    return _brouwer_lyddane(jnp.asarray(oe, dtype=get_dtype()), +1.0, j2, radius)


def state_koe_osc_to_mean(
    oe: ArrayLike,
    j2: ArrayLike = J2_EARTH,
    radius: float = R_EARTH,
) -> Array:
    """Convert osculating Keplerian elements to mean Keplerian elements.

    First-order inverse of :func:`state_koe_mean_to_osc`; the round trip
    is accurate to second order in J2.
    """
    return _brouwer_lyddane(jnp.asarray(oe, dtype=get_dtype()), -1.0, j2, radius)


def short_period_terms(
    mean_eq: ArrayLike,
    j2: ArrayLike = J2_EARTH,
    radius: float = R_EARTH,
) -> Array:
    """Short-period correction of mean equinoctial elements.

    Returns ``osc - mean`` in equinoctial elements, with the mean
    longitude difference wrapped into ``[-pi, pi)`` so that adding the
    result to the (unwrapped) mean longitude is continuous.

    Args:
        mean_eq: Mean equinoctial elements ``[a, ex, ey, hx, hy, lM]``.
        j2: Second zonal harmonic of the central body.
        radius: Equatorial radius of the central body. Units: *m*

    Returns:
        Equinoctial short-period terms of shape ``(6,)``.
    """
    mean_eq = jnp.asarray(mean_eq, dtype=get_dtype())
    osc_eq = state_koe_to_eqn(state_koe_mean_to_osc(state_eqn_to_koe(mean_eq), j2, radius))
    delta = osc_eq - mean_eq
    return delta.at[5].set(wrap_to_pi(delta[5]))
