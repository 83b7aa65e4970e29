"""Mean-element force models of the semi-analytical propagator.

A force model contributes secular rates of the mean equinoctial
elements and, optionally, short-period terms mapping mean to osculating
elements.  Its physical parameters are exposed as
:class:`~astrokalman.drivers.ParameterDriver` instances; inside the
jitted propagation kernels their values arrive as a ``params`` mapping
from driver name to scalar array, so every model is differentiable with
respect to its own parameters.

The Keplerian mean motion is not part of any model; the propagator adds
it.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Protocol

import jax.numpy as jnp
from jax import Array

from astrokalman.constants import J2_EARTH, R_EARTH
from astrokalman.drivers import ParameterDriver
from astrokalman.orbits.mean_elements import short_period_terms
from astrokalman.propagation.config import ExponentialAtmosphere, SpacecraftParams

J2_NAME = "J2"
DRAG_COEFFICIENT_NAME = "drag coefficient"


class ForceModel(Protocol):
    """Interface of a semi-analytical force model."""

    def parameter_drivers(self) -> list[ParameterDriver]:
        """Drivers of the parameters the model depends on."""
        ...

    def mean_rates(self, elements: Array, params: Mapping[str, Array], mu: float) -> Array:
        """Secular rates of the mean equinoctial elements, shape ``(6,)``."""
        ...

    def short_period(self, elements: Array, params: Mapping[str, Array], mu: float) -> Array:
        """Osculating minus mean equinoctial elements, shape ``(6,)``."""
        ...


class J2Gravity:
    """Secular and short-period effects of the Earth's oblateness.

    Secular rates follow the classical first-order averaged theory
    (Vallado Eq. 9-41); the short-period terms are the first-order
    Brouwer-Lyddane corrections.  The J2 value is a driver named
    ``"J2"``.

    Args:
        j2: Reference value of the J2 coefficient.
        radius: Equatorial radius of the central body [m].
    """

    def __init__(self, j2: float = J2_EARTH, radius: float = R_EARTH) -> None:
        self.radius = radius
        self._driver = ParameterDriver(J2_NAME, j2, 1e-6)

    def parameter_drivers(self) -> list[ParameterDriver]:
        return [self._driver]

    def mean_rates(self, elements: Array, params: Mapping[str, Array], mu: float) -> Array:
        a, ex, ey, hx, hy, _ = elements
        j2 = params[J2_NAME]

        e2 = ex * ex + ey * ey
        h2 = hx * hx + hy * hy
        cos_i = (1.0 - h2) / (1.0 + h2)
        p = a * (1.0 - e2)
        n = jnp.sqrt(mu / a**3)
        k = n * j2 * (self.radius / p) ** 2

        raan_dot = -1.5 * k * cos_i
        argp_dot = 0.75 * k * (5.0 * cos_i**2 - 1.0)
        m_dot = 0.75 * k * jnp.sqrt(1.0 - e2) * (3.0 * cos_i**2 - 1.0)
        lon_peri_dot = argp_dot + raan_dot

        return jnp.array([
            0.0 * a,
            -ey * lon_peri_dot,
            ex * lon_peri_dot,
            -hy * raan_dot,
            hx * raan_dot,
            m_dot + lon_peri_dot,
        ])

    def short_period(self, elements: Array, params: Mapping[str, Array], mu: float) -> Array:
        return short_period_terms(elements, params[J2_NAME], self.radius)


class AtmosphericDrag:
    """Secular decay of the semi-major axis under atmospheric drag.

    For a near-circular orbit in an exponential atmosphere the averaged
    decay is ``da/dt = -rho(a - R) * Cd * A / m * sqrt(mu * a)``; the
    other mean elements are left unchanged and no short-period terms are
    modeled.  The drag coefficient is a driver named
    ``"drag coefficient"``.

    Args:
        spacecraft: Mass, area and reference drag coefficient.
        atmosphere: Density model.
        radius: Equatorial radius of the central body [m].
    """

    def __init__(
        self,
        spacecraft: SpacecraftParams | None = None,
        atmosphere: ExponentialAtmosphere | None = None,
        radius: float = R_EARTH,
    ) -> None:
        self.spacecraft = spacecraft if spacecraft is not None else SpacecraftParams()
        self.atmosphere = atmosphere if atmosphere is not None else ExponentialAtmosphere()
        self.radius = radius
        self._driver = ParameterDriver(
            DRAG_COEFFICIENT_NAME, self.spacecraft.cd, 0.125, 0.0, math.inf
        )

    def parameter_drivers(self) -> list[ParameterDriver]:
        return [self._driver]

    def density(self, altitude: Array) -> Array:
        """Atmospheric density at ``altitude`` [kg/m^3]."""
        atm = self.atmosphere
        return atm.rho0 * jnp.exp(-(altitude - atm.h0) / atm.scale_height)

    def mean_rates(self, elements: Array, params: Mapping[str, Array], mu: float) -> Array:
        a = elements[0]
        ballistic = params[DRAG_COEFFICIENT_NAME] * self.spacecraft.drag_area / self.spacecraft.mass
        a_dot = -self.density(a - self.radius) * ballistic * jnp.sqrt(mu * a)
        return jnp.zeros(6, dtype=elements.dtype).at[0].set(a_dot)

    def short_period(self, elements: Array, params: Mapping[str, Array], mu: float) -> Array:
        return jnp.zeros(6, dtype=elements.dtype)
