"""Orbit element functions used by the estimation engine.

This sub-module provides:

- **Anomaly conversions**: a JAX-traceable Kepler equation solver and the
  mean/eccentric/true anomaly conversions built on it.
- **Element conversions**: Keplerian <-> equinoctial <-> Cartesian.
- **Mean-osculating conversions**: first-order J2 mapping between mean
  and osculating elements (Brouwer-Lyddane theory) and the equinoctial
  short-period terms derived from it.
"""

from .anomaly import (
    anomaly_eccentric_to_mean,
    anomaly_eccentric_to_true,
    anomaly_mean_to_eccentric,
    anomaly_mean_to_true,
    anomaly_true_to_eccentric,
    mean_motion,
)
from .elements import (
    EQUINOCTIAL_ELEMENT_NAMES,
    state_eci_to_eqn,
    state_eci_to_koe,
    state_eqn_to_eci,
    state_eqn_to_koe,
    state_koe_to_eci,
    state_koe_to_eqn,
    wrap_to_pi,
)
from .mean_elements import (
    short_period_terms,
    state_koe_mean_to_osc,
    state_koe_osc_to_mean,
)

__all__ = [
    "mean_motion",
    "anomaly_eccentric_to_mean",
    "anomaly_mean_to_eccentric",
    "anomaly_true_to_eccentric",
    "anomaly_eccentric_to_true",
    "anomaly_mean_to_true",
    "EQUINOCTIAL_ELEMENT_NAMES",
    "wrap_to_pi",
    "state_koe_to_eqn",
    "state_eqn_to_koe",
    "state_koe_to_eci",
    "state_eci_to_koe",
    "state_eqn_to_eci",
    "state_eci_to_eqn",
    "state_koe_mean_to_osc",
    "state_koe_osc_to_mean",
    "short_period_terms",
]
