"""Semi-analytical propagation of mean equinoctial elements.

This sub-module provides:

- **Configuration**: :class:`PropagatorConfig`, :class:`SpacecraftParams`
  and :class:`ExponentialAtmosphere`.
- **Force models**: :class:`J2Gravity` and :class:`AtmosphericDrag`,
  each exposing its parameters as drivers.
- **Propagator**: :class:`SemiAnalyticalPropagator`, producing
  :class:`MeanState` records with cumulative Jacobians and
  :class:`ShortPeriodTerms` for osculating reconstruction.
- **Builder**: :class:`SemiAnalyticalPropagatorBuilder`, turning orbital
  and propagation drivers into propagators.
"""

from .builder import SemiAnalyticalPropagatorBuilder, orbital_scales
from .config import ExponentialAtmosphere, PropagatorConfig, SpacecraftParams
from .force_models import (
    DRAG_COEFFICIENT_NAME,
    J2_NAME,
    AtmosphericDrag,
    ForceModel,
    J2Gravity,
)
from .propagator import MeanState, SemiAnalyticalPropagator, ShortPeriodTerms

__all__ = [
    "PropagatorConfig",
    "SpacecraftParams",
    "ExponentialAtmosphere",
    "ForceModel",
    "J2Gravity",
    "AtmosphericDrag",
    "J2_NAME",
    "DRAG_COEFFICIENT_NAME",
    "MeanState",
    "ShortPeriodTerms",
    "SemiAnalyticalPropagator",
    "SemiAnalyticalPropagatorBuilder",
    "orbital_scales",
]
