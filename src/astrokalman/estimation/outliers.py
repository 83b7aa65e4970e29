"""Dynamic outlier rejection driven by the innovation covariance."""

from __future__ import annotations

import logging

import jax.numpy as jnp
from jax import Array

from astrokalman.measurements import EstimatedMeasurement, MeasurementStatus, ModifierKind

logger = logging.getLogger(__name__)


def apply_dynamic_outlier_filter(
    estimated: EstimatedMeasurement,
    innovation_covariance: Array,
) -> EstimatedMeasurement:
    """Run the dynamic outlier filters of a measurement.

    Each dynamic filter receives ``sqrt(S[i, i]) * sigma[i]`` as its
    working standard deviation, is applied, and has its sigma cleared
    again before returning.

    Args:
        estimated: Predicted measurement.
        innovation_covariance: Normalized innovation covariance ``S``.

    Returns:
        The estimate, with status ``REJECTED`` if a filter rejected it.
    """
    sigma = jnp.sqrt(jnp.diag(innovation_covariance)) * estimated.observed.sigma
    for modifier in estimated.observed.modifiers:
        if modifier.kind is not ModifierKind.DYNAMIC_OUTLIER:
            continue
        modifier.sigma = sigma
        try:
            estimated = modifier.apply(estimated)
        finally:
            modifier.sigma = None
    if estimated.status is MeasurementStatus.REJECTED:
        logger.info(
            "Measurement %d at %s rejected", estimated.iteration, estimated.observed.date
        )
    return estimated
