"""Tests for innovation-based dynamic outlier rejection."""

import jax.numpy as jnp

from astrokalman.epoch import Epoch
from astrokalman.estimation import apply_dynamic_outlier_filter
from astrokalman.measurements import (
    DynamicOutlierFilter,
    MeasurementStatus,
    Position,
    Range,
)

T0 = Epoch(2024, 1, 1)
STATE = jnp.array([6878e3, 10e3, -5e3, 10.0, 7600.0, 1.0])


def _position(offset, outlier, sigma=1.0):
    return Position(T0, STATE[:3] + offset, sigma, modifiers=[outlier])


class TestDynamicOutlierFilter:
    def test_rejects_against_innovation_sigma(self):
        outlier = DynamicOutlierFilter(0, 3.0)
        estimated = _position(jnp.array([10.0, 0.0, 0.0]), outlier).estimate(1, STATE)
        result = apply_dynamic_outlier_filter(estimated, jnp.eye(3))
        assert result.status is MeasurementStatus.REJECTED

    def test_innovation_covariance_widens_threshold(self):
        outlier = DynamicOutlierFilter(0, 3.0)
        estimated = _position(jnp.array([5.0, 0.0, 0.0]), outlier).estimate(1, STATE)
        assert apply_dynamic_outlier_filter(estimated, jnp.eye(3)).status is MeasurementStatus.REJECTED
        # sigma_dyn = sqrt(4) * 1 = 2, threshold 6
        assert apply_dynamic_outlier_filter(estimated, 4.0 * jnp.eye(3)).status is MeasurementStatus.PROCESSED

    def test_measurement_sigma_scales_threshold(self):
        outlier = DynamicOutlierFilter(0, 3.0)
        estimated = _position(jnp.array([5.0, 0.0, 0.0]), outlier, sigma=2.0).estimate(1, STATE)
        assert apply_dynamic_outlier_filter(estimated, jnp.eye(3)).status is MeasurementStatus.PROCESSED

    def test_warmup(self):
        outlier = DynamicOutlierFilter(3, 3.0)
        estimated = _position(jnp.array([100.0, 0.0, 0.0]), outlier).estimate(3, STATE)
        assert apply_dynamic_outlier_filter(estimated, jnp.eye(3)).status is MeasurementStatus.PROCESSED

    def test_sigma_reset_after_filtering(self):
        outlier = DynamicOutlierFilter(0, 3.0)
        estimated = _position(jnp.array([10.0, 0.0, 0.0]), outlier).estimate(1, STATE)
        apply_dynamic_outlier_filter(estimated, jnp.eye(3))
        assert outlier.sigma is None

    def test_shared_filter_unset_for_next_measurement(self):
        outlier = DynamicOutlierFilter(0, 3.0)
        position = _position(jnp.array([10.0, 0.0, 0.0]), outlier)
        apply_dynamic_outlier_filter(position.estimate(1, STATE), jnp.eye(3))

        far_range = Range(T0, 1e9, 1.0, jnp.zeros(3), modifiers=[outlier])
        assert far_range.estimate(2, STATE).status is MeasurementStatus.PROCESSED

    def test_no_dynamic_filter(self):
        estimated = Position(T0, STATE[:3] + 100.0, 1.0).estimate(1, STATE)
        result = apply_dynamic_outlier_filter(estimated, jnp.eye(3))
        assert result is estimated
