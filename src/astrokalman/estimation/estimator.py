"""Semi-analytical extended Kalman filter orbit determination.

:class:`SemiAnalyticalKalmanEstimator` runs a single sequential pass of
the filter over a list of measurements:

1. measurements are sorted chronologically (stable, so measurements with
   equal dates keep their input order);
2. each measurement is predicted, linearized, tested by the outlier
   filters and, unless rejected, used for a Kalman correction;
3. an optional observer is notified after every measurement;
4. at the end the builder drivers receive the estimated corrections and
   an estimated propagator is returned.

Examples:
    ```python
    import jax.numpy as jnp
    from astrokalman.estimation import (
        ConstantProcessNoise,
        SemiAnalyticalKalmanEstimator,
    )

    estimator = SemiAnalyticalKalmanEstimator(
        builder, ConstantProcessNoise(jnp.eye(6) * 1e-2)
    )
    propagator = estimator.process_measurements(measurements)
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from jax import Array

from astrokalman.drivers import ParameterDriver, ParameterDriversList
from astrokalman.epoch import Epoch
from astrokalman.estimation._types import ProcessEstimate
from astrokalman.estimation.ekf import ExtendedKalmanFilter
from astrokalman.estimation.model import ModelSnapshot, SemiAnalyticalKalmanModel
from astrokalman.estimation.process_noise import CovarianceMatrixProvider
from astrokalman.measurements import EstimatedMeasurement, ObservedMeasurement
from astrokalman.propagation import SemiAnalyticalPropagator, SemiAnalyticalPropagatorBuilder

logger = logging.getLogger(__name__)


class KalmanObserver(Protocol):
    """Callback notified after each processed measurement."""

    def evaluation_performed(self, estimation: SemiAnalyticalKalmanEstimator) -> None:
        ...


class SemiAnalyticalKalmanEstimator:
    """Orbit determination with the semi-analytical extended Kalman filter.

    Args:
        builder: Propagator builder; its orbital and propagation drivers
            define the estimated state.
        process_noise: Covariance provider of the orbital and propagation
            block.
        measurement_parameters: Measurement parameter drivers in column
            order.  When omitted, the drivers of the processed
            measurements are used in first-observed order.
        measurement_process_noise: Covariance provider of the measurement
            parameter block.
        observer: Optional :class:`KalmanObserver`.
    """

    def __init__(
        self,
        builder: SemiAnalyticalPropagatorBuilder,
        process_noise: CovarianceMatrixProvider,
        measurement_parameters: ParameterDriversList | None = None,
        measurement_process_noise: CovarianceMatrixProvider | None = None,
        observer: KalmanObserver | None = None,
    ) -> None:
        self._builder = builder
        self._process_noise = process_noise
        self._measurement_parameters = measurement_parameters
        self._measurement_process_noise = measurement_process_noise
        self.observer = observer
        self._model: SemiAnalyticalKalmanModel | None = None
        self._filter: ExtendedKalmanFilter | None = None
        self._estimated_propagator: SemiAnalyticalPropagator | None = None

    @property
    def builder(self) -> SemiAnalyticalPropagatorBuilder:
        return self._builder

    @property
    def model(self) -> SemiAnalyticalKalmanModel | None:
        """Process model of the last pass, ``None`` before any pass."""
        return self._model

    def process_measurements(
        self, measurements: Iterable[ObservedMeasurement]
    ) -> SemiAnalyticalPropagator:
        """Run the filter over ``measurements``.

        Args:
            measurements: Observed measurements, in any order.

        Returns:
            Propagator built from the estimated driver values, starting at
            the date of the last measurement.

        Raises:
            ValueError: If ``measurements`` is empty.
            DimensionMismatchError: If a covariance provider disagrees with
                the estimated parameters.
            NumericalError: On a numerical failure of the filter.
        """
        ordered = sorted(measurements, key=lambda m: m.date)
        if not ordered:
            raise ValueError("No measurements to process")

        parameters = self._measurement_parameters
        if parameters is None:
            parameters = ParameterDriversList.from_measurements(ordered)

        self._estimated_propagator = None
        self._model = SemiAnalyticalKalmanModel(
            self._builder, self._process_noise, parameters, self._measurement_process_noise
        )
        snapshot = self._model.initial_snapshot
        self._filter = ExtendedKalmanFilter(self._model, snapshot.corrected_estimate, snapshot)

        logger.info(
            "Processing %d measurements from %s to %s",
            len(ordered), ordered[0].date, ordered[-1].date,
        )
        for measurement in ordered:
            self._filter.estimation_step(self._model.decorate(measurement))
            if self.observer is not None:
                self.observer.evaluation_performed(self)

        self._model.finalize_operations(self._filter.snapshot)
        logger.info(
            "Processed %d measurements, final date %s",
            self.current_measurement_number, self.current_date,
        )
        self._estimated_propagator = self._model.estimated_propagator()
        return self._estimated_propagator

    # Accessors

    def _snapshot(self) -> ModelSnapshot:
        if self._filter is None:
            raise ValueError("No measurement has been processed yet")
        return self._filter.snapshot

    @property
    def current_measurement_number(self) -> int:
        return self._snapshot().measurement_number

    @property
    def current_date(self) -> Epoch:
        return self._snapshot().current_date

    @property
    def predicted_measurement(self) -> EstimatedMeasurement | None:
        return self._snapshot().predicted_measurement

    @property
    def predicted_estimate(self) -> ProcessEstimate | None:
        """Normalized prediction of the last measurement."""
        self._snapshot()
        return self._filter.predicted

    @property
    def corrected_estimate(self) -> ProcessEstimate:
        """Normalized correction of the last measurement."""
        return self._snapshot().corrected_estimate

    @property
    def physical_estimated_state(self) -> Array:
        snapshot = self._snapshot()
        return self._model.physical_estimated_state(snapshot)

    @property
    def physical_estimated_covariance(self) -> Array:
        snapshot = self._snapshot()
        return self._model.physical_estimated_covariance(snapshot)

    @property
    def physical_state_transition_matrix(self) -> Array | None:
        snapshot = self._snapshot()
        return self._model.physical_state_transition_matrix(snapshot)

    @property
    def physical_measurement_jacobian(self) -> Array | None:
        snapshot = self._snapshot()
        return self._model.physical_measurement_jacobian(snapshot)

    @property
    def physical_innovation_covariance(self) -> Array | None:
        snapshot = self._snapshot()
        return self._model.physical_innovation_covariance(snapshot)

    @property
    def physical_kalman_gain(self) -> Array | None:
        snapshot = self._snapshot()
        return self._model.physical_kalman_gain(snapshot)

    @property
    def estimated_propagator(self) -> SemiAnalyticalPropagator:
        """Propagator returned by the last :meth:`process_measurements`."""
        if self._estimated_propagator is None:
            raise ValueError("No measurement has been processed yet")
        return self._estimated_propagator

    @property
    def orbital_parameters(self) -> list[ParameterDriver]:
        return list(self._builder.orbital_drivers)

    @property
    def propagation_parameters(self) -> list[ParameterDriver]:
        """Estimated propagation drivers, in column order."""
        return list(self._model.registry.propagation) if self._model is not None else []

    @property
    def measurement_parameters(self) -> list[ParameterDriver]:
        """Estimated measurement drivers, in column order."""
        return list(self._model.registry.measurement) if self._model is not None else []
